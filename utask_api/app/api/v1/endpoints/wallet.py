"""
Wallet endpoints for API v1.

Read-only: the balance cached on the user and the transaction ledger.
"""

from typing import Optional

from fastapi import APIRouter, Query

from utask_api.app.api.deps import CurrentUser, WalletServiceDep
from utask_api.app.schemas.common import MAX_ID
from utask_api.app.schemas.wallet import TransactionList, WalletRead


router = APIRouter()


@router.get("", response_model=WalletRead)
async def get_wallet(current_user: CurrentUser, wallet: WalletServiceDep) -> WalletRead:
    """Balance and the five most recent transactions."""
    return await wallet.get_wallet(current_user["user_id"])


@router.get("/transactions", response_model=TransactionList)
async def list_transactions(
    current_user: CurrentUser,
    wallet: WalletServiceDep,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0, le=MAX_ID),
    type: Optional[str] = Query(None, description="credit or debit"),
) -> TransactionList:
    return await wallet.list_transactions(current_user["user_id"], limit=limit, offset=offset, type=type)
