"""
Pydantic models for the wallet.

The balance is the value cached on the user row; transactions are the
append-only ledger and are only ever listed.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .common import Pagination


TransactionType = Literal["credit", "debit"]


class TransactionRead(BaseModel):
    id: int
    amount: float
    type: TransactionType
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class WalletRead(BaseModel):
    balance: float
    recent_transactions: List[TransactionRead] = Field(..., alias="recentTransactions")

    model_config = {
        "populate_by_name": True,
    }


class TransactionList(BaseModel):
    transactions: List[TransactionRead]
    pagination: Pagination
