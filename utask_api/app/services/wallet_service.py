"""
Business logic for the wallet.

Read-only: the balance is the amount cached on the user row and the
ledger in ``wallet_transactions`` is listed, never summed or changed
here.
"""

from typing import Optional

from ..core.db import Database
from ..core.errors import NotFound, ValidationError
from ..schemas.common import Pagination
from ..schemas.wallet import TransactionList, TransactionRead, WalletRead


RECENT_TRANSACTIONS = 5
TRANSACTION_TYPES = ("credit", "debit")


class WalletService:
    def __init__(self, db: Database) -> None:
        self.db = db

    async def get_wallet(self, actor_id: int) -> WalletRead:
        """Balance plus the most recent ledger entries."""
        with self.db.connection() as conn:
            user = conn.execute("SELECT balance FROM users WHERE id = ?", (actor_id,)).fetchone()
            if not user:
                raise NotFound("User not found")
            rows = conn.execute(
                "SELECT id, amount, type, description, created_at FROM wallet_transactions "
                "WHERE user_id = ? ORDER BY created_at DESC, id DESC LIMIT ?",
                (actor_id, RECENT_TRANSACTIONS),
            ).fetchall()
        return WalletRead(
            balance=user["balance"] or 0.0,
            recent_transactions=[TransactionRead.model_validate(dict(row)) for row in rows],
        )

    async def list_transactions(
        self,
        actor_id: int,
        limit: int = 20,
        offset: int = 0,
        type: Optional[str] = None,
    ) -> TransactionList:
        if type is not None and type not in TRANSACTION_TYPES:
            raise ValidationError("Transaction type must be 'credit' or 'debit'")
        where = "WHERE user_id = ?"
        params: list = [actor_id]
        if type:
            where += " AND type = ?"
            params.append(type)
        with self.db.connection() as conn:
            rows = conn.execute(
                "SELECT id, amount, type, description, created_at FROM wallet_transactions "
                f"{where} ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                (*params, limit, offset),
            ).fetchall()
            total = conn.execute(
                f"SELECT COUNT(*) AS count FROM wallet_transactions {where}",
                tuple(params),
            ).fetchone()
        return TransactionList(
            transactions=[TransactionRead.model_validate(dict(row)) for row in rows],
            pagination=Pagination(limit=limit, offset=offset, total=total["count"]),
        )
