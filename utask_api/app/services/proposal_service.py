"""
Business logic for the proposal workflow.

A provider sends a proposal for a pending service; the owner of the
service then accepts, rejects or counters it.  Every step runs inside
one ``Database.transaction`` together with the notification it emits,
and every precondition is checked inside that transaction so the state
that is checked is the state that gets written.

Acceptance is the only step that touches more than one record: the
accepted proposal, the service (``pending`` -> ``in_progress``) and all
sibling proposals that were still open.  Because ``transaction`` starts
with ``BEGIN IMMEDIATE``, two concurrent acceptances for the same
service are serialised by SQLite; the second one sees the service
already ``in_progress`` and fails with ``InvalidState``.

A countered proposal waits for the provider, who has no action
available on it yet, so the owner cannot act on it again either.
"""

import logging
import sqlite3
from typing import List, Optional

from ..core.db import Database
from ..core.errors import Conflict, InvalidState, NotFound, ValidationError
from ..core.permissions import require_not_service_owner, require_service_owner
from ..schemas.proposal import CounterState, ProposalCreate, ProposalRead, ProposalState
from ..utils.formatters import format_currency, format_date
from .notification_service import NotificationService
from .service_request_service import PROPOSAL_SELECT, fetch_proposals, proposal_from_row


logger = logging.getLogger(__name__)

# Sibling proposals still open when another one is accepted.
OPEN_STATUSES = ("pending", "counter")


def _load_proposal_for_owner(cursor: sqlite3.Cursor, proposal_id: int, actor_id: int, action: str) -> sqlite3.Row:
    """Fetch a proposal with its service and check the owner may act on it."""
    row = cursor.execute(
        """
        SELECT p.id, p.service_id, p.provider_id, p.price, p.message, p.status,
               s.user_id, s.title AS service_title, s.status AS service_status,
               s.date AS service_date
        FROM proposals p
        JOIN services s ON s.id = p.service_id
        WHERE p.id = ?
        """,
        (proposal_id,),
    ).fetchone()
    if not row:
        raise NotFound("Proposal not found")
    require_service_owner(actor_id, row, f"Only the service owner can {action} proposals")
    if row["status"] != "pending":
        raise InvalidState(f"Cannot {action} a proposal with status {row['status']}")
    return row


class ProposalService:
    """Create proposals and move them through the owner's decisions."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def create_proposal(self, service_id: int, actor_id: int, data: ProposalCreate) -> ProposalRead:
        """Send a proposal for a service.

        Checks run in order: the service exists (404), it is still
        ``pending`` (400), the actor is not its owner (403) and the
        actor has not proposed on it before (409).  The owner receives
        a ``new_proposal`` notification.
        """
        if data.price <= 0:
            raise ValidationError("Price must be greater than zero")
        try:
            with self.db.transaction() as cursor:
                service = cursor.execute(
                    "SELECT id, user_id, title, status FROM services WHERE id = ?",
                    (service_id,),
                ).fetchone()
                if not service:
                    raise NotFound("Service not found")
                if service["status"] != "pending":
                    raise InvalidState("This service is not accepting proposals")
                require_not_service_owner(actor_id, service)
                if cursor.execute(
                    "SELECT id FROM proposals WHERE service_id = ? AND provider_id = ?",
                    (service_id, actor_id),
                ).fetchone():
                    raise Conflict("You have already sent a proposal for this service")

                cursor.execute(
                    "INSERT INTO proposals (service_id, provider_id, price, message, status) "
                    "VALUES (?, ?, ?, ?, 'pending')",
                    (service_id, actor_id, data.price, data.message),
                )
                proposal_id = cursor.lastrowid
                NotificationService.create(
                    cursor,
                    user_id=service["user_id"],
                    type="new_proposal",
                    title="New proposal",
                    message=f'You received a proposal of {format_currency(data.price)} for "{service["title"]}"',
                    related_id=proposal_id,
                )
                row = cursor.execute(f"{PROPOSAL_SELECT} WHERE p.id = ?", (proposal_id,)).fetchone()
        except sqlite3.IntegrityError as exc:
            # UNIQUE(service_id, provider_id) caught a concurrent duplicate.
            raise Conflict("You have already sent a proposal for this service") from exc
        logger.info("User %s proposed %.2f on service %s (proposal %s)", actor_id, data.price, service_id, proposal_id)
        return proposal_from_row(row)

    async def accept_proposal(self, proposal_id: int, actor_id: int) -> ProposalState:
        """Accept a proposal, start the service and close the other proposals."""
        with self.db.transaction() as cursor:
            proposal = _load_proposal_for_owner(cursor, proposal_id, actor_id, "accept")
            if proposal["service_status"] != "pending":
                raise InvalidState("This service is no longer accepting proposals")

            cursor.execute("UPDATE proposals SET status = 'accepted' WHERE id = ?", (proposal_id,))
            cursor.execute("UPDATE services SET status = 'in_progress' WHERE id = ?", (proposal["service_id"],))
            cursor.execute(
                f"UPDATE proposals SET status = 'rejected' "
                f"WHERE service_id = ? AND id != ? AND status IN ({', '.join('?' for _ in OPEN_STATUSES)})",
                (proposal["service_id"], proposal_id, *OPEN_STATUSES),
            )
            rejected = cursor.rowcount
            NotificationService.create(
                cursor,
                user_id=proposal["provider_id"],
                type="proposal_accepted",
                title="Proposal accepted",
                message=(
                    f'Your proposal for "{proposal["service_title"]}" was accepted, '
                    f'scheduled for {format_date(proposal["service_date"])}'
                ),
                related_id=proposal_id,
            )
        logger.info(
            "Proposal %s accepted; service %s in progress, %s sibling proposals rejected",
            proposal_id,
            proposal["service_id"],
            rejected,
        )
        return ProposalState(id=proposal_id, status="accepted")

    async def reject_proposal(self, proposal_id: int, actor_id: int) -> ProposalState:
        with self.db.transaction() as cursor:
            proposal = _load_proposal_for_owner(cursor, proposal_id, actor_id, "reject")
            cursor.execute("UPDATE proposals SET status = 'rejected' WHERE id = ?", (proposal_id,))
            NotificationService.create(
                cursor,
                user_id=proposal["provider_id"],
                type="proposal_rejected",
                title="Proposal rejected",
                message=f'Your proposal for "{proposal["service_title"]}" was rejected',
                related_id=proposal_id,
            )
        logger.info("Proposal %s rejected by user %s", proposal_id, actor_id)
        return ProposalState(id=proposal_id, status="rejected")

    async def counter_proposal(
        self,
        proposal_id: int,
        actor_id: int,
        price: float,
        message: Optional[str] = None,
    ) -> CounterState:
        """Replace the proposal's price and message with the owner's offer."""
        if price <= 0:
            raise ValidationError("Price must be greater than zero")
        message = message or ""
        with self.db.transaction() as cursor:
            proposal = _load_proposal_for_owner(cursor, proposal_id, actor_id, "counter")
            cursor.execute(
                "UPDATE proposals SET price = ?, message = ?, status = 'counter' WHERE id = ?",
                (price, message, proposal_id),
            )
            NotificationService.create(
                cursor,
                user_id=proposal["provider_id"],
                type="counter_proposal",
                title="Counter proposal",
                message=f'The owner of "{proposal["service_title"]}" offered {format_currency(price)}',
                related_id=proposal_id,
            )
        logger.info("Proposal %s countered with %.2f", proposal_id, price)
        return CounterState(id=proposal_id, status="counter", price=price, message=message)

    async def list_service_proposals(self, service_id: int, actor_id: int) -> List[ProposalRead]:
        """The owner sees every proposal of the service, anyone else only their own."""
        with self.db.connection() as conn:
            service = conn.execute("SELECT id, user_id FROM services WHERE id = ?", (service_id,)).fetchone()
            if not service:
                raise NotFound("Service not found")
            provider_filter = None if service["user_id"] == actor_id else actor_id
            return fetch_proposals(conn, service_id, provider_filter)
