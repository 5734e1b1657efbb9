"""
Business logic for notifications.

Notifications are written by the other services as a side effect of
workflow steps (a new proposal, an accepted proposal, ...).  ``create``
therefore takes the caller's cursor so that the notification commits
or rolls back together with the change it reports.
"""

import logging
import sqlite3
from typing import Optional

from ..core.db import Database
from ..core.errors import NotFound
from ..core.permissions import require_notification_recipient
from ..schemas.common import Pagination
from ..schemas.notification import NotificationList, NotificationRead


logger = logging.getLogger(__name__)


class NotificationService:
    """Stored notifications of a user."""

    def __init__(self, db: Database) -> None:
        self.db = db

    @staticmethod
    def create(
        cursor: sqlite3.Cursor,
        user_id: int,
        type: str,
        title: str,
        message: str,
        related_id: Optional[int] = None,
    ) -> int:
        """Insert a notification within an open transaction and return its id."""
        cursor.execute(
            "INSERT INTO notifications (user_id, type, title, message, related_id) VALUES (?, ?, ?, ?, ?)",
            (user_id, type, title, message, related_id),
        )
        logger.debug("Queued %s notification for user %s", type, user_id)
        return cursor.lastrowid

    async def list_notifications(
        self,
        actor_id: int,
        limit: int = 20,
        offset: int = 0,
        unread_only: bool = False,
    ) -> NotificationList:
        """Return a page of the user's notifications, newest first.

        ``unreadCount`` always counts every unread notification of the
        user, independent of the page and of ``unread_only``.
        """
        where = "WHERE user_id = ?"
        params: list = [actor_id]
        if unread_only:
            where += " AND read = 0"
        with self.db.connection() as conn:
            rows = conn.execute(
                "SELECT id, user_id, type, title, message, related_id, read, created_at "
                f"FROM notifications {where} ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                (*params, limit, offset),
            ).fetchall()
            total = conn.execute(f"SELECT COUNT(*) AS count FROM notifications {where}", tuple(params)).fetchone()
            unread = conn.execute(
                "SELECT COUNT(*) AS count FROM notifications WHERE user_id = ? AND read = 0",
                (actor_id,),
            ).fetchone()
        return NotificationList(
            notifications=[NotificationRead.model_validate(dict(row)) for row in rows],
            unread_count=unread["count"],
            pagination=Pagination(limit=limit, offset=offset, total=total["count"]),
        )

    async def mark_read(self, notification_id: int, actor_id: int) -> None:
        with self.db.transaction() as cursor:
            row = cursor.execute(
                "SELECT id, user_id FROM notifications WHERE id = ?",
                (notification_id,),
            ).fetchone()
            if not row:
                raise NotFound("Notification not found")
            require_notification_recipient(actor_id, row)
            cursor.execute("UPDATE notifications SET read = 1 WHERE id = ?", (notification_id,))

    async def mark_all_read(self, actor_id: int) -> int:
        """Mark every unread notification of the user as read; returns how many changed."""
        with self.db.transaction() as cursor:
            cursor.execute("UPDATE notifications SET read = 1 WHERE user_id = ? AND read = 0", (actor_id,))
            updated = cursor.rowcount
        logger.info("Marked %s notifications as read for user %s", updated, actor_id)
        return updated
