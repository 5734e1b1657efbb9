"""
Authorization predicates.

Each helper checks one rule about the acting user and raises
``Forbidden`` when it does not hold.  Services call them after loading
the record so that a missing record is reported as 404 before any
permission question is asked.
"""

from typing import Any, Mapping

from .errors import Forbidden


def require_service_owner(actor_id: int, service: Mapping[str, Any], message: str | None = None) -> None:
    """Only the user who posted the service may continue."""
    if service["user_id"] != actor_id:
        raise Forbidden(message or "Only the service owner can perform this action")


def require_not_service_owner(actor_id: int, service: Mapping[str, Any]) -> None:
    """Owners cannot act as providers on their own service."""
    if service["user_id"] == actor_id:
        raise Forbidden("You cannot send a proposal to your own service")


def require_notification_recipient(actor_id: int, notification: Mapping[str, Any]) -> None:
    if notification["user_id"] != actor_id:
        raise Forbidden("This notification belongs to another user")
