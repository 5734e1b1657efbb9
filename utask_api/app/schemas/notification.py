"""Pydantic models for stored notifications."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .common import Pagination


class NotificationRead(BaseModel):
    id: int
    user_id: int
    type: str = Field(..., example="new_proposal")
    title: str
    message: str
    # Id of the record the notification is about (a proposal for the
    # proposal workflow notifications).
    related_id: Optional[int] = None
    read: bool = False
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class NotificationList(BaseModel):
    notifications: List[NotificationRead]
    unread_count: int = Field(..., alias="unreadCount")
    pagination: Pagination

    model_config = {
        "populate_by_name": True,
    }
