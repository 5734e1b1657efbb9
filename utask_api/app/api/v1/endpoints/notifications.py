"""Notification endpoints for API v1.  All routes act on the authenticated user."""

from fastapi import APIRouter, Path, Query

from utask_api.app.api.deps import CurrentUser, NotificationServiceDep
from utask_api.app.schemas.common import MAX_ID, SuccessResponse
from utask_api.app.schemas.notification import NotificationList


router = APIRouter()


@router.get("", response_model=NotificationList)
async def list_notifications(
    current_user: CurrentUser,
    notifications: NotificationServiceDep,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0, le=MAX_ID),
    unread: bool = Query(False, description="Only unread notifications"),
) -> NotificationList:
    return await notifications.list_notifications(
        current_user["user_id"],
        limit=limit,
        offset=offset,
        unread_only=unread,
    )


# Declared before "/{notification_id}/read" so "read-all" is never taken for an id.
@router.post("/read-all", response_model=SuccessResponse)
async def mark_all_read(current_user: CurrentUser, notifications: NotificationServiceDep) -> SuccessResponse:
    await notifications.mark_all_read(current_user["user_id"])
    return SuccessResponse(message="All notifications marked as read")


@router.post("/{notification_id}/read", response_model=SuccessResponse)
async def mark_read(
    current_user: CurrentUser,
    notifications: NotificationServiceDep,
    notification_id: int = Path(..., ge=1, le=MAX_ID, description="ID of the notification"),
) -> SuccessResponse:
    """Mark one notification as read.  Only its recipient may do so."""
    await notifications.mark_read(notification_id, current_user["user_id"])
    return SuccessResponse(message="Notification marked as read")
