"""
Notifications API endpoints for notification history and read state.

Provides endpoints for:
- Notification history (list with type/unread filters, stats)
- Unread count for the notification bell badge
- Marking one or all notifications as read
- Deleting a notification
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.middleware.auth import require_auth, UserContext
from backend.src.models.notification import NotificationType
from backend.src.schemas.notifications import (
    NotificationResponse,
    NotificationListResponse,
    NotificationStatsResponse,
    UnreadCountResponse,
    MarkAllReadResponse,
)
from backend.src.services.notification_service import NotificationService
from backend.src.services.exceptions import ForbiddenError, NotFoundError
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

# Use the shared limiter from main module
from backend.src.main import limiter

router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"],
)


# ============================================================================
# Dependencies
# ============================================================================


def get_notification_service(
    db: Session = Depends(get_db),
) -> NotificationService:
    """Create NotificationService instance with database session."""
    return NotificationService(db=db)


# ============================================================================
# Notification History Endpoints
# ============================================================================


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List notification history",
)
@limiter.limit("60/minute")
async def list_notifications(
    request: Request,
    limit: Optional[int] = Query(
        default=None,
        ge=1,
        description="Page size (server default and maximum apply)",
    ),
    offset: int = Query(default=0, ge=0),
    type: Optional[NotificationType] = Query(
        default=None,
        description="Filter by notification type",
    ),
    unread_only: bool = Query(default=False),
    ctx: UserContext = Depends(require_auth),
    service: NotificationService = Depends(get_notification_service),
):
    """
    Returns the authenticated user's notifications, newest first.
    """
    page_size = service.resolve_page_size(limit)
    notifications, total = service.list_notifications(
        user_id=ctx.user_id,
        type=type,
        unread_only=unread_only,
        limit=page_size,
        offset=offset,
    )
    return NotificationListResponse(
        items=[
            NotificationResponse.model_validate(n) for n in notifications
        ],
        total=total,
        limit=page_size,
        offset=offset,
    )


@router.get(
    "/stats",
    response_model=NotificationStatsResponse,
    summary="Get notification stats",
)
@limiter.limit("60/minute")
async def get_notification_stats(
    request: Request,
    ctx: UserContext = Depends(require_auth),
    service: NotificationService = Depends(get_notification_service),
):
    """
    Returns total, unread and this week's notification counts.
    """
    stats = service.get_stats(user_id=ctx.user_id)
    return NotificationStatsResponse(**stats)


@router.get(
    "/unread/count",
    response_model=UnreadCountResponse,
    summary="Get unread notification count",
)
@limiter.limit("120/minute")
async def get_unread_count(
    request: Request,
    ctx: UserContext = Depends(require_auth),
    service: NotificationService = Depends(get_notification_service),
):
    """
    Returns the count of unread notifications for the notification bell badge.
    """
    count = service.get_unread_count(user_id=ctx.user_id)
    return UnreadCountResponse(count=count)


@router.put(
    "/read/all",
    response_model=MarkAllReadResponse,
    summary="Mark all notifications as read",
)
@limiter.limit("30/minute")
async def mark_all_notifications_read(
    request: Request,
    ctx: UserContext = Depends(require_auth),
    service: NotificationService = Depends(get_notification_service),
):
    """
    Mark all unread notifications as read for the authenticated user.

    Returns the number of notifications that were marked as read.
    Calling again when everything is already read returns 0.
    """
    updated_count = service.mark_all_as_read(user_id=ctx.user_id)
    return MarkAllReadResponse(updated_count=updated_count)


@router.put(
    "/{guid}/read",
    response_model=NotificationResponse,
    summary="Mark notification as read",
)
@limiter.limit("60/minute")
async def mark_notification_read(
    request: Request,
    guid: str,
    ctx: UserContext = Depends(require_auth),
    service: NotificationService = Depends(get_notification_service),
):
    """
    Mark a single notification as read. Marking an already-read
    notification is a no-op.
    """
    try:
        notification = service.mark_as_read(user_id=ctx.user_id, guid=guid)
        return NotificationResponse.model_validate(notification)
    except NotFoundError as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found",
        ) from err


@router.delete(
    "/{guid}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a notification",
)
@limiter.limit("60/minute")
async def delete_notification(
    request: Request,
    guid: str,
    ctx: UserContext = Depends(require_auth),
    service: NotificationService = Depends(get_notification_service),
):
    """
    Permanently delete one of the authenticated user's notifications.
    """
    try:
        service.delete_notification(user_id=ctx.user_id, guid=guid)
    except NotFoundError as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found",
        ) from err
    except ForbiddenError as err:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to delete this notification",
        ) from err

    return Response(status_code=status.HTTP_204_NO_CONTENT)
