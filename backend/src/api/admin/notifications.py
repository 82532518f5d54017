"""
Admin notification API endpoints.

System notifications are sent to a single user or to every active user.
Requires administrator privileges.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.middleware.auth import require_admin, UserContext
from backend.src.models.user import User
from backend.src.schemas.notifications import (
    SystemNotificationCreate,
    SystemNotificationResponse,
)
from backend.src.services.guid import GuidService
from backend.src.services.notification_service import NotificationService
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(prefix="/notifications", tags=["Admin - Notifications"])


def _resolve_recipients(db: Session, user_guid):
    if user_guid is None:
        return (
            db.query(User)
            .filter(User.is_active.is_(True))
            .order_by(User.id.asc())
            .all()
        )

    try:
        user_uuid = GuidService.parse_guid(user_guid, "usr")
    except ValueError:
        user_uuid = None
    user = (
        db.query(User).filter(User.uuid == user_uuid).first()
        if user_uuid is not None else None
    )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return [user]


@router.post(
    "/system",
    response_model=SystemNotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a system notification",
)
async def send_system_notification(
    body: SystemNotificationCreate,
    ctx: UserContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Send a system notification to one user, or to every active user when
    no recipient is given.
    """
    recipients = _resolve_recipients(db, body.user_guid)
    recipient_ids = [user.id for user in recipients]

    service = NotificationService(db=db)
    for user_id in recipient_ids:
        service.create_system_notification(user_id=user_id, message=body.message)

    logger.info(
        "System notification sent",
        extra={"recipients": len(recipient_ids), "admin_guid": ctx.user_guid},
    )
    return SystemNotificationResponse(created=len(recipient_ids))
