"""
User context dependencies for authenticated API routes.

Provides:
- UserContext: Dataclass describing the authenticated caller
- get_user_context: FastAPI dependency resolving the caller from the request
- require_admin: FastAPI dependency restricting a route to administrators

The user context is derived from:
1. A Bearer access token in the Authorization header (programmatic access,
   e.g. the video importer)
2. The signed session cookie (browser access; the login flow that sets
   ``user_guid`` lives outside this service)

The context is passed explicitly to every handler and service call; there is
no request-global user.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request, HTTPException, status, Depends
from sqlalchemy.orm import Session

from backend.src.db.database import get_db


logger = logging.getLogger("fanhub.api")


@dataclass
class UserContext:
    """
    Represents the authenticated caller of a request.

    Attributes:
        user_id: Internal user ID for database queries (FK filtering)
        user_guid: User's external GUID (usr_xxx) for API responses
        user_email: User's email address
        is_admin: Whether the user may call the ingestion/admin endpoints
        is_api_token: Whether authentication was via Bearer token

    Usage:
        @router.get("/notifications")
        async def list_notifications(
            ctx: UserContext = Depends(require_auth)
        ):
            items, total = service.list_notifications(user_id=ctx.user_id)
    """

    user_id: int
    user_guid: str
    user_email: Optional[str] = None

    is_admin: bool = False
    is_api_token: bool = False

    def __post_init__(self):
        """Validate required fields."""
        if not self.user_id or not self.user_guid:
            raise ValueError("user_id and user_guid are required")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


async def get_user_context(
    request: Request,
    db: Session = Depends(get_db)
) -> UserContext:
    """
    FastAPI dependency to extract the user context from the request.

    Tries the Bearer token first, then the session cookie.

    Raises:
        HTTPException 401: If not authenticated
        HTTPException 403: If the user is deactivated
    """
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return _authenticate_token(auth_header[7:], db)

    session = request.scope.get("session") or {}
    user_guid = session.get("user_guid")
    if user_guid:
        return _authenticate_session(user_guid, db)

    raise _unauthorized("Authentication required")


def _authenticate_token(token: str, db: Session) -> UserContext:
    """
    Authenticate using a Bearer access token.

    Raises:
        HTTPException 401: If the token is invalid, expired or its user is gone
        HTTPException 403: If the user is deactivated
    """
    # Import here to avoid circular imports
    from backend.src.services.token_service import TokenService, InactiveUserError
    from backend.src.config.settings import get_settings

    settings = get_settings()
    if not settings.jwt_configured:
        raise _unauthorized("Token authentication is not configured")

    service = TokenService(db, settings.jwt_secret_key)
    try:
        ctx = service.validate_token(token)
    except InactiveUserError:
        logger.warning("Rejected token for deactivated user")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated"
        )

    if not ctx:
        raise _unauthorized("Invalid or expired access token")

    return ctx


def _authenticate_session(user_guid: str, db: Session) -> UserContext:
    """
    Authenticate using session data.

    Raises:
        HTTPException 401: If the session references no known user
        HTTPException 403: If the user is deactivated
    """
    from backend.src.models import User
    from backend.src.services.guid import GuidService

    try:
        user_uuid = GuidService.parse_guid(user_guid, "usr")
    except ValueError:
        raise _unauthorized("Session expired or invalid")

    user = db.query(User).filter(User.uuid == user_uuid).first()
    if not user:
        logger.warning("Session references unknown user", extra={"user_guid": user_guid})
        raise _unauthorized("Session expired or invalid")

    if not user.is_active:
        logger.warning("Rejected session for deactivated user", extra={"user_guid": user.guid})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated"
        )

    return UserContext(
        user_id=user.id,
        user_guid=user.guid,
        user_email=user.email,
        is_admin=user.is_admin,
        is_api_token=False,
    )


def require_admin(ctx: UserContext = Depends(get_user_context)) -> UserContext:
    """
    Dependency that requires administrator privileges.

    Raises:
        HTTPException 403: If the user is not an administrator

    Example:
        @router.post("/admin/videos")
        async def ingest_video(
            ctx: UserContext = Depends(require_admin)
        ):
            ...
    """
    if not ctx.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator privileges required"
        )
    return ctx
