"""
Authentication dependencies for API routes.

Provides:
- require_auth: FastAPI dependency that requires authentication
- require_admin: Require administrator privileges

These are thin wrappers around the user context for clearer API semantics.
The actual authentication logic is in context.py (session and token validation).
"""

from fastapi import Depends

from backend.src.middleware.context import (
    UserContext,
    get_user_context,
    require_admin as _require_admin
)


async def require_auth(
    ctx: UserContext = Depends(get_user_context)
) -> UserContext:
    """
    FastAPI dependency that requires authentication.

    Returns the UserContext which contains user_id for data filtering.

    Raises:
        HTTPException 401: If not authenticated
        HTTPException 403: If the user is inactive

    Example:
        @router.get("/notifications/unread/count")
        async def get_unread_count(
            ctx: UserContext = Depends(require_auth)
        ):
            return {"count": service.get_unread_count(ctx.user_id)}
    """
    # get_user_context already raises 401 if not authenticated
    return ctx


# Re-export require_admin for convenience
require_admin = _require_admin


__all__ = [
    "require_auth",
    "require_admin",
    "UserContext",
]
