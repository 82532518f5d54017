"""
Middleware components for the FanHub notifications backend.

This module provides:
- UserContext: Dataclass representing the authenticated caller
- get_user_context: FastAPI dependency for extracting the caller from requests
- require_auth: FastAPI dependency for requiring authentication
- require_admin: FastAPI dependency for requiring administrator privileges
"""

from backend.src.middleware.context import UserContext, get_user_context, require_admin
from backend.src.middleware.auth import require_auth

__all__ = [
    "UserContext",
    "get_user_context",
    "require_auth",
    "require_admin",
]
