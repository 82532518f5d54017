"""
Token service for Bearer access tokens.

Handles:
- JWT access token generation for an existing user
- Token validation and user context creation

Design:
- Tokens are JWTs signed with JWT_SECRET_KEY (HS256)
- The subject claim is the user's GUID (usr_xxx), never the internal ID
- Admin rights are read from the user row at validation time, so revoking
  admin takes effect without reissuing tokens
"""

from datetime import datetime, timedelta
from typing import Optional

from jose import jwt, JWTError
from sqlalchemy.orm import Session

from backend.src.models import User
from backend.src.middleware.context import UserContext
from backend.src.services.exceptions import ServiceError, ValidationError
from backend.src.services.guid import GuidService
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")


TOKEN_ALGORITHM = "HS256"
TOKEN_TYPE = "access"
DEFAULT_TOKEN_EXPIRY_MINUTES = 60


class InactiveUserError(ServiceError):
    """Raised when a valid token belongs to a deactivated user."""
    pass


class TokenService:
    """
    Service for issuing and validating access tokens.

    Usage:
        >>> service = TokenService(db_session, jwt_secret)
        >>> token = service.create_access_token(user)
        >>> ctx = service.validate_token(token)
        >>> if ctx:
        ...     print(f"Authenticated as {ctx.user_guid}")
    """

    def __init__(
        self,
        db: Session,
        jwt_secret: str,
        expiry_minutes: int = DEFAULT_TOKEN_EXPIRY_MINUTES,
    ):
        """
        Initialize token service.

        Args:
            db: SQLAlchemy database session
            jwt_secret: Secret key for JWT signing
            expiry_minutes: Lifetime of issued tokens
        """
        self.db = db
        self.jwt_secret = jwt_secret
        self.expiry_minutes = expiry_minutes

    def create_access_token(self, user: User) -> str:
        """
        Generate a signed access token for a user.

        Args:
            user: Active user the token authenticates

        Returns:
            Encoded JWT string

        Raises:
            ValidationError: If the secret is missing or the user is inactive
        """
        if not self.jwt_secret:
            raise ValidationError("JWT secret is not configured", field="jwt_secret")
        if not user.is_active:
            raise ValidationError(f"User {user.guid} is deactivated", field="user")

        now = datetime.utcnow()
        payload = {
            "sub": user.guid,
            "type": TOKEN_TYPE,
            "iat": now,
            "exp": now + timedelta(minutes=self.expiry_minutes),
        }
        token = jwt.encode(payload, self.jwt_secret, algorithm=TOKEN_ALGORITHM)

        logger.info(
            "Issued access token",
            extra={"user_guid": user.guid, "expiry_minutes": self.expiry_minutes},
        )
        return token

    def validate_token(self, token: str) -> Optional[UserContext]:
        """
        Validate an access token and return the caller's context.

        Args:
            token: JWT token string (from Authorization header)

        Returns:
            UserContext if valid, None if invalid/expired/unknown user

        Raises:
            InactiveUserError: If the token is valid but the user is deactivated
        """
        try:
            payload = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[TOKEN_ALGORITHM],
            )
        except JWTError as e:
            logger.warning(f"Token validation failed: JWT error - {e}")
            return None

        if payload.get("type") != TOKEN_TYPE:
            logger.warning("Token validation failed: not an access token")
            return None

        try:
            user_uuid = GuidService.parse_guid(payload.get("sub") or "", "usr")
        except ValueError:
            logger.warning("Token validation failed: malformed subject")
            return None

        user = self.db.query(User).filter(User.uuid == user_uuid).first()
        if not user:
            logger.warning("Token validation failed: user not found")
            return None

        if not user.is_active:
            raise InactiveUserError(f"User {user.guid} is deactivated")

        return UserContext(
            user_id=user.id,
            user_guid=user.guid,
            user_email=user.email,
            is_admin=user.is_admin,
            is_api_token=True,
        )
