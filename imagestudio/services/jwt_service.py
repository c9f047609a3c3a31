"""
JWT token service for authentication.

Tokens are issued by the identity provider; this service verifies them and
can mint tokens for trusted callers (scripts, tests).
"""
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from imagestudio.config import Settings, settings as default_settings


class JWTService:
    """Service for creating and verifying JWT tokens."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or default_settings

    def create_token(self, user_id: str, email: str | None = None) -> str:
        """
        Create a JWT token with user context.

        Args:
            user_id: User's unique ID
            email: User's email (optional)

        Returns:
            Encoded JWT token string
        """
        expires = datetime.now(timezone.utc) + timedelta(minutes=self.settings.JWT_EXPIRATION_MINUTES)

        payload = {
            "sub": user_id,
            "exp": expires
        }
        if email:
            payload["email"] = email

        return jwt.encode(payload, self.settings.JWT_SECRET_KEY, algorithm=self.settings.JWT_ALGORITHM)

    def verify_token(self, token: str) -> dict | None:
        """
        Verify and decode a JWT token.

        Args:
            token: JWT token string

        Returns:
            Decoded payload dict or None if invalid
        """
        try:
            payload = jwt.decode(
                token,
                self.settings.JWT_SECRET_KEY,
                algorithms=[self.settings.JWT_ALGORITHM]
            )
            return payload
        except JWTError:
            return None
