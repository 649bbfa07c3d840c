import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from app.core import config
from app.core.exceptions import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)


class JWTManager:
    """Verifies bearer tokens issued by the identity service (``sub`` = user id)"""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_token_expire_minutes: Optional[int] = None,
    ):
        self.secret_key = secret_key or config.JWT_SECRET_KEY
        self.algorithm = algorithm or config.JWT_ALGORITHM
        self.access_token_expire_minutes = (
            access_token_expire_minutes or config.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
        )

    def _require_secret(self) -> str:
        if not self.secret_key:
            raise ConfigurationError("JWT_SECRET_KEY", "JWT secret is not configured")
        return self.secret_key

    def create_access_token(
        self, user_id: int, extra_data: Dict[str, Any] = None
    ) -> str:
        """
        Create an access token for ``user_id``.

        Used by the identity service and by tests; this API never logs users in.
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + timedelta(minutes=self.access_token_expire_minutes),
            "type": "access_token",
        }
        if extra_data:
            payload.update(extra_data)

        return jwt.encode(payload, self._require_secret(), algorithm=self.algorithm)

    def decode_token(self, token: str) -> Dict[str, Any]:
        """
        Decode and verify JWT token

        Raises:
            AuthenticationError: If token is invalid or expired
        """
        try:
            payload = jwt.decode(
                token, self._require_secret(), algorithms=[self.algorithm]
            )
        except jwt.ExpiredSignatureError:
            logger.warning("JWT token has expired")
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError:
            logger.warning("Invalid JWT token provided")
            raise AuthenticationError("Invalid token")

        if payload.get("type") != "access_token":
            raise AuthenticationError("Invalid token type")

        return payload

    def get_user_id(self, token: str) -> int:
        payload = self.decode_token(token)
        try:
            return int(payload["sub"])
        except (KeyError, TypeError, ValueError):
            raise AuthenticationError("Token has no valid subject")


jwt_manager = JWTManager()
