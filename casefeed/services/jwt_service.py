import datetime

import jwt
import structlog

from casefeed.config import settings

logger = structlog.get_logger()


class JWTService:
    """Issue and verify the bearer tokens that identify staff users."""

    def __init__(
        self,
        secret_key: str | None = None,
        algorithm: str | None = None,
        expiry_seconds: int | None = None,
    ):
        self._secret_key = secret_key or settings.casefeed_secret_key
        self._algorithm = algorithm or settings.casefeed_jwt_algorithm
        self._expiry_seconds = expiry_seconds or settings.casefeed_jwt_expiry_seconds

    def create_token(self, user_id: str, role: str, name: str = "") -> str:
        """Sign a token carrying the user's id, role and display name."""
        now = datetime.datetime.now(datetime.timezone.utc)
        payload = {
            "sub": user_id,
            "role": role,
            "name": name,
            "iat": now,
            "exp": now + datetime.timedelta(seconds=self._expiry_seconds),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def decode_token(self, token: str) -> dict | None:
        """Claims of a valid token, or None when it is expired, tampered or malformed."""
        try:
            return jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            logger.debug("jwt_expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.debug("jwt_invalid", error=str(e))
            return None
