"""JWT Token Service."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from app.config import ConfigurationError, Settings, get_settings


@dataclass(frozen=True)
class TokenClaims:
    """Verified bearer token contents."""

    user_id: int
    role: str
    expires_at: datetime


class JWTService:
    """Handles JWT token creation and validation."""

    def __init__(self, settings: Settings) -> None:
        if not settings.JWT_SECRET_KEY:
            raise ConfigurationError("JWT_SECRET_KEY is not set")
        self.secret_key = settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.expire_delta = timedelta(days=settings.JWT_EXPIRE_DAYS)

    def create_token(self, user_id: int, role: str, expires_delta: timedelta | None = None) -> str:
        """Create a JWT token for the given user."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "role": role,
            "iat": now,
            "exp": now + (expires_delta if expires_delta is not None else self.expire_delta),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> TokenClaims | None:
        """Decode and validate a JWT token. Returns None if invalid for any reason."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
            return TokenClaims(
                user_id=int(payload["sub"]),
                role=str(payload["role"]),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (JWTError, KeyError, TypeError, ValueError):
            return None

    def is_token_valid(self, token: str) -> bool:
        """Check if a token is valid."""
        return self.decode_token(token) is not None


_jwt_service: JWTService | None = None


def get_jwt_service() -> JWTService:
    """Get singleton JWT service instance."""
    global _jwt_service
    if _jwt_service is None:
        _jwt_service = JWTService(get_settings())
    return _jwt_service
