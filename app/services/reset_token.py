"""Single-use password reset tokens.

Only the SHA-256 digest of a token is stored; the plaintext exists in the
emailed link and nowhere else.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.database import utcnow
from app.models.user import User


@dataclass(frozen=True)
class IssuedResetToken:
    plaintext: str
    token_hash: str
    expires_at: datetime


def hash_reset_token(plaintext: str) -> str:
    return hashlib.sha256(plaintext.encode("utf-8")).hexdigest()


class ResetTokenService:
    """Issues reset tokens and consumes them at most once."""

    def __init__(self, settings: Settings) -> None:
        self.expire_minutes = settings.RESET_TOKEN_EXPIRE_MINUTES

    def issue(self) -> IssuedResetToken:
        plaintext = secrets.token_hex(32)
        return IssuedResetToken(
            plaintext=plaintext,
            token_hash=hash_reset_token(plaintext),
            expires_at=utcnow() + timedelta(minutes=self.expire_minutes),
        )

    def consume(self, db: Session, plaintext: str) -> User | None:
        """Claim the user holding an unexpired token matching ``plaintext``.

        The token columns are cleared by a conditional UPDATE, so of two
        concurrent claims only one sees a row count of 1. Nothing is
        committed here: the caller sets the new password and commits, which
        makes the clear and the password change one transaction. Returns
        None, with state unchanged, for unknown or expired tokens.
        """
        if not plaintext:
            return None
        token_hash = hash_reset_token(plaintext)
        now = utcnow()
        user = (
            db.query(User)
            .filter(User.password_reset_token_hash == token_hash, User.password_reset_expires_at > now)
            .first()
        )
        if not user:
            return None

        claimed = (
            db.query(User)
            .filter(
                User.id == user.id,
                User.password_reset_token_hash == token_hash,
                User.password_reset_expires_at > now,
            )
            .update(
                {User.password_reset_token_hash: None, User.password_reset_expires_at: None},
                synchronize_session="fetch",
            )
        )
        if claimed != 1:
            db.rollback()
            return None
        return user


_reset_token_service: ResetTokenService | None = None


def get_reset_token_service() -> ResetTokenService:
    """Get singleton reset token service instance."""
    global _reset_token_service
    if _reset_token_service is None:
        _reset_token_service = ResetTokenService(get_settings())
    return _reset_token_service
