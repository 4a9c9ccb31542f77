"""User model."""

from urllib.parse import quote_plus

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from app.database import Base, utcnow

ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLES = (ROLE_ADMIN, ROLE_USER)


def default_profile_pic(first_name: str, last_name: str) -> str:
    """Avatar URL derived from the user's name."""
    return f"https://ui-avatars.com/api/?name={quote_plus(first_name)}+{quote_plus(last_name)}"


class User(Base):
    """Registered author account.

    ``password`` only ever holds a bcrypt hash; ``UserStore`` hashes it when
    the attribute changes. The reset token columns are set and cleared
    together.
    """

    __tablename__ = "user"
    __table_args__ = (
        CheckConstraint("role IN ('admin', 'user')", name="ck_user_role"),
        CheckConstraint(
            "(password_reset_token_hash IS NULL) = (password_reset_expires_at IS NULL)",
            name="ck_user_reset_token_pair",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(128), nullable=False)
    last_name = Column(String(128), nullable=False)
    email = Column(String(256), unique=True, nullable=False, index=True)
    password = Column(String(256), nullable=False)
    profile_pic = Column(String(512), nullable=False)
    role = Column(String(16), nullable=False, default=ROLE_USER)
    password_reset_token_hash = Column(String(64), nullable=True, index=True)
    password_reset_expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    blogs = relationship("Blog", back_populates="author", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def clear_password_reset(self) -> None:
        self.password_reset_token_hash = None
        self.password_reset_expires_at = None
