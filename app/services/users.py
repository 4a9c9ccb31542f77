"""User persistence: lookups, creation and hash-on-save."""

import logging

import bcrypt
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import DuplicateKeyError
from app.models.user import ROLE_USER, User, default_profile_pic

logger = logging.getLogger("inkpost")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


class UserStore:
    """Reads and writes ``User`` rows.

    ``create`` and ``save`` are the only write paths, and both run the
    password through ``_hash_password_if_changed`` before flushing, so a
    plaintext password never reaches the database and an existing hash is
    never hashed a second time.
    """

    def find_by_email(self, db: Session, email: str) -> User | None:
        return db.query(User).filter(User.email == normalize_email(email)).first()

    def find_by_id(self, db: Session, user_id: int) -> User | None:
        return db.get(User, user_id)

    def list_users(self, db: Session) -> list[User]:
        return db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()

    def create(
        self,
        db: Session,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        role: str = ROLE_USER,
        profile_pic: str | None = None,
    ) -> User:
        """Insert a new user. Raises DuplicateKeyError if the email is taken."""
        first_name = first_name.strip()
        last_name = last_name.strip()
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=normalize_email(email),
            password=password,
            role=role,
            profile_pic=profile_pic or default_profile_pic(first_name, last_name),
        )
        db.add(user)
        self.save(db, user)
        return user

    def save(self, db: Session, user: User) -> None:
        """Hash a changed password and commit the user."""
        self._hash_password_if_changed(user)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.info("Rejected duplicate email %s", user.email)
            raise DuplicateKeyError("User already exists", errors={"email": "email already exists"}) from e
        db.refresh(user)

    def delete(self, db: Session, user: User) -> None:
        db.delete(user)
        db.commit()

    def _hash_password_if_changed(self, user: User) -> None:
        state = inspect(user)
        if state.pending or state.transient:
            user.password = hash_password(user.password)
            return
        history = state.attrs.password.history
        if history.added and history.added[0] != (history.deleted[0] if history.deleted else None):
            user.password = hash_password(history.added[0])


_user_store: UserStore | None = None


def get_user_store() -> UserStore:
    """Get singleton user store instance."""
    global _user_store
    if _user_store is None:
        _user_store = UserStore()
    return _user_store
