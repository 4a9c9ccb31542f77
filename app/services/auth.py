"""Account flows: registration, login and password recovery."""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.errors import (
    DuplicateKeyError,
    InvalidOrExpiredTokenError,
    NotFoundError,
    UnauthenticatedError,
    UpstreamFailureError,
    ValidationError,
)
from app.models.user import User
from app.services.jwt import JWTService, get_jwt_service
from app.services.mailer import MailDeliveryError, Mailer, get_mailer
from app.services.reset_token import ResetTokenService, get_reset_token_service
from app.services.users import UserStore, get_user_store, verify_password

logger = logging.getLogger("inkpost")

MIN_PASSWORD_LENGTH = 6
# bcrypt only accepts secrets up to 72 bytes.
MAX_PASSWORD_BYTES = 72


@dataclass
class AuthResult:
    """A user together with a freshly issued bearer token."""

    user: User
    token: str


def validate_new_password(new_password: str | None, confirm_password: str | None = None) -> None:
    """Raise ValidationError unless the new password is usable."""
    if not new_password:
        raise ValidationError("Please provide a new password", errors={"newPassword": "required"})
    if confirm_password is not None and new_password != confirm_password:
        raise ValidationError(
            "New password and confirm password do not match",
            errors={"confirmNewPassword": "does not match newPassword"},
        )
    check_password_length(new_password, "newPassword")


def check_password_length(password: str, field: str) -> None:
    """Raise ValidationError, reported against ``field``, if ``password`` is too short or too long to hash."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
            errors={field: f"minimum length is {MIN_PASSWORD_LENGTH}"},
        )
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(
            f"Password must be at most {MAX_PASSWORD_BYTES} bytes long",
            errors={field: f"maximum length is {MAX_PASSWORD_BYTES} bytes"},
        )


class AuthService:
    """Handles user registration, authentication and password resets."""

    def __init__(
        self,
        settings: Settings,
        users: UserStore,
        jwt_service: JWTService,
        reset_tokens: ResetTokenService,
        mailer: Mailer,
    ) -> None:
        self.settings = settings
        self.users = users
        self.jwt_service = jwt_service
        self.reset_tokens = reset_tokens
        self.mailer = mailer

    def issue_token(self, user: User) -> str:
        return self.jwt_service.create_token(user_id=user.id, role=user.role)

    def register(
        self,
        db: Session,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        profile_pic: str | None = None,
    ) -> AuthResult:
        """Create an account and log it in. Raises DuplicateKeyError if the email is taken."""
        fields = {"firstName": first_name, "lastName": last_name, "email": email, "password": password}
        missing = {name: f"{name} is required" for name, value in fields.items() if not value or not value.strip()}
        if missing:
            raise ValidationError(errors=missing)
        check_password_length(password, "password")

        if self.users.find_by_email(db, email):
            raise DuplicateKeyError("User already exists", errors={"email": "email already exists"})

        user = self.users.create(
            db,
            first_name=first_name,
            last_name=last_name,
            email=email,
            password=password,
            profile_pic=profile_pic,
        )
        logger.info("Registered user %d", user.id)
        return AuthResult(user=user, token=self.issue_token(user))

    def authenticate(self, db: Session, email: str, password: str) -> AuthResult:
        """Check credentials. Unknown email and wrong password fail identically."""
        user = self.users.find_by_email(db, email)
        if not user or not verify_password(password, user.password):
            raise UnauthenticatedError("Invalid credentials")
        return AuthResult(user=user, token=self.issue_token(user))

    def change_password(
        self, db: Session, user_id: int, new_password: str | None, confirm_password: str | None = None
    ) -> None:
        """Set a new password for an already authenticated user."""
        validate_new_password(new_password, confirm_password)
        user = self.users.find_by_id(db, user_id)
        if not user:
            raise NotFoundError("User not found")
        user.password = new_password
        self.users.save(db, user)
        logger.info("Password changed for user %d", user.id)

    def request_password_reset(self, db: Session, email: str) -> None:
        """Email a reset link if the account exists.

        Returns the same way whether or not the email is registered. If the
        email cannot be delivered the stored token is cleared again so the
        request can simply be repeated.
        """
        user = self.users.find_by_email(db, email)
        if not user:
            logger.info("Password reset requested for unknown email")
            return

        issued = self.reset_tokens.issue()
        user.password_reset_token_hash = issued.token_hash
        user.password_reset_expires_at = issued.expires_at
        self.users.save(db, user)

        reset_url = f"{self.settings.FRONTEND_URL.rstrip('/')}/reset-password/{issued.plaintext}"
        try:
            self.mailer.send_password_reset_email(
                to=user.email,
                name=user.full_name,
                reset_url=reset_url,
                expires_in_minutes=self.reset_tokens.expire_minutes,
            )
        except MailDeliveryError as e:
            user.clear_password_reset()
            self.users.save(db, user)
            raise UpstreamFailureError("Email could not be sent. Please try again later.") from e

        logger.info("Password reset email sent for user %d", user.id)

    def reset_password(
        self, db: Session, token: str, new_password: str | None, confirm_password: str | None = None
    ) -> AuthResult:
        """Set a new password using an emailed reset token. Returns a bearer token for auto-login."""
        validate_new_password(new_password, confirm_password)

        user = self.reset_tokens.consume(db, token)
        if not user:
            raise InvalidOrExpiredTokenError()

        user.password = new_password
        self.users.save(db, user)
        logger.info("Password reset completed for user %d", user.id)
        return AuthResult(user=user, token=self.issue_token(user))


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService(
            settings=get_settings(),
            users=get_user_store(),
            jwt_service=get_jwt_service(),
            reset_tokens=get_reset_token_service(),
            mailer=get_mailer(),
        )
    return _auth_service
