"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from pydantic import EmailStr
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user, require_admin
from app.errors import NotFoundError, ValidationError
from app.gates import CurrentUser, RequestContext
from app.rate_limit import limiter
from app.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    UserListResponse,
    UserPublic,
    UserResponse,
)
from app.services.auth import get_auth_service
from app.services.uploads import get_upload_service
from app.services.users import get_user_store

logger = logging.getLogger("inkpost")

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

FORGOT_PASSWORD_MESSAGE = "If an account exists for that email, a password reset link has been sent."


@router.post("/register", response_model=AuthResponse, status_code=201)
@limiter.limit("5/minute")
async def register(
    request: Request,
    first_name: str = Form(..., alias="firstName", max_length=128),
    last_name: str = Form(..., alias="lastName", max_length=128),
    email: EmailStr = Form(...),
    password: str = Form(...),
    profile_pic: UploadFile | None = File(None, alias="profilePic"),
    db: Session = Depends(get_db),
) -> AuthResponse:
    """Register a new user account, optionally with a profile picture."""
    uploads = get_upload_service()
    picture_url = None
    if profile_pic is not None and profile_pic.filename:
        try:
            picture_url = await uploads.store_file(profile_pic)
        except ValueError as e:
            raise ValidationError(str(e), errors={"profilePic": str(e)}) from None

    try:
        result = await run_in_threadpool(
            get_auth_service().register,
            db,
            first_name=first_name,
            last_name=last_name,
            email=email,
            password=password,
            profile_pic=picture_url,
        )
    except Exception:
        uploads.delete_file(picture_url)
        raise

    return AuthResponse(data=UserPublic.model_validate(result.user), token=result.token)


@router.post("/login", response_model=AuthResponse)
@limiter.limit("10/minute")
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> AuthResponse:
    """Authenticate and receive a JWT token."""
    result = get_auth_service().authenticate(db, body.email, body.password)
    return AuthResponse(data=UserPublic.model_validate(result.user), token=result.token)


@router.get("/me", response_model=UserResponse)
def get_me(user: CurrentUser = Depends(get_current_user)) -> UserResponse:
    """Return the authenticated user."""
    return UserResponse(data=UserPublic.model_validate(user))


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit("3/minute")
def forgot_password(request: Request, body: ForgotPasswordRequest, db: Session = Depends(get_db)) -> MessageResponse:
    """Request a password reset email. The response does not reveal whether the account exists."""
    get_auth_service().request_password_reset(db, body.email)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.put("/reset-password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Change the authenticated user's password."""
    get_auth_service().change_password(db, user.id, body.new_password, body.confirm_new_password)
    return MessageResponse(message="Password updated successfully")


@router.post("/reset-password/{token}", response_model=AuthResponse)
@limiter.limit("5/minute")
def reset_password(
    request: Request, token: str, body: ChangePasswordRequest, db: Session = Depends(get_db)
) -> AuthResponse:
    """Reset password using an emailed token. Returns JWT for auto-login."""
    result = get_auth_service().reset_password(db, token, body.new_password, body.confirm_new_password)
    return AuthResponse(data=UserPublic.model_validate(result.user), token=result.token)


@router.get("/users", response_model=UserListResponse)
def list_users(ctx: RequestContext = Depends(require_admin)) -> UserListResponse:
    """List all accounts. Admin only."""
    users = get_user_store().list_users(ctx.db)
    return UserListResponse(count=len(users), data=[UserPublic.model_validate(u) for u in users])


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(user_id: int, ctx: RequestContext = Depends(require_admin)) -> MessageResponse:
    """Delete an account together with its blogs. Admin only."""
    if user_id == ctx.identity.id:  # type: ignore[union-attr]
        raise ValidationError("Admins cannot delete their own account")

    store = get_user_store()
    user = store.find_by_id(ctx.db, user_id)
    if not user:
        raise NotFoundError("User not found")

    stored_files = [blog.featured_image for blog in user.blogs] + [user.profile_pic]
    store.delete(ctx.db, user)

    uploads = get_upload_service()
    for path in stored_files:
        uploads.delete_file(path)

    logger.info("User %d deleted by admin %d", user_id, ctx.identity.id)  # type: ignore[union-attr]
    return MessageResponse(message="User deleted")
