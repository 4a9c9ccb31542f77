"""Pydantic schemas for authentication endpoints."""

from datetime import datetime

from pydantic import EmailStr, Field

from app.schemas.base import CamelModel


class LoginRequest(CamelModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class ForgotPasswordRequest(CamelModel):
    email: EmailStr


class ChangePasswordRequest(CamelModel):
    new_password: str | None = None
    confirm_new_password: str | None = None


class UserPublic(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str
    profile_pic: str
    role: str
    created_at: datetime
    updated_at: datetime


class AuthResponse(CamelModel):
    success: bool = True
    data: UserPublic
    token: str


class UserResponse(CamelModel):
    success: bool = True
    data: UserPublic


class UserListResponse(CamelModel):
    success: bool = True
    count: int
    data: list[UserPublic]


class MessageResponse(CamelModel):
    success: bool = True
    message: str
