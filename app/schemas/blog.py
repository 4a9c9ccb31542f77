"""Pydantic schemas for blog endpoints."""

from datetime import datetime

from pydantic import Field

from app.schemas.base import CamelModel


class AuthorSummary(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str
    profile_pic: str


class BlogResponse(CamelModel):
    id: int
    title: str
    content: str
    summary: str
    featured_image: str
    author_id: int
    author: AuthorSummary
    created_at: datetime
    updated_at: datetime


class BlogUpdateRequest(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=256)
    content: str | None = Field(default=None, min_length=1)
    featured_image: str | None = Field(default=None, min_length=1, max_length=512)


class Pagination(CamelModel):
    total: int
    page: int
    pages: int
    limit: int


class BlogListResponse(CamelModel):
    success: bool = True
    count: int
    pagination: Pagination
    data: list[BlogResponse]


class BlogEnvelope(CamelModel):
    success: bool = True
    data: BlogResponse
