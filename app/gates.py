"""Request gates.

A gate inspects a ``RequestContext`` and returns ``None`` to let the request
through or the ``AppError`` that rejects it. Routes declare their gates in
order with ``pipeline``; the first failing gate ends the request before the
handler runs, so a rejected request has no side effects.

    @router.put("/{blog_id}")
    def update_blog(ctx: RequestContext = Depends(pipeline(authenticate, owns_blog))): ...
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import AppError, ForbiddenError, NotFoundError, UnauthenticatedError
from app.models.user import ROLE_ADMIN, User
from app.services.blog import get_blog_service
from app.services.jwt import get_jwt_service
from app.services.users import get_user_store


@dataclass
class CurrentUser:
    """Authenticated user context. Never carries the password hash."""

    id: int
    first_name: str
    last_name: str
    email: str
    profile_pic: str
    role: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "CurrentUser":
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            profile_pic=user.profile_pic,
            role=user.role,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


@dataclass
class RequestContext:
    """What the gates and handlers know about the current request."""

    headers: Mapping[str, str]
    params: dict[str, Any]
    query: dict[str, str]
    db: Session
    identity: CurrentUser | None = None
    resource: Any = None


Gate = Callable[[RequestContext], AppError | None]


def bearer_token(headers: Mapping[str, str]) -> str | None:
    """Token from an ``Authorization: Bearer <token>`` header, if well formed."""
    scheme, _, token = headers.get("authorization", "").partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


def authenticate(ctx: RequestContext) -> AppError | None:
    """Resolve the bearer token to a live user."""
    token = bearer_token(ctx.headers)
    if not token:
        return UnauthenticatedError("Not authorized, no token provided")

    claims = get_jwt_service().decode_token(token)
    if not claims:
        return UnauthenticatedError("Not authorized, token failed")

    user = get_user_store().find_by_id(ctx.db, claims.user_id)
    if not user:
        return UnauthenticatedError("Not authorized, user not found")

    ctx.identity = CurrentUser.from_user(user)
    return None


def authorize(*roles: str) -> Gate:
    """Gate admitting only authenticated users whose role is in ``roles``."""

    def check_role(ctx: RequestContext) -> AppError | None:
        if ctx.identity is None:
            return UnauthenticatedError()
        if ctx.identity.role not in roles:
            return ForbiddenError()
        return None

    return check_role


def owns_blog(ctx: RequestContext) -> AppError | None:
    """Load the blog named by the ``blog_id`` path parameter; admit its author or an admin."""
    if ctx.identity is None:
        return UnauthenticatedError()
    try:
        blog_id = int(ctx.params["blog_id"])
    except (KeyError, TypeError, ValueError):
        return NotFoundError("Blog not found")

    blog = get_blog_service().get_blog(ctx.db, blog_id)
    if not blog:
        return NotFoundError("Blog not found")
    if blog.author_id != ctx.identity.id and not ctx.identity.is_admin:
        return ForbiddenError("You are not authorized to perform this action")

    ctx.resource = blog
    return None


def pipeline(*gates: Gate) -> Callable[..., RequestContext]:
    """Build a dependency that runs ``gates`` in order and yields the context."""

    def run_gates(request: Request, db: Session = Depends(get_db)) -> RequestContext:
        ctx = RequestContext(
            headers=request.headers,
            params=dict(request.path_params),
            query=dict(request.query_params),
            db=db,
        )
        for gate in gates:
            error = gate(ctx)
            if error is not None:
                raise error
        request.state.user = ctx.identity
        return ctx

    return run_gates
