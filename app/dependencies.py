"""Authentication dependencies for FastAPI routes."""

from fastapi import Depends

from app.gates import CurrentUser, RequestContext, authenticate, authorize, owns_blog, pipeline
from app.models.user import ROLE_ADMIN

require_auth = pipeline(authenticate)
require_admin = pipeline(authenticate, authorize(ROLE_ADMIN))
require_blog_owner = pipeline(authenticate, owns_blog)


def get_current_user(ctx: RequestContext = Depends(require_auth)) -> CurrentUser:
    """Authenticated user for the request. Raises 401 if the bearer token is missing or invalid."""
    return ctx.identity  # type: ignore[return-value]
