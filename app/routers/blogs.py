"""Blog API endpoints."""

import math

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import require_auth, require_blog_owner
from app.errors import NotFoundError, ValidationError
from app.gates import RequestContext
from app.rate_limit import limiter
from app.schemas.auth import MessageResponse
from app.schemas.blog import BlogEnvelope, BlogListResponse, BlogResponse, BlogUpdateRequest, Pagination
from app.services.blog import MAX_PAGE_SIZE, get_blog_service
from app.services.uploads import get_upload_service

router = APIRouter(prefix="/api/blogs", tags=["Blogs"])


@router.get("", response_model=BlogListResponse)
def list_blogs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    q: str | None = Query(None, max_length=200),
    db: Session = Depends(get_db),
) -> BlogListResponse:
    """List blogs, newest first, with optional search."""
    items, total = get_blog_service().list_blogs(db, page=page, limit=limit, search=q)
    return BlogListResponse(
        count=len(items),
        pagination=Pagination(total=total, page=page, pages=math.ceil(total / limit), limit=limit),
        data=[BlogResponse.model_validate(b) for b in items],
    )


@router.get("/{blog_id}", response_model=BlogEnvelope)
def get_blog(blog_id: int, db: Session = Depends(get_db)) -> BlogEnvelope:
    """Get a single blog by ID."""
    blog = get_blog_service().get_blog(db, blog_id)
    if not blog:
        raise NotFoundError("Blog not found")
    return BlogEnvelope(data=BlogResponse.model_validate(blog))


@router.post("", response_model=BlogEnvelope, status_code=201)
@limiter.limit("20/minute")
async def create_blog(
    request: Request,
    title: str = Form(..., max_length=256),
    content: str = Form(...),
    image: UploadFile | None = File(None),
    ctx: RequestContext = Depends(require_auth),
) -> BlogEnvelope:
    """Create a blog authored by the current user, optionally with an image."""
    fields = {"title": title, "content": content}
    errors = {name: f"{name} is required" for name, value in fields.items() if not value.strip()}
    if errors:
        raise ValidationError(errors=errors)

    uploads = get_upload_service()
    image_url = None
    if image is not None and image.filename:
        try:
            image_url = await uploads.store_file(image)
        except ValueError as e:
            raise ValidationError(str(e), errors={"image": str(e)}) from None

    try:
        blog = await run_in_threadpool(
            get_blog_service().create_blog,
            ctx.db,
            author_id=ctx.identity.id,  # type: ignore[union-attr]
            title=title,
            content=content,
            featured_image=image_url,
        )
    except Exception:
        # The row was not written; the stored image would be orphaned.
        uploads.delete_file(image_url)
        raise

    return BlogEnvelope(data=BlogResponse.model_validate(blog))


@router.put("/{blog_id}", response_model=BlogEnvelope)
def update_blog(
    blog_id: int, body: BlogUpdateRequest, ctx: RequestContext = Depends(require_blog_owner)
) -> BlogEnvelope:
    """Update a blog. Author or admin only."""
    blog = get_blog_service().update_blog(ctx.db, ctx.resource, body.model_dump(exclude_unset=True))
    return BlogEnvelope(data=BlogResponse.model_validate(blog))


@router.delete("/{blog_id}", response_model=MessageResponse)
def delete_blog(blog_id: int, ctx: RequestContext = Depends(require_blog_owner)) -> MessageResponse:
    """Delete a blog. Author or admin only."""
    get_blog_service().delete_blog(ctx.db, ctx.resource)
    return MessageResponse(message="Blog deleted")
