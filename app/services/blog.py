"""Blog service for listing, search and CRUD."""

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.errors import ValidationError
from app.models.blog import Blog, default_featured_image
from app.services.uploads import get_upload_service

MAX_PAGE_SIZE = 100
EXTERNAL_IMAGE_SCHEMES = ("http://", "https://")


class BlogService:
    """Handles blog post retrieval and management."""

    def list_blogs(
        self, db: Session, page: int = 1, limit: int = 10, search: str | None = None
    ) -> tuple[list[Blog], int]:
        """Get a page of blogs, newest first, optionally filtered by title/content. Returns (items, total)."""
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        query = db.query(Blog)

        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Blog.title.ilike(pattern), Blog.content.ilike(pattern)))

        total = query.count()
        items = query.order_by(Blog.created_at.desc(), Blog.id.desc()).offset((page - 1) * limit).limit(limit).all()
        return items, total

    def get_blog(self, db: Session, blog_id: int) -> Blog | None:
        return db.get(Blog, blog_id)

    def create_blog(
        self, db: Session, author_id: int, title: str, content: str, featured_image: str | None = None
    ) -> Blog:
        """Create a blog owned by ``author_id``."""
        title = title.strip()
        blog = Blog(
            title=title,
            content=content,
            featured_image=featured_image or default_featured_image(title),
            author_id=author_id,
        )
        db.add(blog)
        db.commit()
        db.refresh(blog)
        return blog

    def update_blog(self, db: Session, blog: Blog, changes: dict) -> Blog:
        """Apply field changes. A replaced upload is removed from disk.

        A new ``featured_image`` must be an external http(s) URL. Stored
        uploads are only ever attached by the upload path, so a blog can
        never claim (and later delete) a file it did not store.
        """
        old_image = blog.featured_image
        new_image = changes.get("featured_image")
        if new_image is not None and new_image != old_image and not new_image.startswith(EXTERNAL_IMAGE_SCHEMES):
            raise ValidationError(
                "Featured image must be an http(s) URL",
                errors={"featuredImage": "must start with http:// or https://"},
            )
        for field in ("title", "content", "featured_image"):
            if changes.get(field) is not None:
                setattr(blog, field, changes[field])
        db.commit()
        db.refresh(blog)
        if blog.featured_image != old_image:
            get_upload_service().delete_file(old_image)
        return blog

    def delete_blog(self, db: Session, blog: Blog) -> None:
        """Delete a blog record and its uploaded image."""
        image = blog.featured_image
        db.delete(blog)
        db.commit()
        get_upload_service().delete_file(image)


_blog_service: BlogService | None = None


def get_blog_service() -> BlogService:
    """Get singleton blog service instance."""
    global _blog_service
    if _blog_service is None:
        _blog_service = BlogService()
    return _blog_service
