"""Blog post model."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.database import Base, utcnow

SUMMARY_LENGTH = 150


def default_featured_image(title: str) -> str:
    """Placeholder image seeded from the title so it stays stable per post."""
    seed = len(title) * 5
    return f"https://picsum.photos/seed/{seed}/800/400"


class Blog(Base):
    """Blog post owned by a user."""

    __tablename__ = "blog"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(256), nullable=False)
    content = Column(Text, nullable=False)
    featured_image = Column(String(512), nullable=False)
    author_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    author = relationship("User", back_populates="blogs", lazy="joined")

    @property
    def summary(self) -> str:
        if len(self.content) <= SUMMARY_LENGTH:
            return self.content
        return self.content[:SUMMARY_LENGTH] + "..."
