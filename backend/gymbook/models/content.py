# backend/gymbook/models/content.py
"""Editable site content and blog posts."""

from sqlalchemy import JSON, Boolean, Column, DateTime, String, Text, func
import ulid

from ..database import Base


class SiteContent(Base):
    __tablename__ = "site_content"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    key = Column(String(100), unique=True, index=True, nullable=False)
    content = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class BlogPost(Base):
    __tablename__ = "blog_posts"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    title = Column(String(200), nullable=False)
    slug = Column(String(200), unique=True, index=True, nullable=False)
    excerpt = Column(Text, nullable=True)
    content = Column(Text, nullable=False)
    featured_image = Column(String(500), nullable=True)
    meta_title = Column(String(60), nullable=True)
    meta_description = Column(String(160), nullable=True)
    published = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<BlogPost {self.slug} published={self.published}>"
