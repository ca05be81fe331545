# backend/gymbook/services/content_service.py
"""
Content Service

Editable site copy, the blog, and the public contact form.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import ConflictException, NotFoundException
from ..models.content import BlogPost, SiteContent
from ..repositories.content_repository import BlogPostRepository, SiteContentRepository
from ..schemas.content import BlogPostCreate, BlogPostUpdate, ContactRequest
from .base import BaseService

logger = logging.getLogger(__name__)

_SCRIPT_TAG = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_INLINE_HANDLER = re.compile(r"\bon\w+\s*=", re.IGNORECASE)

CONTACT_FIELD_LIMITS = {
    "name": 100,
    "email": 100,
    "phone": 20,
    "subject": 200,
    "message": 2000,
}


def sanitize_input(value: Optional[str], max_length: int) -> str:
    """Strip script tags and inline event handlers, then trim to length."""
    if not value:
        return ""
    cleaned = _SCRIPT_TAG.sub("", value)
    cleaned = _INLINE_HANDLER.sub("", cleaned)
    return cleaned.strip()[:max_length]


class ContentService(BaseService):
    def __init__(
        self,
        db: Session,
        content_repository: Optional[SiteContentRepository] = None,
        blog_repository: Optional[BlogPostRepository] = None,
    ):
        super().__init__(db)
        self.content_repository = content_repository or SiteContentRepository(db)
        self.blog_repository = blog_repository or BlogPostRepository(db)

    # Site content

    def get_content(self, key: str) -> SiteContent:
        entry = self.content_repository.get_by_key(key)
        if entry is None:
            raise NotFoundException("Content not found")
        return entry

    @BaseService.measure_operation("upsert_content")
    def upsert_content(self, key: str, content: Dict[str, Any]) -> SiteContent:
        with self.transaction():
            entry = self.content_repository.get_by_key(key)
            if entry is None:
                entry = self.content_repository.create(key=key, content=content)
            else:
                entry.content = content
                self.db.flush()
        self.log_operation("upsert_content", key=key)
        return entry

    # Blog

    def list_posts(self, published_only: bool = True) -> List[BlogPost]:
        return self.blog_repository.list_posts(published_only=published_only)

    def get_post(self, id_or_slug: str, published_only: bool = False) -> BlogPost:
        post = self.blog_repository.get_by_id_or_slug(id_or_slug)
        if post is None or (published_only and not post.published):
            raise NotFoundException("Post not found")
        return post

    @BaseService.measure_operation("create_post")
    def create_post(self, data: BlogPostCreate) -> BlogPost:
        if self.blog_repository.get_by_slug(data.slug) is not None:
            raise ConflictException("A post with this slug already exists", code="SLUG_TAKEN")
        with self.transaction():
            post = self.blog_repository.create(**data.model_dump())
        self.log_operation("create_post", post_id=post.id, slug=post.slug)
        return post

    @BaseService.measure_operation("update_post")
    def update_post(self, post_id: str, data: BlogPostUpdate) -> BlogPost:
        post = self.blog_repository.get_by_id(post_id)
        if post is None:
            raise NotFoundException("Post not found")

        changes = data.model_dump(exclude_unset=True)
        slug = changes.get("slug")
        if slug and slug != post.slug:
            existing = self.blog_repository.get_by_slug(slug)
            if existing is not None and existing.id != post.id:
                raise ConflictException("A post with this slug already exists", code="SLUG_TAKEN")

        with self.transaction():
            for key, value in changes.items():
                setattr(post, key, value)
            self.db.flush()
        return post

    def delete_post(self, post_id: str) -> None:
        with self.transaction():
            if not self.blog_repository.delete(post_id):
                raise NotFoundException("Post not found")
        self.log_operation("delete_post", post_id=post_id)

    # Contact form

    def submit_contact(self, data: ContactRequest, client_ip: Optional[str] = None) -> Dict[str, Any]:
        """
        Accept a contact form message.

        Every field is sanitized and truncated; nothing is persisted, the
        message is written to the application log for the club to pick up.
        """
        fields = {
            name: sanitize_input(getattr(data, name), limit)
            for name, limit in CONTACT_FIELD_LIMITS.items()
        }
        logger.info(
            "Contact form from %s <%s> (ip=%s, phone=%s): %s | %s",
            fields["name"],
            fields["email"],
            client_ip,
            fields["phone"] or "-",
            fields["subject"],
            fields["message"],
        )
        return {"success": True, "message": "Message received"}
