# backend/gymbook/repositories/content_repository.py
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..models.content import BlogPost, SiteContent
from .base_repository import BaseRepository


class SiteContentRepository(BaseRepository[SiteContent]):
    def __init__(self, db: Session):
        super().__init__(db, SiteContent)

    def get_by_key(self, key: str) -> Optional[SiteContent]:
        return self.find_one_by(key=key)


class BlogPostRepository(BaseRepository[BlogPost]):
    def __init__(self, db: Session):
        super().__init__(db, BlogPost)

    def get_by_id_or_slug(self, id_or_slug: str) -> Optional[BlogPost]:
        query = self._build_query().filter(
            or_(BlogPost.id == id_or_slug, BlogPost.slug == id_or_slug)
        )
        results = self._execute_query(query.limit(1))
        return results[0] if results else None

    def get_by_slug(self, slug: str) -> Optional[BlogPost]:
        return self.find_one_by(slug=slug)

    def list_posts(self, published_only: bool = True) -> List[BlogPost]:
        query = self._build_query()
        if published_only:
            query = query.filter(BlogPost.published.is_(True))
        return self._execute_query(query.order_by(BlogPost.created_at.desc()))
