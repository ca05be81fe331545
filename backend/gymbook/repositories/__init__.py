"""
Repository layer.

Repositories encapsulate SQLAlchemy queries; services own transactions.
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .class_repository import ClassRepository, ClassTemplateRepository
from .content_repository import BlogPostRepository, SiteContentRepository
from .member_repository import MemberRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "ClassRepository",
    "ClassTemplateRepository",
    "BlogPostRepository",
    "SiteContentRepository",
    "MemberRepository",
]
