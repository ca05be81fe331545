"""Site content, blog and contact form schemas."""

from datetime import datetime
import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ._strict_base import StrictRequestModel

_SLUG = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


class SiteContentUpdate(StrictRequestModel):
    content: Dict[str, Any]


class SiteContentResponse(BaseModel):
    key: str
    content: Dict[str, Any]
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BlogPostCreate(StrictRequestModel):
    title: str = Field(..., min_length=1, max_length=200)
    slug: str = Field(..., min_length=1, max_length=200)
    excerpt: Optional[str] = None
    content: str = Field(..., min_length=1)
    featured_image: Optional[str] = Field(default=None, max_length=500)
    meta_title: Optional[str] = Field(default=None, max_length=60)
    meta_description: Optional[str] = Field(default=None, max_length=160)
    published: bool = False

    @field_validator("slug")
    @classmethod
    def _validate_slug(cls, v: str) -> str:
        v = v.lower()
        if not _SLUG.fullmatch(v):
            raise ValueError("Slug may only contain lowercase letters, numbers and hyphens")
        return v


class BlogPostUpdate(StrictRequestModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=200)
    excerpt: Optional[str] = None
    content: Optional[str] = Field(default=None, min_length=1)
    featured_image: Optional[str] = Field(default=None, max_length=500)
    meta_title: Optional[str] = Field(default=None, max_length=60)
    meta_description: Optional[str] = Field(default=None, max_length=160)
    published: Optional[bool] = None

    @field_validator("slug")
    @classmethod
    def _validate_slug(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.lower()
        if not _SLUG.fullmatch(v):
            raise ValueError("Slug may only contain lowercase letters, numbers and hyphens")
        return v


class BlogPostResponse(BaseModel):
    id: str
    title: str
    slug: str
    excerpt: Optional[str] = None
    content: str
    featured_image: Optional[str] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    published: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ContactRequest(StrictRequestModel):
    """Contact form submission; lengths are enforced by truncation, not rejection."""

    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    subject: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)


class ContactResponse(BaseModel):
    success: bool
    message: str
