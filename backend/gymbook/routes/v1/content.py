# backend/gymbook/routes/v1/content.py
"""
Site content, blog and contact routes - API v1

Endpoints:
    GET /content/{key}          → Editable page copy (public)
    PUT /content/{key}          → Upsert page copy (admin)
    GET /blog                   → Published posts (public)
    GET /blog/{id_or_slug}      → Single published post (public)
    POST /blog                  → Create post (admin)
    PUT /blog/{post_id}         → Update post (admin)
    DELETE /blog/{post_id}      → Delete post (admin)
    POST /contact               → Contact form (rate limited)
"""

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Body, Depends, Request

from ...api.dependencies.auth import require_admin
from ...api.dependencies.services import get_abuse_guard, get_content_service
from ...core.abuse_guard import AbuseGuard, client_ip
from ...core.exceptions import DomainException, RateLimitException
from ...errors import handle_domain_exception
from ...models.member import Member
from ...schemas.content import (
    BlogPostCreate,
    BlogPostResponse,
    BlogPostUpdate,
    ContactRequest,
    ContactResponse,
    SiteContentResponse,
    SiteContentUpdate,
)
from ...schemas.member import MessageResponse
from ...services.content_service import ContentService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["content-v1"])

CONTACT_LIMIT_MESSAGE = "Too many requests. Please try again later."


@router.get("/content/{key}", response_model=SiteContentResponse)
async def get_content(
    key: str,
    content_service: ContentService = Depends(get_content_service),
) -> SiteContentResponse:
    try:
        entry = await asyncio.to_thread(content_service.get_content, key)
    except DomainException as e:
        handle_domain_exception(e)
    return SiteContentResponse.model_validate(entry)


@router.put("/content/{key}", response_model=SiteContentResponse)
async def put_content(
    key: str,
    payload: SiteContentUpdate = Body(...),
    _: Member = Depends(require_admin),
    content_service: ContentService = Depends(get_content_service),
) -> SiteContentResponse:
    entry = await asyncio.to_thread(content_service.upsert_content, key, payload.content)
    return SiteContentResponse.model_validate(entry)


@router.get("/blog", response_model=List[BlogPostResponse])
async def list_posts(
    content_service: ContentService = Depends(get_content_service),
) -> List[BlogPostResponse]:
    posts = await asyncio.to_thread(content_service.list_posts, True)
    return [BlogPostResponse.model_validate(post) for post in posts]


@router.get("/blog/{id_or_slug}", response_model=BlogPostResponse)
async def get_post(
    id_or_slug: str,
    content_service: ContentService = Depends(get_content_service),
) -> BlogPostResponse:
    try:
        post = await asyncio.to_thread(content_service.get_post, id_or_slug, True)
    except DomainException as e:
        handle_domain_exception(e)
    return BlogPostResponse.model_validate(post)


@router.post("/blog", response_model=BlogPostResponse, status_code=201)
async def create_post(
    payload: BlogPostCreate = Body(...),
    _: Member = Depends(require_admin),
    content_service: ContentService = Depends(get_content_service),
) -> BlogPostResponse:
    try:
        post = await asyncio.to_thread(content_service.create_post, payload)
    except DomainException as e:
        handle_domain_exception(e)
    return BlogPostResponse.model_validate(post)


@router.put("/blog/{post_id}", response_model=BlogPostResponse)
async def update_post(
    post_id: str,
    payload: BlogPostUpdate = Body(...),
    _: Member = Depends(require_admin),
    content_service: ContentService = Depends(get_content_service),
) -> BlogPostResponse:
    try:
        post = await asyncio.to_thread(content_service.update_post, post_id, payload)
    except DomainException as e:
        handle_domain_exception(e)
    return BlogPostResponse.model_validate(post)


@router.delete("/blog/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: str,
    _: Member = Depends(require_admin),
    content_service: ContentService = Depends(get_content_service),
) -> MessageResponse:
    try:
        await asyncio.to_thread(content_service.delete_post, post_id)
    except DomainException as e:
        handle_domain_exception(e)
    return MessageResponse(message="Post deleted")


@router.post("/contact", response_model=ContactResponse)
async def submit_contact(
    request: Request,
    payload: ContactRequest = Body(...),
    guard: AbuseGuard = Depends(get_abuse_guard),
    content_service: ContentService = Depends(get_content_service),
) -> ContactResponse:
    ip = client_ip(request)
    decision = await guard.contact.check(ip)
    if not decision.allowed:
        handle_domain_exception(RateLimitException(CONTACT_LIMIT_MESSAGE))
    result = await asyncio.to_thread(content_service.submit_contact, payload, ip)
    return ContactResponse(**result)
