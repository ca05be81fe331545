# backend/gymbook/api/dependencies/auth.py
"""
Authentication and authorization dependencies.

Member lookups run through asyncio.to_thread so the sync session never
blocks the event loop.
"""

import asyncio
import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...auth import get_current_user_email
from ...models.member import Member
from ...repositories.member_repository import MemberRepository
from .database import get_db

logger = logging.getLogger(__name__)


async def get_current_member(
    current_user_email: str = Depends(get_current_user_email),
    db: Session = Depends(get_db),
) -> Member:
    """
    Get the current authenticated member from the database.

    Raises:
        HTTPException: 401 if the token's member no longer exists
    """
    member = await asyncio.to_thread(MemberRepository(db).get_by_email, current_user_email)
    if member is None:
        logger.info(f"Token for unknown member {current_user_email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return member


async def require_admin(current_member: Member = Depends(get_current_member)) -> Member:
    """Require the caller to be an admin."""
    if not current_member.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_member
