# backend/gymbook/repositories/member_repository.py
"""Data access for club members."""

import logging
from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.member import Member
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class MemberRepository(BaseRepository[Member]):
    def __init__(self, db: Session):
        super().__init__(db, Member)

    def get_by_email(self, email: str) -> Optional[Member]:
        """Case-insensitive lookup; emails are stored lower-cased."""
        try:
            return (
                self.db.query(Member)
                .filter(func.lower(Member.email) == email.strip().lower())
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting member by email: {str(e)}")
            raise RepositoryException(f"Failed to retrieve member: {str(e)}")

    def get_by_phone(self, phone: str) -> Optional[Member]:
        return self.find_one_by(phone=phone)

    def get_by_verification_token(self, token: str) -> Optional[Member]:
        return self.find_one_by(email_verification_token=token)

    def get_by_reset_token(self, token: str) -> Optional[Member]:
        return self.find_one_by(password_reset_token=token)

    def list_members(self) -> List[Member]:
        """All members, newest first."""
        query = self._build_query().order_by(Member.created_at.desc(), Member.id.desc())
        return self._execute_query(query)

    def set_free_session_used(self, member_id: str, used: bool) -> None:
        """Write the free-session flag without loading the row."""
        try:
            self.db.query(Member).filter(Member.id == member_id).update(
                {Member.has_used_free_session: used}, synchronize_session="fetch"
            )
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating free session flag for {member_id}: {str(e)}")
            raise RepositoryException(f"Failed to update member: {str(e)}")

    def claim_free_session(self, member_id: str) -> bool:
        """
        Mark the free session used, but only if it is still unused.

        Returns:
            True if this call claimed it, False if it was already used
        """
        stmt = (
            update(Member)
            .where(Member.id == member_id, Member.has_used_free_session.is_(False))
            .values(has_used_free_session=True)
            .execution_options(synchronize_session="fetch")
        )
        try:
            result = self.db.execute(stmt)
            return result.rowcount == 1
        except SQLAlchemyError as e:
            self.logger.error(f"Error claiming free session for {member_id}: {str(e)}")
            raise RepositoryException(f"Failed to update member: {str(e)}")
