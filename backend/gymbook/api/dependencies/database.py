# backend/gymbook/api/dependencies/database.py
"""Database session dependency; tests override this function."""

from typing import Generator

from sqlalchemy.orm import Session

from ...database import get_db as session_scope


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session, committed on success and always closed."""
    yield from session_scope()
