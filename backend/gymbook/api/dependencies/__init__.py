# backend/gymbook/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import get_current_member, require_admin
from .database import get_db
from .services import (
    get_abuse_guard,
    get_booking_service,
    get_calendar_service,
    get_content_service,
    get_finance_export_service,
    get_member_service,
)

__all__ = [
    # Auth
    "get_current_member",
    "require_admin",
    # Database
    "get_db",
    # Services
    "get_abuse_guard",
    "get_booking_service",
    "get_calendar_service",
    "get_content_service",
    "get_finance_export_service",
    "get_member_service",
]
