# backend/gymbook/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import admin, auth, bookings, classes, content, health, members

__all__ = [
    "admin",
    "auth",
    "bookings",
    "classes",
    "content",
    "health",
    "members",
]
