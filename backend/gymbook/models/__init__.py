"""
Database models for the club booking service.

- Member: club members and administrators
- ClassTemplate / ClassInstance: weekly schedule and dated sessions
- Booking: the booking ledger
- SiteContent / BlogPost: editable site content
"""

from .booking import Booking, BookingStatus, PaymentMethod
from .content import BlogPost, SiteContent
from .gym_class import ClassInstance, ClassTemplate
from .member import Member

__all__ = [
    "Booking",
    "BookingStatus",
    "PaymentMethod",
    "BlogPost",
    "SiteContent",
    "ClassInstance",
    "ClassTemplate",
    "Member",
]
