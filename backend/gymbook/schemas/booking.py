"""Booking request and response schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from ._strict_base import StrictRequestModel
from .gym_class import ClassResponse


class BookingCreateRequest(StrictRequestModel):
    """
    Body of POST /classes/{id}/book.

    `payment_token` is the Stripe PaymentMethod id from the card form; it is
    ignored for free and cash bookings.
    """

    payment_token: Optional[str] = Field(default=None, max_length=255)
    pay_with_cash: bool = False
    captcha_token: Optional[str] = None


class BookingResponse(BaseModel):
    id: str
    member_id: Optional[str] = None
    class_id: str
    status: str
    is_free_session: bool
    price: Decimal
    payment_method: str
    payment_reference: Optional[str] = None
    receipt_url: Optional[str] = None
    booked_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    gym_class: Optional[ClassResponse] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("price")
    def _serialize_price(self, value: Decimal) -> str:
        return f"{value:.2f}"


class BookingMemberSummary(BaseModel):
    id: str
    name: str
    email: str
    phone: str

    model_config = ConfigDict(from_attributes=True)


class AdminBookingResponse(BookingResponse):
    member: Optional[BookingMemberSummary] = None
    member_deleted: bool = False
    deleted_member_name: Optional[str] = None


class BookingCreateResponse(BaseModel):
    booking: BookingResponse
    is_free_session: bool
    price: str
    payment_reference: Optional[str] = None
    message: str


class CancellationResponse(BaseModel):
    message: str
    free_session_restored: bool
    free_session_forfeited: bool
    refund_eligible: bool
