# backend/gymbook/services/finance_export_service.py
"""
Finance Export Service

Produces the bookings ledger as CSV for the club's accounts: one row per
booking in the reporting period, a running balance, and a summary block.
"""

import csv
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
import io
import logging
from typing import List, Optional, Tuple

import pytz
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ValidationException
from ..core.timezone_utils import club_now, get_club_timezone, to_club_time
from ..models.booking import Booking, BookingStatus, PaymentMethod
from ..repositories.booking_repository import BookingRepository
from .base import BaseService

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "Transaction Date",
    "Transaction ID",
    "Member Name",
    "Member Email",
    "Service Description",
    "Class Date",
    "Class Time",
    "Status",
    "Payment Method",
    "Amount (GBP)",
    "Running Balance (GBP)",
]

PERIODS = ("today", "week", "month", "lastmonth", "taxyear", "all")

PERIOD_LABELS = {
    "today": "Today",
    "week": "This Week",
    "month": "This Month",
    "lastmonth": "Last Month",
    "taxyear": "Current Tax Year",
    "all": "All Time",
}

ZERO = Decimal("0.00")


@dataclass
class PeriodBounds:
    start: Optional[datetime]
    end: Optional[datetime]


def _midnight(day: date) -> datetime:
    return get_club_timezone().localize(datetime.combine(day, time.min))


def tax_year_start(today: date) -> date:
    """UK tax years start on 6 April."""
    start = date(today.year, 4, 6)
    return start if today >= start else date(today.year - 1, 4, 6)


def period_bounds(period: str, now: datetime) -> PeriodBounds:
    """
    Club-local [start, end) window for a reporting period.

    Raises:
        ValidationException: Unknown period name
    """
    today = to_club_time(now).date()
    month_start = today.replace(day=1)
    if period == "today":
        return PeriodBounds(_midnight(today), None)
    if period == "week":
        return PeriodBounds(_midnight(today - timedelta(days=today.weekday())), None)
    if period == "month":
        return PeriodBounds(_midnight(month_start), None)
    if period == "lastmonth":
        last_month_start = (month_start - timedelta(days=1)).replace(day=1)
        return PeriodBounds(_midnight(last_month_start), _midnight(month_start))
    if period == "taxyear":
        return PeriodBounds(_midnight(tax_year_start(today)), None)
    if period == "all":
        return PeriodBounds(None, None)
    raise ValidationException(
        f"Unknown period '{period}'. Use one of: {', '.join(PERIODS)}", code="INVALID_PERIOD"
    )


def signed_amount(booking: Booking) -> Decimal:
    """Ledger amount: free sessions are zero, cancellations are negative."""
    if booking.is_free_session:
        return ZERO
    price = Decimal(str(booking.price or ZERO))
    if booking.status == BookingStatus.CANCELLED.value:
        return -price
    return price


def payment_method_label(booking: Booking) -> str:
    if booking.is_free_session:
        return "Free First Session"
    if booking.payment_method == PaymentMethod.CASH.value:
        return "Cash"
    return "Card"


def member_identity(booking: Booking) -> Tuple[str, str]:
    if booking.member_deleted or booking.member is None:
        return booking.deleted_member_name or "Deleted Member", "(Account Deleted)"
    return booking.member.name, booking.member.email


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


class FinanceExportService(BaseService):
    def __init__(self, db: Session, booking_repository: Optional[BookingRepository] = None):
        super().__init__(db)
        self.repository = booking_repository or BookingRepository(db)

    @BaseService.measure_operation("export_bookings_csv")
    def export_bookings_csv(self, period: str = "all", now: Optional[datetime] = None) -> str:
        """
        Render the ledger for a period as CSV text.

        Args:
            period: One of today, week, month, lastmonth, taxyear, all
            now: Reference time (defaults to the club's now)

        Returns:
            CSV document with data rows followed by a summary block
        """
        current = now or club_now()
        bounds = period_bounds(period, current)
        bookings = self._bookings_in(bounds)

        output = io.StringIO(newline="")
        writer = csv.writer(output)
        writer.writerow(CSV_HEADERS)

        balance = ZERO
        for booking in bookings:
            amount = signed_amount(booking)
            balance += amount
            writer.writerow(self._row(booking, amount, balance))

        for row in self._summary(bookings, period, current):
            writer.writerow(row)

        self.log_operation("export_bookings_csv", period=period, rows=len(bookings))
        return output.getvalue()

    def _bookings_in(self, bounds: PeriodBounds) -> List[Booking]:
        # booked_at is stored in UTC
        start = bounds.start.astimezone(pytz.utc) if bounds.start else None
        end = bounds.end.astimezone(pytz.utc) if bounds.end else None
        return self.repository.list_between(start=start, end=end)

    @staticmethod
    def _row(booking: Booking, amount: Decimal, balance: Decimal) -> List[str]:
        name, email = member_identity(booking)
        gym_class = booking.gym_class
        title = gym_class.title if gym_class else "Session"
        description = f"Boxing class: {title}"
        if booking.is_free_session:
            description += " (FREE)"
        booked_at = to_club_time(booking.booked_at) if booking.booked_at else None
        return [
            booked_at.strftime("%d/%m/%Y %H:%M:%S") if booked_at else "",
            booking.id,
            name,
            email,
            description,
            gym_class.date.isoformat() if gym_class else "",
            gym_class.time if gym_class else "",
            booking.status,
            payment_method_label(booking),
            _money(amount),
            _money(balance),
        ]

    @staticmethod
    def _summary(bookings: List[Booking], period: str, now: datetime) -> List[List[str]]:
        confirmed = [b for b in bookings if b.status == BookingStatus.CONFIRMED.value]
        paid = [b for b in confirmed if not b.is_free_session]
        free = [b for b in confirmed if b.is_free_session]
        cancelled_paid = [
            b for b in bookings if b.status == BookingStatus.CANCELLED.value and not b.is_free_session
        ]
        awaiting_cash = [b for b in bookings if b.status == BookingStatus.PENDING_CASH.value]

        session_price = Decimal(settings.session_price)
        gross = sum((Decimal(str(b.price)) for b in paid), ZERO)
        refunded = sum((Decimal(str(b.price)) for b in cancelled_paid), ZERO)
        owed = sum((Decimal(str(b.price)) for b in awaiting_cash), ZERO)
        free_value = session_price * len(free)

        return [
            [],
            ["FINANCIAL SUMMARY"],
            ["Business Name", settings.club_name],
            ["Report Period", PERIOD_LABELS[period]],
            ["Generated", to_club_time(now).strftime("%d/%m/%Y %H:%M:%S")],
            [],
            ["Total Bookings", str(len(confirmed))],
            ["Paid Bookings", str(len(paid))],
            ["Free Sessions", str(len(free))],
            ["Free Sessions Value (Promotional)", f"£{_money(free_value)}"],
            ["Cash Awaiting Payment", f"£{_money(owed)}"],
            [],
            ["Gross Revenue", f"£{_money(gross)}"],
            ["Cancelled / Refunded", f"£{_money(refunded)}"],
            ["Net Revenue", f"£{_money(gross)}"],
            ["VAT", "Not VAT registered"],
            [],
            ["Note: Free first sessions are promotional - no revenue recorded"],
            ["Note: VAT not charged - turnover below the registration threshold"],
            ["Records retained for HMRC compliance (6 years minimum)"],
        ]
