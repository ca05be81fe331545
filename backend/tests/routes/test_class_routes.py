"""HTTP tests for /api/v1/classes and /api/v1/bookings."""

from unittest.mock import patch
from urllib.parse import parse_qs

from fastapi.testclient import TestClient
import httpx
import pytest

from gymbook.api.dependencies.database import get_db
from gymbook.core.abuse_guard import AbuseGuard, CaptchaVerifier
from gymbook.core.config import settings
from gymbook.main import create_app
from gymbook.models.booking import Booking, BookingStatus
from gymbook.models.gym_class import ClassInstance
from gymbook.repositories.booking_repository import BookingRepository
from gymbook.services.payment_gateway import PaymentResult, StripePaymentGateway
from tests.factories.gym import auth_headers_for, make_booking, make_class, make_member


def _book_url(class_id: str) -> str:
    return f"/api/v1/classes/{class_id}/book"


class TestCalendar:
    def test_list_is_public_and_windowed(self, client, db):
        soon = make_class(db, days_ahead=1)
        make_class(db, days_ahead=30)
        make_class(db, days_ahead=2, is_active=False)

        response = client.get("/api/v1/classes")

        assert response.status_code == 200
        ids = [c["id"] for c in response.json()]
        assert ids == [soon.id]

    def test_list_materializes_templates(self, client, db):
        from gymbook.services.class_calendar_service import ClassCalendarService

        ClassCalendarService(db).seed_default_templates()

        body = client.get("/api/v1/classes").json()

        assert len(body) >= 4
        assert all(c["spots_left"] == c["capacity"] for c in body)

    def test_class_detail(self, client, gym_class):
        response = client.get(f"/api/v1/classes/{gym_class.id}")

        assert response.status_code == 200
        body = response.json()
        assert body["price"] == "5.00"
        assert body["spots_left"] == 12

    def test_unknown_class(self, client):
        response = client.get("/api/v1/classes/01HZZZZZZZZZZZZZZZZZZZZZZZ")

        assert response.status_code == 404
        assert response.json()["detail"] == "Class not found"


class TestBooking:
    def test_requires_login(self, client, gym_class):
        assert client.post(_book_url(gym_class.id)).status_code == 401

    def test_first_booking_is_free(self, client, db, member, gym_class, auth_headers):
        response = client.post(_book_url(gym_class.id), json={}, headers=auth_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["is_free_session"] is True
        assert body["price"] == "0.00"
        assert body["message"] == "Your first session is FREE! A confirmation email has been sent."
        assert body["booking"]["status"] == "confirmed"
        db.refresh(member)
        assert member.has_used_free_session is True

    def test_body_is_optional(self, client, gym_class, auth_headers):
        response = client.post(_book_url(gym_class.id), headers=auth_headers)

        assert response.status_code == 201

    def test_paid_booking_without_payment(self, client, db, gym_class):
        regular = make_member(db, has_used_free_session=True)

        response = client.post(_book_url(gym_class.id), json={}, headers=auth_headers_for(regular))

        assert response.status_code == 402
        assert response.json()["code"] == "PAYMENT_REQUIRED"

    def test_cash_booking(self, client, db, gym_class):
        regular = make_member(db, has_used_free_session=True)

        response = client.post(
            _book_url(gym_class.id), json={"pay_with_cash": True}, headers=auth_headers_for(regular)
        )

        assert response.status_code == 201
        assert response.json()["booking"]["status"] == "pending_cash"
        assert response.json()["booking"]["payment_method"] == "cash"

    def test_card_booking(self, client, db, gym_class):
        regular = make_member(db, has_used_free_session=True)
        charged = PaymentResult(success=True, payment_id="pi_route_1", status="succeeded")

        with patch.object(StripePaymentGateway, "charge", return_value=charged):
            response = client.post(
                _book_url(gym_class.id),
                json={"payment_token": "pm_card_visa"},
                headers=auth_headers_for(regular),
            )

        assert response.status_code == 201
        assert response.json()["payment_reference"] == "pi_route_1"

    def test_unconfigured_card_payments_fail_cleanly(self, client, db, gym_class):
        regular = make_member(db, has_used_free_session=True)

        response = client.post(
            _book_url(gym_class.id),
            json={"payment_token": "pm_card_visa"},
            headers=auth_headers_for(regular),
        )

        assert response.status_code == 402
        assert response.json()["code"] == "PAYMENT_FAILED"
        assert db.query(Booking).count() == 0

    def test_full_class(self, client, db, auth_headers):
        gym_class = make_class(db, capacity=1, booked_count=1)

        response = client.post(_book_url(gym_class.id), json={}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "This class is fully booked"

    def test_double_booking(self, client, gym_class, auth_headers):
        client.post(_book_url(gym_class.id), json={}, headers=auth_headers)

        response = client.post(_book_url(gym_class.id), json={"pay_with_cash": True}, headers=auth_headers)

        assert response.status_code == 409

    def test_booking_attempts_are_limited_per_address(self, client, db, abuse_guard):
        regular = make_member(db, has_used_free_session=True)
        headers = {**auth_headers_for(regular), "X-Forwarded-For": "192.0.2.50"}
        classes = [make_class(db, days_ahead=1 + n) for n in range(settings.booking_rate_limit_per_day + 1)]

        # Attempts count whether or not they succeed
        for gym_class in classes[:-1]:
            client.post(_book_url(gym_class.id), json={}, headers=headers)
        response = client.post(_book_url(classes[-1].id), json={"pay_with_cash": True}, headers=headers)

        assert response.status_code == 429
        assert response.json()["code"] == "RATE_LIMITED"
        assert abuse_guard.activity_log.recent()[-1].type == "BOOKING_RATE_LIMIT"


class TestCancellation:
    def test_member_cancels_own_booking(self, client, db, member, gym_class, auth_headers):
        booking = make_booking(db, member, gym_class)

        response = client.delete(f"/api/v1/bookings/{booking.id}", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Booking cancelled"
        assert body["free_session_restored"] is False
        db.refresh(booking)
        db.refresh(gym_class)
        assert booking.status == BookingStatus.CANCELLED.value
        assert gym_class.booked_count == 0

    def test_free_session_restored_through_api(self, client, db, member, gym_class, auth_headers):
        client.post(_book_url(gym_class.id), json={}, headers=auth_headers)
        booking = db.query(Booking).one()

        response = client.delete(f"/api/v1/bookings/{booking.id}", headers=auth_headers)

        assert response.json()["free_session_restored"] is True
        db.refresh(member)
        assert member.has_used_free_session is False

    def test_cannot_cancel_someone_elses_booking(self, client, db, gym_class, auth_headers):
        booking = make_booking(db, make_member(db), gym_class)

        response = client.delete(f"/api/v1/bookings/{booking.id}", headers=auth_headers)

        assert response.status_code == 403

    def test_unknown_booking(self, client, auth_headers):
        response = client.delete("/api/v1/bookings/01HZZZZZZZZZZZZZZZZZZZZZZZ", headers=auth_headers)

        assert response.status_code == 404


class TestFreeSessionCaptcha:
    @pytest.fixture
    def captcha_guard(self):
        def handler(request: httpx.Request) -> httpx.Response:
            form = parse_qs(request.content.decode())
            return httpx.Response(200, json={"success": form.get("response") == ["good"]})

        return AbuseGuard(
            captcha=CaptchaVerifier(
                secret_key="0x-secret",
                verify_url="https://captcha.test/siteverify",
                transport=httpx.MockTransport(handler),
            )
        )

    @pytest.fixture
    def strict_client(self, db, captcha_guard):
        app = create_app(abuse_guard=captcha_guard)
        app.dependency_overrides[get_db] = lambda: db
        return TestClient(app)

    def test_missing_token(self, strict_client, db, gym_class, auth_headers, captcha_guard):
        response = strict_client.post(_book_url(gym_class.id), json={}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "CAPTCHA_MISSING"
        assert captcha_guard.activity_log.recent()[-1].type == "MISSING_CAPTCHA_BOOKING"
        assert db.query(Booking).count() == 0

    def test_rejected_token(self, strict_client, db, gym_class, auth_headers, captcha_guard):
        response = strict_client.post(
            _book_url(gym_class.id), json={"captcha_token": "bad"}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["code"] == "CAPTCHA_FAILED"
        assert captcha_guard.activity_log.recent()[-1].type == "FAILED_CAPTCHA_BOOKING"
        assert db.query(Booking).count() == 0

    def test_accepted_token(self, strict_client, gym_class, auth_headers):
        response = strict_client.post(
            _book_url(gym_class.id), json={"captcha_token": "good"}, headers=auth_headers
        )

        assert response.status_code == 201
        assert response.json()["is_free_session"] is True

    def test_paying_members_skip_captcha(self, strict_client, db, gym_class):
        regular = make_member(db, has_used_free_session=True)

        response = strict_client.post(
            _book_url(gym_class.id), json={"pay_with_cash": True}, headers=auth_headers_for(regular)
        )

        assert response.status_code == 201


def test_seat_count_matches_live_bookings(client, db, member, admin_headers, auth_headers):
    gym_class = make_class(db, capacity=3)
    cash_payers = [make_member(db, has_used_free_session=True) for _ in range(2)]

    assert client.post(_book_url(gym_class.id), json={}, headers=auth_headers).status_code == 201
    for payer in cash_payers:
        response = client.post(
            _book_url(gym_class.id), json={"pay_with_cash": True}, headers=auth_headers_for(payer)
        )
        assert response.status_code == 201

    # Class is full now
    late = make_member(db, has_used_free_session=True)
    assert client.post(
        _book_url(gym_class.id), json={"pay_with_cash": True}, headers=auth_headers_for(late)
    ).status_code == 400

    cancelled = db.query(Booking).filter(Booking.member_id == cash_payers[0].id).one()
    assert client.delete(
        f"/api/v1/bookings/{cancelled.id}", headers=auth_headers_for(cash_payers[0])
    ).status_code == 200
    assert client.delete(
        f"/api/v1/admin/members/{member.id}", headers=admin_headers
    ).status_code == 200
    assert client.post(
        _book_url(gym_class.id), json={"pay_with_cash": True}, headers=auth_headers_for(late)
    ).status_code == 201

    db.expire_all()
    live = BookingRepository(db).count_active_for_class(gym_class.id)
    assert db.get(ClassInstance, gym_class.id).booked_count == live == 2
