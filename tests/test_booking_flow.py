import asyncio
import datetime
import json

import httpx
import pytest

from edgehomes.booking_flow import (
    SUBMIT_FAILED_MESSAGE,
    BookingAction,
    BookingDraft,
    BookingStep,
    build_payment_payload,
    handle_action,
    next_step,
    submit_payment,
    total_amount,
    validate_draft,
)

from conftest import FakeBackend, build_backend_client

TODAY = datetime.date(2025, 3, 1)


def _draft(**overrides):
    values = {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "phone": "+2348012345678",
        "check_in": "2025-03-04",
        "check_out": "2025-03-06",
    }
    values.update(overrides)
    return BookingDraft(**values)


def test_step_transitions():
    assert next_step(BookingStep.OPTIONS, BookingAction.PAY) == BookingStep.PAY
    assert next_step(BookingStep.OPTIONS, BookingAction.OWNER) == BookingStep.OWNER
    assert next_step(BookingStep.PAY, BookingAction.BACK) == BookingStep.OPTIONS
    assert next_step(BookingStep.OWNER, BookingAction.BACK) == BookingStep.OPTIONS


def test_invalid_transition_raises():
    with pytest.raises(ValueError):
        next_step(BookingStep.OWNER, BookingAction.PAY)


def test_clean_draft_has_no_errors():
    assert validate_draft(_draft(), today=TODAY) == []


def test_missing_fields_are_all_reported():
    errors = validate_draft(BookingDraft(), today=TODAY)

    assert "Full name is required" in errors
    assert "Email is required" in errors
    assert "Phone number is required" in errors
    assert "Check-in date is required" in errors
    assert "Check-out date is required" in errors


def test_check_out_must_follow_check_in():
    errors = validate_draft(_draft(check_in="2025-03-06", check_out="2025-03-06"), today=TODAY)
    assert errors == ["Check-out date must be after check-in date"]


def test_check_in_cannot_be_in_the_past():
    errors = validate_draft(_draft(check_in="2025-02-27"), today=TODAY)
    assert errors == ["Check-in date cannot be in the past"]


def test_total_adds_insurance_fee(property_model):
    assert total_amount(property_model()) == 230000


def test_dashboard_payload_is_flagged(property_model):
    payload = build_payment_payload(property_model(), _draft(), is_dashboard=True)

    assert payload["propertyId"] == "prop-1"
    assert payload["isDashboard"] == "true"
    assert payload["totalAmount"] == 230000
    assert "isDashboard" not in build_payment_payload(property_model(), _draft())


def test_invalid_draft_never_calls_the_backend(property_model):
    fake = FakeBackend()
    backend = build_backend_client(fake)

    outcome = asyncio.run(submit_payment(backend, property_model(), _draft(email="not-an-email"), today=TODAY))

    assert outcome.step == BookingStep.PAY
    assert outcome.errors == ["Email must be a valid email address"]
    assert outcome.redirect_url is None
    assert fake.requests == []


def test_valid_draft_returns_gateway_url(property_model):
    fake = FakeBackend()
    fake.add("POST", "/payments/booking/initialize", {"authorization_url": "https://pay.test/abc", "reference": "ref-1"})
    backend = build_backend_client(fake)

    outcome = asyncio.run(submit_payment(backend, property_model(), _draft(), today=TODAY))

    assert outcome.redirect_url == "https://pay.test/abc"
    sent = json.loads(fake.calls("POST", "/payments/booking/initialize")[0].content)
    assert sent["customerEmail"] == "ada@example.com"
    assert sent["checkOutDate"] == "2025-03-06"


def test_backend_validation_errors_are_shown_inline(property_model):
    fake = FakeBackend()
    fake.add(
        "POST",
        "/payments/booking/initialize",
        {"error": "Bad Request", "message": ["Property is not available for these dates"]},
        status_code=400,
    )
    backend = build_backend_client(fake)

    outcome = asyncio.run(submit_payment(backend, property_model(), _draft(), today=TODAY))

    assert outcome.errors == ["Property is not available for these dates"]
    assert outcome.toast is None


def test_unreachable_backend_shows_toast(property_model):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(refuse), base_url="http://backend.test")
    from edgehomes.backend import BackendClient

    outcome = asyncio.run(submit_payment(BackendClient(http), property_model(), _draft(), today=TODAY))

    assert outcome.toast == SUBMIT_FAILED_MESSAGE
    assert outcome.errors == []


def test_going_back_keeps_the_draft(property_model):
    draft = _draft()
    outcome = asyncio.run(
        handle_action(build_backend_client(FakeBackend()), property_model(), BookingStep.PAY, BookingAction.BACK, draft)
    )

    assert outcome.step == BookingStep.OPTIONS
    assert outcome.draft == draft


def test_submit_outside_pay_step_is_rejected(property_model):
    with pytest.raises(ValueError):
        asyncio.run(handle_action(
            build_backend_client(FakeBackend()), property_model(), BookingStep.OPTIONS, BookingAction.SUBMIT, _draft()
        ))
