from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import OperationalError
from django.utils import timezone

from bookings.models import Booking
from core.errors import (
    AlreadySettled,
    Forbidden,
    NotFound,
    PaymentNotCompleted,
    PaymentProcessingError,
    PreconditionFailed,
    ValidationError,
)
from notifications.models import Notification
from payments.models import Payment
from payments.services import gateway, settlement
from payments.services.gateway import ChargeResult
from payments.services.settlement import pay


@pytest.fixture
def charges(monkeypatch):
    """Record gateway calls and answer with a configurable result."""

    calls = []
    state = {"result": ChargeResult(status=ChargeResult.SUCCEEDED, reference="pi_test_ok"), "error": None}

    def fake_charge(**kwargs):
        calls.append(kwargs)
        if state["error"] is not None:
            raise state["error"]
        return state["result"]

    monkeypatch.setattr(gateway, "charge_and_confirm", fake_charge)
    return type("Charges", (), {"calls": calls, "state": state})


@pytest.mark.django_db
def test_successful_payment_settles_booking(charges, booking, owner, customer):
    payment = pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")

    booking.refresh_from_db()
    assert booking.status == Booking.PAID
    assert booking.modified_by_id == customer.id
    assert payment.status == Payment.PAID
    assert payment.amount == Decimal("100.00")
    assert payment.gateway_reference == "pi_test_ok"
    assert Notification.objects.filter(recipient=owner).count() == 1

    call = charges.calls[0]
    assert call["amount_minor"] == 10000
    assert call["currency"] == "usd"
    assert call["payment_method_token"] == "pm_card_visa"
    assert call["allow_redirects"] is True
    assert call["idempotency_key"] == f"booking-{booking.id}-attempt-1"
    assert payment.attempts == 1
    assert payment.last_outcome == Payment.OUTCOME_SUCCEEDED


@pytest.mark.django_db
def test_amount_always_comes_from_listing(charges, booking, customer, listing):
    listing.price = Decimal("12.50")
    listing.save(update_fields=["price"])

    pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")

    assert charges.calls[0]["amount_minor"] == 1250


@pytest.mark.django_db
def test_redirect_options_are_forwarded(charges, booking, customer):
    pay(
        customer_id=customer.id,
        booking_id=booking.id,
        payment_method_token="pm_card_visa",
        return_url="https://app.skillhub.test/return",
        disable_redirects=True,
    )

    call = charges.calls[0]
    assert call["return_url"] == "https://app.skillhub.test/return"
    assert call["allow_redirects"] is False


@pytest.mark.django_db
def test_second_payment_is_already_settled(charges, booking, customer):
    first = pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")

    with pytest.raises(AlreadySettled):
        pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")

    assert len(charges.calls) == 1
    assert list(Payment.objects.filter(booking=booking)) == [first]
    booking.refresh_from_db()
    assert booking.status == Booking.PAID


@pytest.mark.django_db
def test_booking_changed_during_charge_is_not_recorded(monkeypatch, booking, customer):
    # The booking leaves PENDING while this request waits on the gateway.
    def racing_charge(**kwargs):
        Booking.objects.filter(pk=booking.pk).update(status=Booking.PAID)
        return ChargeResult(status=ChargeResult.SUCCEEDED, reference="pi_test_race")

    monkeypatch.setattr(gateway, "charge_and_confirm", racing_charge)

    with pytest.raises(AlreadySettled):
        pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")

    payment = Payment.objects.get(booking=booking)
    assert payment.status == Payment.PENDING
    assert payment.last_outcome == Payment.OUTCOME_SUCCEEDED
    assert payment.gateway_reference == "pi_test_race"


@pytest.mark.django_db
@pytest.mark.parametrize("status", [ChargeResult.REQUIRES_ACTION, ChargeResult.FAILED])
def test_non_success_releases_claim_and_keeps_booking_pending(charges, booking, customer, owner, status):
    charges.state["result"] = ChargeResult(status=status, reference="pi_test_nope")

    with pytest.raises(PaymentNotCompleted):
        pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")

    booking.refresh_from_db()
    assert booking.status == Booking.PENDING
    payment = Payment.objects.get(booking=booking)
    assert payment.status == Payment.FAILED
    assert payment.last_outcome == status
    assert not Notification.objects.filter(recipient=owner).exists()


@pytest.mark.django_db
def test_gateway_error_is_generic(charges, booking, customer, caplog):
    charges.state["error"] = gateway.GatewayError("card_number=4242 upstream exploded")

    with pytest.raises(PaymentProcessingError) as excinfo:
        pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")

    assert "4242" not in excinfo.value.message
    assert "upstream exploded" in caplog.text
    booking.refresh_from_db()
    assert booking.status == Booking.PENDING
    payment = Payment.objects.get(booking=booking)
    assert payment.status == Payment.FAILED
    assert payment.last_outcome == Payment.OUTCOME_ERROR


@pytest.mark.django_db
def test_paying_someone_elses_booking_is_forbidden(charges, booking, other_customer):
    with pytest.raises(Forbidden):
        pay(customer_id=other_customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")
    assert charges.calls == []


@pytest.mark.django_db
def test_paying_missing_booking(charges, customer):
    with pytest.raises(NotFound):
        pay(customer_id=customer.id, booking_id=31337, payment_method_token="pm_card_visa")


@pytest.mark.django_db
def test_cancelled_booking_cannot_be_paid(charges, booking, customer):
    booking.status = Booking.CANCELLED
    booking.save(update_fields=["status"])

    with pytest.raises(PreconditionFailed):
        pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")
    assert charges.calls == []


@pytest.mark.django_db
def test_missing_token_is_rejected(charges, booking, customer):
    with pytest.raises(ValidationError):
        pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="")


@pytest.mark.django_db
def test_receipt_is_emailed_after_commit(
    charges, booking, customer, mailoutbox, django_capture_on_commit_callbacks
):
    with django_capture_on_commit_callbacks(execute=True):
        pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")

    assert len(mailoutbox) == 1
    message = mailoutbox[0]
    assert message.to == ["customer@example.com"]
    assert f"#{booking.id}" in message.subject
    assert "100.00 USD" in message.body
    assert message.from_email.startswith("Olivia Owner via Skillhub")


@pytest.mark.django_db
def test_receipt_failure_does_not_undo_payment(
    monkeypatch, charges, booking, customer, django_capture_on_commit_callbacks
):
    def broken_send_mail(*args, **kwargs):
        raise OSError("smtp down")

    monkeypatch.setattr("payments.services.emails.send_mail", broken_send_mail)

    with django_capture_on_commit_callbacks(execute=True):
        payment = pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")

    payment.refresh_from_db()
    assert payment.status == Payment.PAID


@pytest.mark.django_db
def test_retry_after_decline_uses_a_fresh_key(charges, booking, customer):
    charges.state["result"] = ChargeResult(status=ChargeResult.FAILED, reference="pi_test_declined")
    with pytest.raises(PaymentNotCompleted):
        pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")

    charges.state["result"] = ChargeResult(status=ChargeResult.SUCCEEDED, reference="pi_test_ok")
    payment = pay(
        customer_id=customer.id,
        booking_id=booking.id,
        payment_method_token="pm_card_visa",
        return_url="https://app.skillhub.test/after-3ds",
    )

    keys = [call["idempotency_key"] for call in charges.calls]
    assert keys == [f"booking-{booking.id}-attempt-1", f"booking-{booking.id}-attempt-2"]
    assert payment.status == Payment.PAID
    assert payment.attempts == 2
    assert Payment.objects.filter(booking=booking).count() == 1


@pytest.mark.django_db
def test_retry_after_decline_charges_current_price(charges, booking, customer, listing):
    charges.state["result"] = ChargeResult(status=ChargeResult.FAILED, reference="pi_test_declined")
    with pytest.raises(PaymentNotCompleted):
        pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")
    listing.price = Decimal("80.00")
    listing.save(update_fields=["price"])

    charges.state["result"] = ChargeResult(status=ChargeResult.SUCCEEDED, reference="pi_test_ok")
    payment = pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")

    assert charges.calls[1]["amount_minor"] == 8000
    assert payment.amount == Decimal("80.00")


@pytest.mark.django_db
def test_retry_after_gateway_error_replays_the_same_key(charges, booking, customer):
    charges.state["error"] = gateway.GatewayError("timeout")
    with pytest.raises(PaymentProcessingError):
        pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")

    charges.state["error"] = None
    pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")

    keys = [call["idempotency_key"] for call in charges.calls]
    assert keys == [f"booking-{booking.id}-attempt-1", f"booking-{booking.id}-attempt-1"]


@pytest.mark.django_db
def test_payment_in_flight_blocks_second_call(monkeypatch, booking, customer):
    calls = []
    nested = {}

    def slow_charge(**kwargs):
        calls.append(kwargs)
        # a second request arrives while the first is still at the gateway
        with pytest.raises(AlreadySettled) as excinfo:
            pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")
        nested["message"] = excinfo.value.message
        return ChargeResult(status=ChargeResult.SUCCEEDED, reference="pi_test_ok")

    monkeypatch.setattr(gateway, "charge_and_confirm", slow_charge)

    payment = pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")

    assert len(calls) == 1
    assert nested["message"] == settlement.IN_PROGRESS_MESSAGE
    assert payment.status == Payment.PAID


@pytest.mark.django_db
def test_abandoned_claim_is_taken_over_with_its_key(settings, charges, booking, customer):
    settings.PAYMENT_CLAIM_TIMEOUT = 60
    Payment.objects.create(
        booking=booking,
        amount=Decimal("100.00"),
        status=Payment.PENDING,
        attempts=3,
        claimed_at=timezone.now() - timedelta(minutes=5),
    )

    payment = pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")

    assert charges.calls[0]["idempotency_key"] == f"booking-{booking.id}-attempt-3"
    assert payment.status == Payment.PAID


@pytest.mark.django_db
def test_live_claim_is_not_taken_over(charges, booking, customer):
    Payment.objects.create(
        booking=booking,
        amount=Decimal("100.00"),
        status=Payment.PENDING,
        attempts=1,
        claimed_at=timezone.now(),
    )

    with pytest.raises(AlreadySettled):
        pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")
    assert charges.calls == []


@pytest.mark.django_db
def test_lock_conflict_is_already_settled(monkeypatch, charges, booking, customer):
    def locked(**kwargs):
        raise OperationalError("database table is locked: bookings_booking")

    monkeypatch.setattr(settlement, "_open_attempt", locked)

    with pytest.raises(AlreadySettled):
        pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")
    assert charges.calls == []


@pytest.mark.django_db
def test_other_database_errors_propagate(monkeypatch, charges, booking, customer):
    def broken(**kwargs):
        raise OperationalError("no such table: bookings_booking")

    monkeypatch.setattr(settlement, "_open_attempt", broken)

    with pytest.raises(OperationalError):
        pay(customer_id=customer.id, booking_id=booking.id, payment_method_token="pm_card_visa")
