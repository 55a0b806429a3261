from __future__ import annotations

import logging
from functools import partial

from django.conf import settings
from django.db import IntegrityError, OperationalError, transaction
from django.utils import timezone

from bookings.models import Booking
from core.db import is_lock_conflict, retry_on_lock_conflict
from core.errors import (
    AlreadySettled,
    Forbidden,
    NotFound,
    PaymentNotCompleted,
    PaymentProcessingError,
    PreconditionFailed,
    ValidationError,
)
from core.roles import CUSTOMER
from notifications.services import dispatcher
from payments.models import Payment
from payments.services import gateway
from payments.services.emails import send_payment_receipt_email

logger = logging.getLogger(__name__)

IN_PROGRESS_MESSAGE = "A payment for this booking is already in progress."


def _ensure_payable(booking: Booking):
    if booking.status in (Booking.PAID, Booking.COMPLETED):
        raise AlreadySettled()
    if not booking.can_transition_to(Booking.PAID):
        raise PreconditionFailed(f"A {booking.get_status_display().lower()} booking cannot be paid.")


def _claim(booking: Booking, now) -> Payment:
    payment = Payment.objects.filter(booking_id=booking.pk).first()
    if payment is None:
        try:
            with transaction.atomic():
                return Payment.objects.create(
                    booking=booking,
                    amount=booking.listing.price,
                    currency=settings.PAYMENT_CURRENCY,
                    method=Payment.METHOD_CARD,
                    status=Payment.PENDING,
                    attempts=1,
                    claimed_at=now,
                )
        except IntegrityError:
            raise AlreadySettled(IN_PROGRESS_MESSAGE) from None

    if payment.status == Payment.PAID:
        raise AlreadySettled()
    if payment.claim_is_live(now):
        raise AlreadySettled(IN_PROGRESS_MESSAGE)
    if payment.status == Payment.REFUNDED:
        raise PreconditionFailed("The payment for this booking was refunded.")

    if payment.replays_last_attempt:
        attempts, amount, currency = payment.attempts, payment.amount, payment.currency
    else:
        attempts, amount, currency = payment.attempts + 1, booking.listing.price, settings.PAYMENT_CURRENCY

    taken = Payment.objects.filter(
        pk=payment.pk,
        status=payment.status,
        attempts=payment.attempts,
        claimed_at=payment.claimed_at,
    ).update(
        status=Payment.PENDING,
        attempts=attempts,
        amount=amount,
        currency=currency,
        claimed_at=now,
    )
    if not taken:
        raise AlreadySettled(IN_PROGRESS_MESSAGE)

    payment.status = Payment.PENDING
    payment.attempts = attempts
    payment.amount = amount
    payment.currency = currency
    payment.claimed_at = now
    return payment


@retry_on_lock_conflict()
def _open_attempt(*, customer_id: int, booking_id) -> tuple[Booking, Payment]:
    with transaction.atomic():
        try:
            booking = (
                Booking.objects.select_for_update(of=("self",))
                .select_related("listing", "listing__owner", "customer")
                .get(pk=booking_id)
            )
        except (Booking.DoesNotExist, ValueError, TypeError):
            raise NotFound("Booking not found.") from None

        if booking.customer_id != customer_id:
            raise Forbidden("You can only pay for your own bookings.")
        _ensure_payable(booking)
        return booking, _claim(booking, timezone.now())


@retry_on_lock_conflict()
def _release_claim(payment: Payment, *, outcome: str, reference: str = ""):
    fields = {"status": Payment.FAILED, "last_outcome": outcome}
    if reference:
        fields["gateway_reference"] = reference
    Payment.objects.filter(pk=payment.pk, status=Payment.PENDING, attempts=payment.attempts).update(**fields)


def _release(payment: Payment, *, outcome: str, reference: str = ""):
    try:
        _release_claim(payment, outcome=outcome, reference=reference)
    except OperationalError:
        # the claim then expires after PAYMENT_CLAIM_TIMEOUT
        logger.exception("Could not release payment claim %s for booking %s", payment.pk, payment.booking_id)


@retry_on_lock_conflict()
def _settle(booking: Booking, payment: Payment, *, customer_id: int, reference: str) -> bool:
    with transaction.atomic():
        updated = Booking.objects.filter(pk=booking.pk, status=Booking.PENDING).update(
            status=Booking.PAID,
            modified_by_id=customer_id,
            modified_by_role=CUSTOMER,
            updated_at=timezone.now(),
        )
        if not updated:
            Payment.objects.filter(pk=payment.pk).update(
                last_outcome=Payment.OUTCOME_SUCCEEDED,
                gateway_reference=reference,
            )
            return False

        booking.status = Booking.PAID
        booking.record_modifier(actor_id=customer_id, role=CUSTOMER)
        payment.status = Payment.PAID
        payment.last_outcome = Payment.OUTCOME_SUCCEEDED
        payment.gateway_reference = reference
        payment.save(update_fields=["status", "last_outcome", "gateway_reference"])

        listing = booking.listing
        dispatcher.send(listing.owner_id, f"New payment received for booking #{booking.pk}.")

        customer = booking.customer
        transaction.on_commit(
            partial(
                send_payment_receipt_email,
                booking_id=booking.pk,
                recipient=customer.email,
                customer_name=customer.display_name or customer.get_full_name(),
                listing_title=listing.title,
                owner_name=listing.owner.display_name or listing.owner.get_full_name(),
                amount=payment.amount,
                currency=payment.currency,
            )
        )
    return True


def pay(
    *,
    customer_id: int,
    booking_id,
    payment_method_token: str,
    return_url: str | None = None,
    disable_redirects: bool = False,
) -> Payment:
    """
    Charge the customer for a booking and mark it paid.

    Runs in three steps. A short locked transaction validates the booking and
    claims its payment row. The gateway is called with no transaction open,
    and only the claim holder gets that far. A second short transaction then
    flips the booking from PENDING to PAID and records the payment. A
    concurrent call finds the claim and fails with `AlreadySettled` without
    touching the gateway.

    Every new attempt gets its own idempotency key, so a retry after a decline
    reaches the gateway. An attempt whose outcome is unknown (gateway error or
    abandoned claim) is retried under its old key, so Stripe replays it
    instead of charging twice. The amount always comes from the listing price.
    """

    if not payment_method_token:
        raise ValidationError("A payment method is required.")

    try:
        booking, payment = _open_attempt(customer_id=customer_id, booking_id=booking_id)
    except OperationalError as exc:
        if not is_lock_conflict(exc):
            raise
        logger.warning("Booking %s is locked by another payment: %s", booking_id, exc)
        raise AlreadySettled(IN_PROGRESS_MESSAGE) from None

    try:
        result = gateway.charge_and_confirm(
            amount_minor=gateway.to_minor_units(payment.amount),
            currency=payment.currency,
            payment_method_token=payment_method_token,
            description=f"Payment for booking #{booking.pk}",
            return_url=return_url,
            allow_redirects=not disable_redirects,
            idempotency_key=payment.idempotency_key,
        )
    except gateway.GatewayError as exc:
        logger.exception("Payment gateway error for booking %s: %s", booking.pk, exc)
        _release(payment, outcome=Payment.OUTCOME_ERROR)
        raise PaymentProcessingError() from exc

    if not result.succeeded:
        logger.warning(
            "Payment for booking %s not completed: %s (%s)",
            booking.pk,
            result.status,
            result.reference,
        )
        _release(payment, outcome=result.status, reference=result.reference)
        raise PaymentNotCompleted(f"Payment failed. Status: {result.status.lower()}.")

    try:
        settled = _settle(booking, payment, customer_id=customer_id, reference=result.reference)
    except OperationalError as exc:
        logger.exception(
            "Charge %s for booking %s succeeded but was not recorded; a retry replays it",
            result.reference,
            booking.pk,
        )
        raise PaymentProcessingError() from exc

    if not settled:
        logger.error(
            "Booking %s left PENDING while charge %s was in flight; needs manual review",
            booking.pk,
            result.reference,
        )
        raise AlreadySettled()

    logger.info("Booking %s settled with payment %s (%s)", booking.pk, payment.pk, result.reference)
    return payment
