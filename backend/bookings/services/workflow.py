from __future__ import annotations

import logging
from datetime import datetime

from django.db import transaction

from bookings.models import Booking
from core.errors import Forbidden, NotFound, PreconditionFailed
from core.roles import CUSTOMER, OWNER
from listings.services.lookup import get_listing
from notifications.services import dispatcher

logger = logging.getLogger(__name__)


def _locked_booking(booking_id) -> Booking:
    try:
        return (
            Booking.objects.select_for_update(of=("self",))
            .select_related("listing")
            .get(pk=booking_id)
        )
    except (Booking.DoesNotExist, ValueError, TypeError):
        raise NotFound("Booking not found.") from None


def create_booking(*, customer_id: int, listing_id, booking_date: datetime) -> Booking:
    listing = get_listing(listing_id)
    with transaction.atomic():
        booking = Booking.objects.create(
            listing=listing,
            customer_id=customer_id,
            booking_date=booking_date,
            status=Booking.PENDING,
            modified_by_id=customer_id,
            modified_by_role=CUSTOMER,
        )
        dispatcher.send(listing.owner_id, f"New booking request for your service '{listing.title}'.")
    logger.info("Booking %s created by user %s for listing %s", booking.pk, customer_id, listing.pk)
    return booking


def reschedule_booking(*, booking_id, owner_id: int, new_date: datetime) -> Booking:
    """Move a paid booking to a new date; only the listing owner may do this."""

    with transaction.atomic():
        booking = _locked_booking(booking_id)
        if booking.listing.owner_id != owner_id:
            raise Forbidden("Only the listing owner can change the booking date.")
        if booking.is_terminal or not booking.has_paid_payment:
            raise PreconditionFailed("Only paid bookings can be rescheduled.")

        booking.booking_date = new_date
        booking.record_modifier(actor_id=owner_id, role=OWNER)
        booking.save(update_fields=["booking_date", "modified_by", "modified_by_role", "updated_at"])

        dispatcher.send(
            booking.customer_id,
            f"Your booking date for '{booking.listing.title}' has been updated to {new_date:%Y-%m-%d %H:%M}.",
        )
    return booking


def cancel_booking(*, booking_id, actor_id: int, actor_is_owner: bool) -> Booking:
    with transaction.atomic():
        booking = _locked_booking(booking_id)
        if actor_is_owner and booking.listing.owner_id != actor_id:
            raise Forbidden("You are not authorized to cancel this booking.")
        if not actor_is_owner and booking.customer_id != actor_id:
            raise Forbidden("You are not authorized to cancel this booking.")

        if booking.has_payment_in_flight:
            raise PreconditionFailed("A payment for this booking is in progress.")

        role = OWNER if actor_is_owner else CUSTOMER
        booking.transition_to(Booking.CANCELLED, actor_id=actor_id, role=role)
        booking.save(update_fields=["status", "modified_by", "modified_by_role", "updated_at"])

        title = booking.listing.title
        if actor_is_owner:
            dispatcher.send(booking.customer_id, f"Your booking for '{title}' was cancelled by the owner.")
        else:
            dispatcher.send(
                booking.listing.owner_id,
                f"A customer cancelled their booking for your service '{title}'.",
            )
    logger.info("Booking %s cancelled by %s %s", booking.pk, role.lower(), actor_id)
    return booking


def complete_booking(*, booking_id, owner_id: int) -> Booking:
    with transaction.atomic():
        booking = _locked_booking(booking_id)
        if booking.listing.owner_id != owner_id:
            raise Forbidden("Only the listing owner can complete this booking.")

        booking.transition_to(Booking.COMPLETED, actor_id=owner_id, role=OWNER)
        booking.save(update_fields=["status", "modified_by", "modified_by_role", "updated_at"])

        dispatcher.send(
            booking.customer_id,
            f"Your booking for '{booking.listing.title}' has been marked as completed.",
        )
    return booking


def list_for_customer(customer_id: int):
    return Booking.objects.for_customer(customer_id).select_related("listing").order_by("-created_at", "-id")


def list_for_owner(owner_id: int):
    return Booking.objects.for_owner(owner_id).select_related("listing").order_by("-created_at", "-id")
