from __future__ import annotations

from decimal import Decimal, InvalidOperation

from django.db import IntegrityError, transaction

from bookings.models import Booking
from core.errors import Duplicate, NotEligible, NotFound, ValidationError
from notifications.services import dispatcher
from reviews.models import MAX_RATING, MIN_RATING, Review

RATING_STEP = Decimal("0.1")


def _clean_rating(rating) -> Decimal:
    try:
        value = Decimal(str(rating))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError("Rating must be a number.") from None
    if not value.is_finite() or value < MIN_RATING or value > MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}.")
    rounded = value.quantize(RATING_STEP)
    if rounded != value:
        raise ValidationError("Rating must have at most one decimal place.")
    return rounded


def _owned_active_review(customer_id: int, review_id) -> Review:
    try:
        return Review.objects.active().get(pk=review_id, customer_id=customer_id)
    except (Review.DoesNotExist, ValueError, TypeError):
        raise NotFound("Review not found or not owned by user.") from None


def can_review(*, customer_id: int, listing_id) -> bool:
    """True once the customer has a booking for the listing with a paid payment."""
    return (
        Booking.objects.for_customer(customer_id)
        .filter(listing_id=listing_id)
        .with_paid_payment()
        .exists()
    )


def create_review(*, customer_id: int, listing_id, booking_id, rating, comment: str = "") -> Review:
    rating = _clean_rating(rating)
    booking = (
        Booking.objects.for_customer(customer_id)
        .filter(pk=booking_id, listing_id=listing_id)
        .with_paid_payment()
        .select_related("listing")
        .first()
    )
    if booking is None:
        raise NotEligible()

    with transaction.atomic():
        if Review.objects.active().filter(customer_id=customer_id, booking_id=booking.pk).exists():
            raise Duplicate()
        try:
            with transaction.atomic():
                review = Review.objects.create(
                    booking=booking,
                    listing_id=booking.listing_id,
                    customer_id=customer_id,
                    rating=rating,
                    comment=comment or "",
                )
        except IntegrityError:
            raise Duplicate() from None

        dispatcher.send(
            booking.listing.owner_id,
            f"Your service '{booking.listing.title}' received a new review.",
        )
    return review


def update_review(*, customer_id: int, review_id, rating, comment: str = "") -> Review:
    rating = _clean_rating(rating)
    review = _owned_active_review(customer_id, review_id)
    review.rating = rating
    review.comment = comment or ""
    review.save(update_fields=["rating", "comment", "updated_at"])
    return review


def delete_review(*, customer_id: int, review_id) -> None:
    review = _owned_active_review(customer_id, review_id)
    review.soft_delete()


def list_for_listing(listing_id):
    return Review.objects.active().filter(listing_id=listing_id).order_by("-created_at", "-id")


def list_for_user(user_id: int):
    return Review.objects.active().filter(customer_id=user_id).order_by("-created_at", "-id")
