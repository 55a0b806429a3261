from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import ProtectedError

from core.errors import Forbidden, PreconditionFailed
from core.roles import is_owner_role
from listings.models import Listing
from listings.services.lookup import get_listing

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "price")


def _owned_listing(listing_id, owner_id: int) -> Listing:
    listing = get_listing(listing_id)
    if listing.owner_id != owner_id:
        raise Forbidden("You can only manage your own listings.")
    return listing


def create_listing(*, owner_id: int, owner_role: str, title: str, price: Decimal, description: str = "") -> Listing:
    if not is_owner_role(owner_role):
        raise Forbidden("Only owners can create listings.")
    listing = Listing.objects.create(owner_id=owner_id, title=title, description=description, price=price)
    logger.info("Listing %s created by owner %s", listing.pk, owner_id)
    return listing


def update_listing(*, listing_id, owner_id: int, **changes) -> Listing:
    """Apply a full or partial update; keys outside the editable fields are ignored."""
    listing = _owned_listing(listing_id, owner_id)
    fields = [name for name in EDITABLE_FIELDS if name in changes]
    for name in fields:
        setattr(listing, name, changes[name])
    if fields:
        listing.save(update_fields=[*fields, "updated_at"])
    return listing


def delete_listing(*, listing_id, owner_id: int) -> None:
    listing = _owned_listing(listing_id, owner_id)
    if listing.bookings.exists():
        raise PreconditionFailed("Listings with bookings cannot be deleted.")
    try:
        with transaction.atomic():
            listing.delete()
    except ProtectedError:
        raise PreconditionFailed("Listings with bookings cannot be deleted.") from None
    logger.info("Listing %s deleted by owner %s", listing_id, owner_id)
