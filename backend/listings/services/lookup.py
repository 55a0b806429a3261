from core.errors import NotFound
from listings.models import Listing


def get_listing(listing_id) -> Listing:
    try:
        return Listing.objects.select_related("owner").get(pk=listing_id)
    except (Listing.DoesNotExist, ValueError, TypeError):
        raise NotFound("Listing not found.") from None
