from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

MIN_RATING = 1
MAX_RATING = 5


class ReviewQuerySet(models.QuerySet):
    def active(self):
        """Reviews that have not been soft-deleted. Every public read goes through this."""
        return self.filter(is_deleted=False)


class Review(models.Model):
    booking = models.ForeignKey("bookings.Booking", on_delete=models.PROTECT, related_name="reviews")
    listing = models.ForeignKey("listings.Listing", on_delete=models.PROTECT, related_name="reviews")
    customer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="reviews")
    rating = models.DecimalField(
        max_digits=3,
        decimal_places=1,
        validators=[MinValueValidator(MIN_RATING), MaxValueValidator(MAX_RATING)],
    )
    comment = models.TextField(blank=True)
    is_deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ReviewQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["customer", "booking"],
                condition=Q(is_deleted=False),
                name="unique_active_review_per_booking",
            ),
        ]

    def __str__(self):
        return f"{self.rating} for {self.listing_id} by {self.customer_id}"

    def soft_delete(self):
        if not self.is_deleted:
            self.is_deleted = True
            self.save(update_fields=["is_deleted", "updated_at"])
