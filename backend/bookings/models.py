from django.conf import settings
from django.db import models

from core.errors import PreconditionFailed
from core.roles import CUSTOMER, ROLES


class BookingQuerySet(models.QuerySet):
    def for_customer(self, customer_id):
        return self.filter(customer_id=customer_id)

    def for_owner(self, owner_id):
        return self.filter(listing__owner_id=owner_id)

    def with_paid_payment(self):
        from payments.models import Payment

        return self.filter(payment__status=Payment.PAID)


class Booking(models.Model):
    """A customer's reservation against a listing."""

    PENDING = "PENDING"
    PAID = "PAID"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    STATUSES = [
        (PENDING, "Pending"),
        (PAID, "Paid"),
        (COMPLETED, "Completed"),
        (CANCELLED, "Cancelled"),
    ]

    # Allowed moves; anything missing here is a precondition failure.
    TRANSITIONS = {
        PENDING: {PAID, CANCELLED},
        PAID: {COMPLETED, CANCELLED},
        COMPLETED: set(),
        CANCELLED: set(),
    }

    listing = models.ForeignKey("listings.Listing", on_delete=models.PROTECT, related_name="bookings")
    customer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="bookings")
    booking_date = models.DateTimeField()
    status = models.CharField(max_length=12, choices=STATUSES, default=PENDING)
    modified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="modified_bookings",
    )
    modified_by_role = models.CharField(max_length=20, choices=ROLES, default=CUSTOMER)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BookingQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"Booking #{self.pk} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        return not self.TRANSITIONS[self.status]

    @property
    def has_paid_payment(self) -> bool:
        from payments.models import Payment

        return Payment.objects.filter(booking_id=self.pk, status=Payment.PAID).exists()

    @property
    def has_payment_in_flight(self) -> bool:
        from payments.models import Payment

        payment = Payment.objects.filter(booking_id=self.pk).first()
        return payment is not None and payment.claim_is_live()

    def can_transition_to(self, status: str) -> bool:
        return status in self.TRANSITIONS.get(self.status, set())

    def record_modifier(self, *, actor_id, role: str):
        self.modified_by_id = actor_id
        self.modified_by_role = role

    def transition_to(self, status: str, *, actor_id, role: str):
        if not self.can_transition_to(status):
            raise PreconditionFailed(
                f"A {self.get_status_display().lower()} booking cannot be moved to "
                f"{dict(self.STATUSES)[status].lower()}."
            )
        self.status = status
        self.record_modifier(actor_id=actor_id, role=role)
