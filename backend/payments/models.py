from datetime import timedelta

from django.conf import settings
from django.db import models
from django.utils import timezone


class Payment(models.Model):
    """
    The single payment record for a booking.

    A PENDING row is a claim: one charge attempt is in flight and no other
    request may call the gateway for this booking. FAILED rows are released
    claims that a later `pay` call can take over with the next attempt number.
    """

    PENDING = 'PENDING'
    PAID = 'PAID'
    FAILED = 'FAILED'
    REFUNDED = 'REFUNDED'
    STATUSES = [
        (PENDING, 'Pending'),
        (PAID, 'Paid'),
        (FAILED, 'Failed'),
        (REFUNDED, 'Refunded'),
    ]

    # Last answer from the gateway; ERROR means the outcome is unknown.
    OUTCOME_SUCCEEDED = 'SUCCEEDED'
    OUTCOME_REQUIRES_ACTION = 'REQUIRES_ACTION'
    OUTCOME_FAILED = 'FAILED'
    OUTCOME_ERROR = 'ERROR'
    OUTCOMES = [
        (OUTCOME_SUCCEEDED, 'Succeeded'),
        (OUTCOME_REQUIRES_ACTION, 'Requires action'),
        (OUTCOME_FAILED, 'Failed'),
        (OUTCOME_ERROR, 'Gateway error'),
    ]

    METHOD_CARD = 'card'

    booking = models.OneToOneField('bookings.Booking', on_delete=models.PROTECT, related_name='payment')
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=10, default='usd')
    method = models.CharField(max_length=30, default=METHOD_CARD)
    gateway_reference = models.CharField(max_length=200, blank=True)
    status = models.CharField(max_length=12, choices=STATUSES, default=PENDING)
    attempts = models.PositiveIntegerField(default=0)
    last_outcome = models.CharField(max_length=20, choices=OUTCOMES, blank=True)
    claimed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Payment for booking #{self.booking_id} ({self.status})"

    @property
    def idempotency_key(self) -> str:
        return f"booking-{self.booking_id}-attempt-{self.attempts}"

    def claim_is_live(self, now=None) -> bool:
        if self.status != self.PENDING or self.claimed_at is None:
            return False
        timeout = timedelta(seconds=settings.PAYMENT_CLAIM_TIMEOUT)
        return (now or timezone.now()) - self.claimed_at < timeout

    @property
    def replays_last_attempt(self) -> bool:
        """An abandoned claim or a gateway error may have charged; reuse its key."""
        return self.status == self.PENDING or self.last_outcome == self.OUTCOME_ERROR
