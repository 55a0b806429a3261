from __future__ import annotations

import logging
import smtplib
from decimal import Decimal

from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


def _format_from_email(owner_name: str) -> str:
    default_from = settings.DEFAULT_FROM_EMAIL
    email_addr = default_from
    if '<' in default_from and default_from.endswith('>'):
        email_addr = default_from.split('<', 1)[1].rstrip('>')
    return f"{owner_name} via Skillhub <{email_addr}>"


def send_payment_receipt_email(
    *,
    booking_id: int,
    recipient: str,
    customer_name: str,
    listing_title: str,
    owner_name: str,
    amount: Decimal,
    currency: str,
) -> bool:
    """Email a payment receipt. Delivery is best effort: failures are logged and False is returned."""
    if not recipient:
        logger.warning("No email address for receipt of booking %s", booking_id)
        return False

    subject = f"Payment confirmation for booking #{booking_id}"
    body_lines = [
        f"Hi {customer_name or recipient},",
        "",
        f"Thank you for your payment of {amount:.2f} {currency.upper()} for booking #{booking_id}.",
        f"Service: {listing_title}",
        "",
        f"You can review your bookings at {settings.FRONTEND_URL.rstrip('/')}/bookings.",
        "",
        "— The Skillhub Team",
    ]
    try:
        send_mail(
            subject,
            "\n".join(body_lines),
            _format_from_email(owner_name or "Skillhub"),
            [recipient],
            fail_silently=False,
        )
    except (smtplib.SMTPException, OSError):
        logger.exception("Failed to send payment receipt for booking %s", booking_id)
        return False
    return True
