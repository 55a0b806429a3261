from __future__ import annotations

import logging

from django.db import DatabaseError, transaction

from notifications.models import Notification

logger = logging.getLogger(__name__)


def send(recipient_id: int, message: str) -> Notification | None:
    """
    Persist an unread notification for `recipient_id`.

    Runs in its own savepoint so a failed insert leaves the caller's
    transaction usable; the failure is logged and `None` is returned.
    """

    try:
        with transaction.atomic():
            return Notification.objects.create(recipient_id=recipient_id, message=message)
    except DatabaseError:
        logger.exception("Failed to store notification for user %s", recipient_id)
        return None


def mark_read(notification_id, caller_id: int) -> None:
    notification = Notification.objects.filter(pk=notification_id, recipient_id=caller_id).first()
    if notification is None:
        return
    notification.mark_read()


def list_for_user(user_id: int):
    return Notification.objects.filter(recipient_id=user_id).order_by("-created_at", "-id")


def unread_count(user_id: int) -> int:
    return Notification.objects.filter(recipient_id=user_id, is_read=False).count()
