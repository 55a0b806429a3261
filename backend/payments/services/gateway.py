from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from uuid import uuid4

import stripe
from django.conf import settings


class GatewayError(Exception):
    """Transport or provider failure; the charge outcome is unknown."""


@dataclass
class ChargeResult:
    SUCCEEDED = "SUCCEEDED"
    REQUIRES_ACTION = "REQUIRES_ACTION"
    FAILED = "FAILED"

    status: str
    reference: str

    @property
    def succeeded(self) -> bool:
        return self.status == self.SUCCEEDED


# Stripe's own test payment methods, so stubbed runs behave like test mode.
STUB_DECLINED_TOKENS = {"pm_card_chargeDeclined", "pm_card_visa_chargeDeclined"}
STUB_ACTION_TOKENS = {"pm_card_authenticationRequired", "pm_card_threeDSecure2Required"}
STUB_ERROR_TOKENS = {"pm_card_gatewayError"}

_STRIPE_STATUSES = {
    "succeeded": ChargeResult.SUCCEEDED,
    "requires_action": ChargeResult.REQUIRES_ACTION,
    "requires_confirmation": ChargeResult.REQUIRES_ACTION,
    "processing": ChargeResult.REQUIRES_ACTION,
    "requires_capture": ChargeResult.REQUIRES_ACTION,
    "requires_payment_method": ChargeResult.FAILED,
    "canceled": ChargeResult.FAILED,
}


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _stub_charge(*, payment_method_token: str) -> ChargeResult:
    if payment_method_token in STUB_ERROR_TOKENS:
        raise GatewayError("Stub gateway unavailable.")
    reference = f"pi_test_{uuid4().hex}"
    if payment_method_token in STUB_DECLINED_TOKENS:
        return ChargeResult(status=ChargeResult.FAILED, reference=reference)
    if payment_method_token in STUB_ACTION_TOKENS:
        return ChargeResult(status=ChargeResult.REQUIRES_ACTION, reference=reference)
    return ChargeResult(status=ChargeResult.SUCCEEDED, reference=reference)


def _get_stripe_api_key() -> Optional[str]:
    key = getattr(settings, "STRIPE_SECRET_KEY", "")
    return key or None


def _should_use_stub() -> bool:
    if getattr(settings, "STRIPE_USE_STUB", False):
        return True
    return _get_stripe_api_key() is None


def charge_and_confirm(
    *,
    amount_minor: int,
    currency: str,
    payment_method_token: str,
    description: str,
    return_url: str | None = None,
    allow_redirects: bool = True,
    idempotency_key: str | None = None,
) -> ChargeResult:
    """
    Create and immediately confirm a Stripe PaymentIntent (or stub equivalent).

    Declines come back as a FAILED result; anything that leaves the outcome
    unknown (network errors, timeouts, API errors) raises `GatewayError`.
    """

    if _should_use_stub():
        return _stub_charge(payment_method_token=payment_method_token)

    stripe.api_key = _get_stripe_api_key()

    params = {
        "amount": amount_minor,
        "currency": currency,
        "payment_method": payment_method_token,
        "description": description,
        "confirm": True,
    }
    if allow_redirects:
        if return_url:
            params["return_url"] = return_url
    else:
        params["automatic_payment_methods"] = {"enabled": True, "allow_redirects": "never"}
    if idempotency_key:
        params["idempotency_key"] = idempotency_key

    try:
        intent = stripe.PaymentIntent.create(**params)
    except stripe.CardError as exc:
        intent = getattr(getattr(exc, "error", None), "payment_intent", None)
        reference = getattr(intent, "id", None) or ""
        return ChargeResult(status=ChargeResult.FAILED, reference=reference)
    except stripe.StripeError as exc:
        raise GatewayError(str(exc)) from exc

    status = _STRIPE_STATUSES.get(getattr(intent, "status", ""), ChargeResult.FAILED)
    return ChargeResult(status=status, reference=intent.id)
