from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from bookings.models import Booking
from listings.models import Listing
from payments.models import Payment


@pytest.fixture
def owner(db):
    return User.objects.create_user(
        username="owner@example.com",
        email="owner@example.com",
        password="password123",
        first_name="Olivia",
        last_name="Owner",
        display_name="Olivia Owner",
        role=User.OWNER,
    )


@pytest.fixture
def customer(db):
    return User.objects.create_user(
        username="customer@example.com",
        email="customer@example.com",
        password="password123",
        first_name="Carl",
        last_name="Customer",
        display_name="Carl Customer",
        role=User.CUSTOMER,
    )


@pytest.fixture
def other_customer(db):
    return User.objects.create_user(
        username="other@example.com",
        email="other@example.com",
        password="password123",
        role=User.CUSTOMER,
    )


@pytest.fixture
def listing(owner):
    return Listing.objects.create(owner=owner, title="Guitar lessons", price=Decimal("100.00"))


@pytest.fixture
def booking_date():
    return (timezone.now() + timedelta(days=7)).replace(microsecond=0)


@pytest.fixture
def booking(customer, listing, booking_date):
    return Booking.objects.create(
        listing=listing,
        customer=customer,
        booking_date=booking_date,
        status=Booking.PENDING,
        modified_by=customer,
        modified_by_role=User.CUSTOMER,
    )


@pytest.fixture
def paid_booking(booking):
    Payment.objects.create(
        booking=booking,
        amount=booking.listing.price,
        currency="usd",
        gateway_reference="pi_test_seeded",
        status=Payment.PAID,
    )
    booking.status = Booking.PAID
    booking.save(update_fields=["status"])
    return booking


def _client_for(user):
    client = APIClient()
    client.force_authenticate(user)
    return client


@pytest.fixture
def customer_client(customer):
    return _client_for(customer)


@pytest.fixture
def owner_client(owner):
    return _client_for(owner)
