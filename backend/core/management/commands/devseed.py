from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from accounts.models import User
from bookings.models import Booking
from bookings.services import workflow
from listings.models import Listing
from payments.services.settlement import pay
from reviews.services import gate


SEED_PASSWORD = "Skillhub123!"
SUPERUSER_EMAIL = "admin@skillhub.test"
SUPERUSER_PASSWORD = "AdminSkillhub123!"


class Command(BaseCommand):
    help = "Populate the local development database with sample data."

    def handle(self, *args, **options):
        if not settings.DEBUG:
            raise CommandError("Refusing to seed data while DEBUG is False.")

        with transaction.atomic():
            self.stdout.write(self.style.MIGRATE_HEADING("Creating users"))
            owner = self._ensure_user(
                email="owner@skillhub.test",
                first_name="Olivia",
                last_name="Owner",
                role=User.OWNER,
            )
            customer = self._ensure_user(
                email="customer@skillhub.test",
                first_name="Carl",
                last_name="Customer",
                role=User.CUSTOMER,
            )
            self._ensure_superuser()

            self.stdout.write(self.style.MIGRATE_HEADING("Creating listings"))
            guitar = self._ensure_listing(owner, "Guitar lessons", Decimal("45.00"))
            tutoring = self._ensure_listing(owner, "Maths tutoring", Decimal("30.00"))

            self.stdout.write(self.style.MIGRATE_HEADING("Creating bookings"))
            start = timezone.now().replace(minute=0, second=0, microsecond=0) + timedelta(days=7)
            if not Booking.objects.filter(customer=customer, listing=tutoring, status=Booking.PENDING).exists():
                workflow.create_booking(customer_id=customer.id, listing_id=tutoring.id, booking_date=start)

            if not Booking.objects.filter(customer=customer, listing=guitar).with_paid_payment().exists():
                paid = workflow.create_booking(
                    customer_id=customer.id,
                    listing_id=guitar.id,
                    booking_date=start + timedelta(days=1),
                )
                pay(customer_id=customer.id, booking_id=paid.id, payment_method_token="pm_card_visa")
                gate.create_review(
                    customer_id=customer.id,
                    listing_id=guitar.id,
                    booking_id=paid.id,
                    rating=Decimal("5"),
                    comment="Great first lesson.",
                )

        self.stdout.write(self.style.SUCCESS("Development seed data created."))
        self.stdout.write(self.style.NOTICE(f"Sample login accounts use password: {SEED_PASSWORD}"))
        self.stdout.write(self.style.NOTICE(f"Admin superuser {SUPERUSER_EMAIL} password: {SUPERUSER_PASSWORD}"))

    def _ensure_listing(self, owner: User, title: str, price: Decimal) -> Listing:
        listing, _ = Listing.objects.update_or_create(
            owner=owner,
            title=title,
            defaults={"price": price, "description": f"{title} with {owner.display_name}."},
        )
        return listing

    def _ensure_user(self, email: str, first_name: str, last_name: str, role: str) -> User:
        display_name = f"{first_name} {last_name}"
        user, created = User.objects.get_or_create(
            email=email,
            defaults={
                "username": email,
                "first_name": first_name,
                "last_name": last_name,
                "display_name": display_name,
                "role": role,
            },
        )
        if created:
            user.set_password(SEED_PASSWORD)
            user.save()
        elif user.role != role:
            user.role = role
            user.save(update_fields=["role"])
        return user

    def _ensure_superuser(self) -> User:
        user, created = User.objects.get_or_create(
            email=SUPERUSER_EMAIL,
            defaults={
                "username": SUPERUSER_EMAIL,
                "first_name": "Admin",
                "last_name": "User",
                "display_name": "Admin User",
                "is_staff": True,
                "is_superuser": True,
            },
        )
        if created or not user.has_usable_password():
            user.set_password(SUPERUSER_PASSWORD)
            user.save(update_fields=["password"])
        return user
