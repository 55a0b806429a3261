from rest_framework import serializers

from accounts.serializers import RoleField
from bookings.models import Booking


class BookingSerializer(serializers.ModelSerializer):
    listing_id = serializers.IntegerField(read_only=True)
    customer_id = serializers.IntegerField(read_only=True)
    listing_title = serializers.CharField(source="listing.title", read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_date",
            "status",
            "listing_id",
            "listing_title",
            "customer_id",
            "modified_by_role",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class BookingCreateSerializer(serializers.Serializer):
    listing_id = serializers.IntegerField(min_value=1)
    booking_date = serializers.DateTimeField()


class BookingRescheduleSerializer(serializers.Serializer):
    booking_date = serializers.DateTimeField()


class BookingCancelSerializer(serializers.Serializer):
    acting_as = RoleField(required=False)
