from rest_framework import serializers

from payments.models import Payment


class PaymentCreateSerializer(serializers.Serializer):
    payment_method_id = serializers.CharField(max_length=255)
    return_url = serializers.URLField(required=False, allow_blank=True)
    disable_redirect_payments = serializers.BooleanField(required=False, default=False)


class PaymentSerializer(serializers.ModelSerializer):
    booking_id = serializers.IntegerField(read_only=True)
    booking_status = serializers.CharField(source="booking.status", read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "booking_id",
            "booking_status",
            "amount",
            "currency",
            "method",
            "status",
            "created_at",
        ]
        read_only_fields = fields
