from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from payments.serializers import PaymentCreateSerializer, PaymentSerializer
from payments.services.settlement import pay


class BookingPaymentView(APIView):
    """Settle a booking for the authenticated customer."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, booking_id, *args, **kwargs):
        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = pay(
            customer_id=request.user.id,
            booking_id=booking_id,
            payment_method_token=serializer.validated_data["payment_method_id"],
            return_url=serializer.validated_data.get("return_url") or None,
            disable_redirects=serializer.validated_data["disable_redirect_payments"],
        )
        return Response(
            {
                "success": True,
                "detail": "Payment successful.",
                "payment": PaymentSerializer(payment).data,
            },
            status=status.HTTP_201_CREATED,
        )
