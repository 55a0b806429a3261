from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from bookings.serializers import (
    BookingCancelSerializer,
    BookingCreateSerializer,
    BookingRescheduleSerializer,
    BookingSerializer,
)
from bookings.services import workflow
from core.roles import OWNER


class BookingViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Customer and owner booking endpoints.

    Every mutation is delegated to `bookings.services.workflow` with the caller's
    id passed explicitly; the workflow owns the authorization checks.
    """

    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status", "listing"]
    ordering_fields = ["booking_date", "created_at"]

    def get_queryset(self):
        return workflow.list_for_customer(self.request.user.id)

    def create(self, request, *args, **kwargs):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = workflow.create_booking(
            customer_id=request.user.id,
            listing_id=serializer.validated_data["listing_id"],
            booking_date=serializer.validated_data["booking_date"],
        )
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"], url_path="owner")
    def owner(self, request):
        queryset = self.filter_queryset(workflow.list_for_owner(request.user.id))
        return Response(BookingSerializer(queryset, many=True).data)

    @action(detail=True, methods=["patch"], url_path="date")
    def reschedule(self, request, pk=None):
        serializer = BookingRescheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = workflow.reschedule_booking(
            booking_id=pk,
            owner_id=request.user.id,
            new_date=serializer.validated_data["booking_date"],
        )
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=["patch"], url_path="cancel")
    def cancel(self, request, pk=None):
        serializer = BookingCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        acting_as = serializer.validated_data.get("acting_as")
        actor_is_owner = acting_as == OWNER if acting_as else request.user.is_owner
        booking = workflow.cancel_booking(
            booking_id=pk,
            actor_id=request.user.id,
            actor_is_owner=actor_is_owner,
        )
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=["post"], url_path="complete")
    def complete(self, request, pk=None):
        booking = workflow.complete_booking(booking_id=pk, owner_id=request.user.id)
        return Response(BookingSerializer(booking).data)
