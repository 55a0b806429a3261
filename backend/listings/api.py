from rest_framework import permissions, status, viewsets
from rest_framework.response import Response

from listings.models import Listing
from listings.serializers import ListingSerializer, ListingWriteSerializer
from listings.services import catalog


class ListingViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Browse listings; owners also create and manage their own.

    Writes go through `listings.services.catalog`, which checks the caller's
    role and ownership.
    """

    serializer_class = ListingSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["owner"]
    search_fields = ["title", "description"]
    ordering_fields = ["price", "created_at"]

    def get_queryset(self):
        return Listing.objects.select_related("owner").order_by("title", "id")

    def create(self, request, *args, **kwargs):
        serializer = ListingWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        listing = catalog.create_listing(
            owner_id=request.user.id,
            owner_role=request.user.role,
            **serializer.validated_data,
        )
        return Response(ListingSerializer(listing).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        serializer = ListingWriteSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        listing = catalog.update_listing(listing_id=pk, owner_id=request.user.id, **serializer.validated_data)
        return Response(ListingSerializer(listing).data)

    def partial_update(self, request, *args, **kwargs):
        kwargs["partial"] = True
        return self.update(request, *args, **kwargs)

    def destroy(self, request, pk=None, *args, **kwargs):
        catalog.delete_listing(listing_id=pk, owner_id=request.user.id)
        return Response(status=status.HTTP_204_NO_CONTENT)
