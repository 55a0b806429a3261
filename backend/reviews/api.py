from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from reviews.serializers import (
    ReviewCreateSerializer,
    ReviewListQuerySerializer,
    ReviewSerializer,
    ReviewWriteSerializer,
)
from reviews.services import gate


class ReviewViewSet(viewsets.GenericViewSet):
    serializer_class = ReviewSerializer
    permission_classes = [permissions.IsAuthenticated]

    def list(self, request, *args, **kwargs):
        query = ReviewListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        reviews = gate.list_for_listing(query.validated_data["listing"])
        return Response(ReviewSerializer(reviews, many=True).data)

    @action(detail=False, methods=["get"], url_path="mine")
    def mine(self, request):
        reviews = gate.list_for_user(request.user.id)
        return Response(ReviewSerializer(reviews, many=True).data)

    def create(self, request, *args, **kwargs):
        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = gate.create_review(customer_id=request.user.id, **serializer.validated_data)
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None, *args, **kwargs):
        serializer = ReviewWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = gate.update_review(customer_id=request.user.id, review_id=pk, **serializer.validated_data)
        return Response(ReviewSerializer(review).data)

    def destroy(self, request, pk=None, *args, **kwargs):
        gate.delete_review(customer_id=request.user.id, review_id=pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CanReviewView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, listing_id, *args, **kwargs):
        return Response({"can_review": gate.can_review(customer_id=request.user.id, listing_id=listing_id)})
