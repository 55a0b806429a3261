from rest_framework import serializers

from reviews.models import MAX_RATING, MIN_RATING, Review


class ReviewSerializer(serializers.ModelSerializer):
    listing_id = serializers.IntegerField(read_only=True)
    booking_id = serializers.IntegerField(read_only=True)
    customer_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Review
        fields = [
            "id",
            "listing_id",
            "booking_id",
            "customer_id",
            "rating",
            "comment",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ReviewWriteSerializer(serializers.Serializer):
    rating = serializers.DecimalField(
        max_digits=3,
        decimal_places=1,
        min_value=MIN_RATING,
        max_value=MAX_RATING,
    )
    comment = serializers.CharField(required=False, allow_blank=True, default="")


class ReviewCreateSerializer(ReviewWriteSerializer):
    listing_id = serializers.IntegerField(min_value=1)
    booking_id = serializers.IntegerField(min_value=1)


class ReviewListQuerySerializer(serializers.Serializer):
    listing = serializers.IntegerField(min_value=1)
