from rest_framework import serializers

from listings.models import Listing


class ListingSerializer(serializers.ModelSerializer):
    owner_id = serializers.IntegerField(read_only=True)
    owner_name = serializers.CharField(source="owner.display_name", read_only=True)

    class Meta:
        model = Listing
        fields = [
            "id",
            "owner_id",
            "owner_name",
            "title",
            "description",
            "price",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ListingWriteSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
