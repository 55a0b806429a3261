from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("booking", "amount", "currency", "status", "attempts", "last_outcome", "gateway_reference")
    list_filter = ("status", "last_outcome", "currency")
    search_fields = ("gateway_reference", "booking__customer__email")
    readonly_fields = (
        "booking",
        "amount",
        "currency",
        "method",
        "gateway_reference",
        "status",
        "attempts",
        "last_outcome",
        "claimed_at",
        "created_at",
    )
