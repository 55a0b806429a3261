from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("id", "listing", "customer", "booking_date", "status", "modified_by_role")
    list_filter = ("status", "modified_by_role")
    search_fields = ("listing__title", "customer__email")
    readonly_fields = ("status", "modified_by", "modified_by_role", "created_at", "updated_at")
