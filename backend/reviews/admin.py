from django.contrib import admin

from .models import Review


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ("listing", "customer", "rating", "is_deleted", "created_at")
    list_filter = ("is_deleted",)
    search_fields = ("listing__title", "customer__email", "comment")

    def get_queryset(self, request):
        # Staff see soft-deleted rows too.
        return super().get_queryset(request).select_related("listing", "customer")
