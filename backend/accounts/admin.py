from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User


@admin.register(User)
class SkillhubUserAdmin(UserAdmin):
    list_display = ("email", "display_name", "role", "is_staff")
    list_filter = ("role", "is_staff", "is_superuser")
    fieldsets = UserAdmin.fieldsets + (("Marketplace", {"fields": ("display_name", "role")}),)
