from __future__ import annotations

from django.contrib import admin

from apps.users.models import User, UserSettings


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ("id", "email", "handle", "name", "is_active", "created_at")
    search_fields = ("email", "handle", "name")
    readonly_fields = ("created_at", "updated_at", "last_login")


@admin.register(UserSettings)
class UserSettingsAdmin(admin.ModelAdmin):
    list_display = ("user_id", "push_enabled", "email_enabled", "updated_at")
