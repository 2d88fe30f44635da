from __future__ import annotations

from django.contrib import admin

from apps.connections.models import Connection


@admin.register(Connection)
class ConnectionAdmin(admin.ModelAdmin):
    list_display = ("id", "user_a_id", "user_b_id", "status", "match_score", "created_at")
    list_filter = ("status",)
    readonly_fields = ("pair_low", "pair_high", "created_at", "updated_at")
