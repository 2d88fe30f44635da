from __future__ import annotations

from rest_framework import serializers

from .models import User


class UserSummarySerializer(serializers.ModelSerializer):
    """Public card data for a user: what match and connection lists render."""

    name = serializers.CharField(source="display_name", read_only=True)

    class Meta:
        model = User
        fields = ["id", "handle", "name", "photo"]
        read_only_fields = fields
