from __future__ import annotations

from django.utils import timezone
from rest_framework import serializers

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ["id", "type", "payload", "link", "is_read", "created_at", "read_at"]
        read_only_fields = ["id", "type", "payload", "link", "created_at", "read_at"]

    def update(self, instance: Notification, validated_data: dict) -> Notification:
        if validated_data.get("is_read") and not instance.is_read:
            instance.is_read = True
            instance.read_at = timezone.now()
            instance.save(update_fields=["is_read", "read_at", "updated_at"])
        return instance


class UnreadCountsSerializer(serializers.Serializer):
    messages = serializers.IntegerField()
    matches = serializers.IntegerField()
    notifications = serializers.IntegerField()
