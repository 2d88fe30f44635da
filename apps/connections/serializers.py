from __future__ import annotations

from rest_framework import serializers

from apps.users.models import User
from apps.users.serializers import UserSummarySerializer

from .models import Connection


class ConnectionSerializer(serializers.ModelSerializer):
    user_a = UserSummarySerializer(read_only=True)
    user_b = UserSummarySerializer(read_only=True)
    other_user = serializers.SerializerMethodField()
    direction = serializers.SerializerMethodField()

    class Meta:
        model = Connection
        fields = ["id", "user_a", "user_b", "other_user", "direction", "status", "match_score", "created_at"]
        read_only_fields = fields

    def _viewer_id(self) -> int | None:
        request = self.context.get("request")
        if request and request.user.is_authenticated:
            return request.user.id
        return None

    def get_other_user(self, obj: Connection) -> dict | None:
        viewer_id = self._viewer_id()
        if viewer_id is None:
            return None
        other = obj.user_b if viewer_id == obj.user_a_id else obj.user_a
        return UserSummarySerializer(other).data

    def get_direction(self, obj: Connection) -> str | None:
        viewer_id = self._viewer_id()
        if viewer_id is None:
            return None
        return "outgoing" if viewer_id == obj.user_a_id else "incoming"


class ConnectionCreateSerializer(serializers.Serializer):
    user_id = serializers.PrimaryKeyRelatedField(queryset=User.objects.filter(is_active=True))
    match_score = serializers.FloatField(min_value=0, max_value=100, required=False, allow_null=True)
