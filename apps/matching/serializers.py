from __future__ import annotations

from rest_framework import serializers

from apps.users.serializers import UserSummarySerializer

from .services.ranker import VIEWS


class MatchQuerySerializer(serializers.Serializer):
    view = serializers.ChoiceField(choices=VIEWS, default="all")
    offset = serializers.IntegerField(min_value=0, default=0)
    limit = serializers.IntegerField(min_value=1, max_value=50, required=False)


class MatchCandidateSerializer(serializers.Serializer):
    user = UserSummarySerializer()
    combined_score = serializers.IntegerField()
    vibe_score = serializers.FloatField()
    spotify_score = serializers.FloatField()
    vibe_percent = serializers.IntegerField()
    spotify_percent = serializers.IntegerField()
    shared_genres = serializers.ListField(child=serializers.CharField())
    shared_artists = serializers.ListField(child=serializers.CharField())
