from __future__ import annotations

from rest_framework import serializers

from .models import ListeningEvent, MusicProfile, Song


class ListeningEventSerializer(serializers.ModelSerializer):
    song_id = serializers.PrimaryKeyRelatedField(source="song", queryset=Song.objects.all())
    duration_listened = serializers.IntegerField(min_value=0)

    class Meta:
        model = ListeningEvent
        fields = ["id", "song_id", "listened_at", "duration_listened", "completed"]
        read_only_fields = ["id", "listened_at"]


class MusicProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = MusicProfile
        fields = ["top_artists", "top_genres", "genre_vector", "is_spotify_linked", "last_updated"]
        read_only_fields = fields


class SpotifyLinkSerializer(serializers.Serializer):
    access_token = serializers.CharField(required=False, allow_blank=False)
    code = serializers.CharField(required=False, allow_blank=False)
    redirect_uri = serializers.URLField(required=False)

    def validate(self, attrs):
        if not attrs.get("access_token") and not attrs.get("code"):
            raise serializers.ValidationError("Provide either access_token or code.")
        return attrs
