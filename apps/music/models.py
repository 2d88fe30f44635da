from __future__ import annotations

from django.db import models

from apps.core.models import BaseModel


class Song(BaseModel):
    class Origin(models.TextChoices):
        LOCAL = "local", "Local"
        JAMENDO = "jamendo", "Jamendo"

    title = models.CharField(max_length=255)
    artist = models.CharField(max_length=255)
    genre = models.CharField(max_length=120, null=True, blank=True)
    duration = models.PositiveIntegerField(null=True, blank=True)
    origin = models.CharField(max_length=16, choices=Origin.choices, default=Origin.LOCAL)
    external_id = models.CharField(max_length=128, null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["genre"], name="music_song_genre_idx"),
            models.Index(fields=["artist"], name="music_song_artist_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"{self.artist} - {self.title}"


class ListeningEvent(models.Model):
    id = models.BigAutoField(primary_key=True)
    user = models.ForeignKey("users.User", on_delete=models.CASCADE, related_name="listening_events")
    song = models.ForeignKey(Song, on_delete=models.SET_NULL, null=True, related_name="listening_events")
    listened_at = models.DateTimeField(auto_now_add=True)
    duration_listened = models.PositiveIntegerField()
    completed = models.BooleanField(default=False)

    class Meta:
        ordering = ["-listened_at"]
        indexes = [
            models.Index(fields=["user", "listened_at"], name="music_listen_user_idx"),
        ]


class MusicProfile(BaseModel):
    user = models.OneToOneField("users.User", on_delete=models.CASCADE, related_name="music_profile")
    top_artists = models.JSONField(default=list, blank=True)
    top_genres = models.JSONField(default=list, blank=True)
    genre_vector = models.JSONField(default=dict, blank=True)
    is_spotify_linked = models.BooleanField(default=False)
    last_updated = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["is_spotify_linked"], name="music_profile_linked_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"MusicProfile<{self.user_id}:{'linked' if self.is_spotify_linked else 'unlinked'}>"
