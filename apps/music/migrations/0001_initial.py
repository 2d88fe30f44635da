from __future__ import annotations

from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Song",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("title", models.CharField(max_length=255)),
                ("artist", models.CharField(max_length=255)),
                ("genre", models.CharField(blank=True, max_length=120, null=True)),
                ("duration", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "origin",
                    models.CharField(
                        choices=[("local", "Local"), ("jamendo", "Jamendo")],
                        default="local",
                        max_length=16,
                    ),
                ),
                ("external_id", models.CharField(blank=True, max_length=128, null=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["genre"], name="music_song_genre_idx"),
                    models.Index(fields=["artist"], name="music_song_artist_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ListeningEvent",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("listened_at", models.DateTimeField(auto_now_add=True)),
                ("duration_listened", models.PositiveIntegerField()),
                ("completed", models.BooleanField(default=False)),
                (
                    "song",
                    models.ForeignKey(
                        null=True,
                        on_delete=models.deletion.SET_NULL,
                        related_name="listening_events",
                        to="music.song",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="listening_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-listened_at"],
                "indexes": [
                    models.Index(fields=["user", "listened_at"], name="music_listen_user_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="MusicProfile",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("top_artists", models.JSONField(blank=True, default=list)),
                ("top_genres", models.JSONField(blank=True, default=list)),
                ("genre_vector", models.JSONField(blank=True, default=dict)),
                ("is_spotify_linked", models.BooleanField(default=False)),
                ("last_updated", models.DateTimeField(blank=True, null=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=models.deletion.CASCADE,
                        related_name="music_profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["is_spotify_linked"], name="music_profile_linked_idx"),
                ],
            },
        ),
    ]
