from __future__ import annotations

from django.contrib import admin

from apps.music.models import ListeningEvent, MusicProfile, Song


@admin.register(Song)
class SongAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "artist", "genre", "origin")
    search_fields = ("title", "artist", "genre")
    list_filter = ("origin",)


@admin.register(ListeningEvent)
class ListeningEventAdmin(admin.ModelAdmin):
    list_display = ("id", "user_id", "song_id", "duration_listened", "completed", "listened_at")


@admin.register(MusicProfile)
class MusicProfileAdmin(admin.ModelAdmin):
    list_display = ("user_id", "is_spotify_linked", "last_updated")
    list_filter = ("is_spotify_linked",)
