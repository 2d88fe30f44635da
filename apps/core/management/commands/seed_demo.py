from __future__ import annotations

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from apps.music.models import ListeningEvent, MusicProfile, Song
from apps.music.services.preferences import build_explicit_profile
from apps.users.models import User, UserSettings

DEMO_USERS = [
    {
        "email": "demo-rock@example.com",
        "handle": "rockfan",
        "name": "Demo Rock Fan",
        "bio": "Guitars first, questions later.",
    },
    {
        "email": "demo-jazz@example.com",
        "handle": "jazzcat",
        "name": "Demo Jazz Cat",
        "bio": "Late nights and upright bass.",
    },
    {
        "email": "demo-mixed@example.com",
        "handle": "crate",
        "name": "Demo Crate Digger",
        "bio": "A bit of everything.",
    },
]

DEMO_SONGS = [
    {"title": "Paranoid Android", "artist": "Radiohead", "genre": "Rock", "duration": 387},
    {"title": "Everlong", "artist": "Foo Fighters", "genre": "Rock", "duration": 250},
    {"title": "So What", "artist": "Miles Davis", "genre": "Jazz", "duration": 562},
    {"title": "Take Five", "artist": "Dave Brubeck", "genre": "Jazz", "duration": 324},
    {"title": "Midnight City", "artist": "M83", "genre": "Electronic", "duration": 244},
]

# Indexes into DEMO_SONGS each demo user has listened to.
DEMO_HISTORY = {
    "rockfan": [0, 1, 4],
    "jazzcat": [2, 3],
    "crate": [0, 2, 4],
}

DEMO_SPOTIFY_ARTISTS = [
    {"id": "demo-radiohead", "name": "Radiohead", "genres": ["alternative rock", "art rock"]},
    {"id": "demo-m83", "name": "M83", "genres": ["electronic", "shoegaze"]},
]

DEFAULT_PASSWORD = "changeme123"


class Command(BaseCommand):
    help = "Seed demo users, songs and listening history"

    def add_arguments(self, parser):  # type: ignore[override]
        parser.add_argument(
            "--reset",
            action="store_true",
            help="Reset demo users before seeding",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options.get("reset"):
            self.stdout.write("Removing existing demo data…")
            emails = [user["email"] for user in DEMO_USERS]
            User.objects.filter(email__in=emails).delete()

        songs = [self._ensure_song(payload) for payload in DEMO_SONGS]
        users = {payload["handle"]: self._ensure_user(payload) for payload in DEMO_USERS}
        self._ensure_history(users, songs)
        self._ensure_spotify_profile(users["crate"])

        self.stdout.write(self.style.SUCCESS("Demo data seeded."))

    def _ensure_user(self, payload: dict) -> User:
        user, created = User.objects.get_or_create(
            email=payload["email"],
            defaults={
                "handle": payload["handle"],
                "name": payload["name"],
                "bio": payload.get("bio", ""),
            },
        )
        if created or not user.check_password(DEFAULT_PASSWORD):
            user.set_password(DEFAULT_PASSWORD)
            user.save(update_fields=["password"])
        UserSettings.objects.get_or_create(user=user)
        return user

    def _ensure_song(self, payload: dict) -> Song:
        song, _ = Song.objects.get_or_create(
            title=payload["title"],
            artist=payload["artist"],
            defaults={"genre": payload["genre"], "duration": payload["duration"]},
        )
        return song

    def _ensure_history(self, users: dict[str, User], songs: list[Song]) -> None:
        for handle, indexes in DEMO_HISTORY.items():
            user = users[handle]
            for index in indexes:
                song = songs[index]
                if ListeningEvent.objects.filter(user=user, song=song).exists():
                    continue
                ListeningEvent.objects.create(
                    user=user,
                    song=song,
                    duration_listened=song.duration or 60,
                    completed=True,
                )

    def _ensure_spotify_profile(self, user: User) -> None:
        profile = build_explicit_profile(DEMO_SPOTIFY_ARTISTS)
        MusicProfile.objects.update_or_create(
            user=user,
            defaults={
                "top_artists": profile.top_artists,
                "top_genres": profile.top_genres,
                "genre_vector": profile.genre_vector,
                "is_spotify_linked": True,
                "last_updated": timezone.now(),
            },
        )
