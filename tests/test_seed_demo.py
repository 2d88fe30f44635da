from __future__ import annotations

from django.core.management import call_command
from django.test import TestCase

from apps.matching.services.ranker import find_matches
from apps.music.models import ListeningEvent, MusicProfile, Song
from apps.users.models import User


class SeedDemoCommandTests(TestCase):
    def test_seed_is_idempotent_and_matchable(self) -> None:
        call_command("seed_demo")
        call_command("seed_demo")

        self.assertEqual(User.objects.count(), 3)
        self.assertEqual(Song.objects.count(), 5)
        self.assertEqual(ListeningEvent.objects.count(), 8)
        self.assertTrue(MusicProfile.objects.get(user__handle="crate").is_spotify_linked)

        rock = User.objects.get(handle="rockfan")
        ranked = [match.user_id for match in find_matches(rock)]
        self.assertEqual(ranked, [User.objects.get(handle="crate").id])

    def test_reset_recreates_users(self) -> None:
        call_command("seed_demo")
        ListeningEvent.objects.filter(user__handle="jazzcat").delete()
        call_command("seed_demo", reset=True)
        self.assertEqual(User.objects.count(), 3)
        self.assertEqual(ListeningEvent.objects.count(), 8)
