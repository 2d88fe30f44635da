from __future__ import annotations

import math
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase

from apps.music.models import ListeningEvent, Song
from apps.music.services.preferences import (
    EMPTY_SIGNATURE,
    build_explicit_profile,
    extract_implicit,
    load_implicit_signature,
    load_implicit_signatures,
)
from apps.users.models import User


def test_extract_implicit_lowercases_and_skips_blanks():
    signature = extract_implicit(
        [
            {"genre": "Rock", "artist": " Radiohead "},
            {"song": {"genre": "JAZZ", "artist": "Miles Davis"}},
            {"songs": {"genre": None, "artist": ""}},
        ]
    )
    assert signature.genres == {"rock", "jazz"}
    assert signature.artists == {"radiohead", "miles davis"}


def test_extract_implicit_empty_input():
    assert extract_implicit([]) == EMPTY_SIGNATURE
    assert extract_implicit(None).is_empty


def test_build_explicit_profile_counts_and_normalises():
    profile = build_explicit_profile(
        [
            {"id": "1", "name": "A", "genres": ["Rock", "indie"]},
            {"id": "2", "name": "B", "genres": ["rock"]},
            {"id": "1", "name": "A", "genres": ["Rock", "indie"]},
            {"id": "3", "name": "C", "genres": ["jazz"], "images": [{"url": "http://img"}]},
        ]
    )
    assert [artist["name"] for artist in profile.top_artists] == ["A", "B", "C"]
    assert profile.top_artists[2]["image"] == "http://img"
    assert profile.top_genres == [
        {"name": "rock", "count": 2},
        {"name": "indie", "count": 1},
        {"name": "jazz", "count": 1},
    ]
    assert math.isclose(sum(profile.genre_vector.values()), 1.0)
    assert math.isclose(profile.genre_vector["rock"], 0.5)


def test_build_explicit_profile_without_genres_has_empty_vector():
    profile = build_explicit_profile([{"id": "1", "name": "A", "genres": []}])
    assert profile.genre_vector == {}
    assert profile.top_genres == []
    assert profile.is_valid

    empty = build_explicit_profile([])
    assert not empty.is_valid


class ImplicitSignatureLoadingTests(TestCase):
    def setUp(self) -> None:
        self.user = User.objects.create_user(email="load@example.com", password="pass1234", handle="load")
        self.other = User.objects.create_user(email="other@example.com", password="pass1234", handle="other")
        song = Song.objects.create(title="Song", artist="Artist", genre="Rock")
        ListeningEvent.objects.create(user=self.user, song=song, duration_listened=60)

    def test_loads_signatures_per_user(self) -> None:
        signatures = load_implicit_signatures([self.user.id, self.other.id])
        self.assertEqual(signatures[self.user.id].genres, frozenset({"rock"}))
        self.assertEqual(signatures[self.user.id].artists, frozenset({"artist"}))
        self.assertTrue(signatures[self.other.id].is_empty)

    def test_database_failure_degrades_to_empty(self) -> None:
        with mock.patch(
            "apps.music.services.preferences.ListeningEvent.objects.filter",
            side_effect=DatabaseError("boom"),
        ):
            signature = load_implicit_signature(self.user.id)
        self.assertEqual(signature, EMPTY_SIGNATURE)
