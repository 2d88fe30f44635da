from __future__ import annotations

import math

import pytest
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase, override_settings

from apps.connections.models import Connection
from apps.matching.services.ranker import (
    CandidateSignals,
    build_candidate_pool,
    find_match_page,
    find_matches,
    load_signals,
    match_with,
    rank_matches,
)
from apps.music.models import ListeningEvent, MusicProfile, Song
from apps.music.services.preferences import TasteSignature
from apps.users.models import User


def signals(user_id: int, genres=(), artists=(), profile=None) -> CandidateSignals:
    return CandidateSignals(
        user_id=user_id,
        signature=TasteSignature(genres=frozenset(genres), artists=frozenset(artists)),
        profile=profile,
    )


def linked(vector: dict, *artists: str) -> dict:
    return {"is_spotify_linked": True, "genre_vector": vector, "top_artists": [{"name": name} for name in artists]}


def test_rank_matches_example_history_kept_at_35():
    current = signals(1, genres={"rock", "jazz"}, artists={"x", "y"})
    candidate = signals(2, genres={"rock"}, artists={"z"})
    matches = rank_matches(current, [candidate], max_workers=1)
    assert len(matches) == 1
    assert math.isclose(matches[0].vibe_score, 0.35)
    assert matches[0].combined_score == 35
    assert matches[0].spotify_score == 0.0
    assert matches[0].shared_genres == ["rock"]


def test_rank_matches_drops_candidates_at_or_below_threshold():
    current = signals(1, genres={"a", "b", "c", "d", "e", "f", "g", "h"})
    weak = signals(2, genres={"a"})
    unrelated = signals(3, genres={"zzz"})
    matches = rank_matches(current, [weak, unrelated], max_workers=1)
    assert matches == []


def test_rank_matches_orders_by_best_score_then_user_id():
    current = signals(1, genres={"rock"}, artists={"x"}, profile=linked({"rock": 1.0}, "X"))
    tie_high_id = signals(5, genres={"rock"}, artists={"x"})
    tie_low_id = signals(4, genres={"rock"}, artists={"x"})
    spotify_only = signals(3, profile=linked({"rock": 1.0}))
    partial = signals(2, genres={"rock"})
    matches = rank_matches(current, [tie_high_id, partial, spotify_only, tie_low_id], max_workers=2)
    assert [match.user_id for match in matches] == [4, 5, 2, 3]
    best = [match.best_score for match in matches]
    assert best == sorted(best, reverse=True)


def test_rank_matches_spotify_view_filters_and_resorts():
    current = signals(1, genres={"rock"}, profile=linked({"rock": 1.0}, "X"))
    strong = signals(2, profile=linked({"rock": 1.0}, "X"))
    medium = signals(3, genres={"rock"}, profile=linked({"rock": 0.5, "jazz": 0.5}))
    matches = rank_matches(current, [medium, strong], view="spotify", max_workers=1)
    assert [match.user_id for match in matches] == [2]
    assert matches[0].spotify_percent == 100


def test_rank_matches_skips_current_user_and_rejects_unknown_view():
    current = signals(1, genres={"rock"})
    assert rank_matches(current, [current], max_workers=1) == []
    with pytest.raises(ValueError):
        rank_matches(current, [], view="nearby")


@override_settings(MATCHING_CANDIDATE_LIMIT=20)
class CandidatePoolTests(TestCase):
    def setUp(self) -> None:
        self.me = self._user("me")
        self.rock_fan = self._user("rockfan")
        self.jazz_fan = self._user("jazzfan")
        self.pending = self._user("pending")
        self.friend = self._user("friend")
        self.linked = self._user("linked")
        rock = Song.objects.create(title="R", artist="Band", genre="Rock")
        jazz = Song.objects.create(title="J", artist="Trio", genre="Jazz")
        for user in (self.me, self.rock_fan, self.pending, self.friend):
            ListeningEvent.objects.create(user=user, song=rock, duration_listened=90)
        ListeningEvent.objects.create(user=self.jazz_fan, song=jazz, duration_listened=90)
        Connection.objects.create(user_a=self.me, user_b=self.pending)
        Connection.objects.create(user_a=self.friend, user_b=self.me, status=Connection.Status.CONNECTED)
        MusicProfile.objects.create(
            user=self.linked,
            is_spotify_linked=True,
            genre_vector={"rock": 1.0},
            top_artists=[{"name": "Band"}],
        )

    def _user(self, handle: str) -> User:
        return User.objects.create_user(email=f"{handle}@example.com", password="pass1234", handle=handle)

    def test_pool_includes_overlap_and_excludes_active_connections(self) -> None:
        current = load_signals([self.me.id])[self.me.id]
        pool = build_candidate_pool(current)
        self.assertEqual(pool, [self.rock_fan.id])

    def test_pool_includes_linked_profiles_when_current_is_linked(self) -> None:
        MusicProfile.objects.create(user=self.me, is_spotify_linked=True, genre_vector={"rock": 1.0})
        current = load_signals([self.me.id])[self.me.id]
        self.assertEqual(build_candidate_pool(current), [self.rock_fan.id, self.linked.id])
        self.assertEqual(build_candidate_pool(current, view="spotify"), [self.linked.id])

    def test_pool_is_paginated(self) -> None:
        MusicProfile.objects.create(user=self.me, is_spotify_linked=True, genre_vector={"rock": 1.0})
        current = load_signals([self.me.id])[self.me.id]
        self.assertEqual(build_candidate_pool(current, limit=1, offset=1), [self.linked.id])

    def test_find_matches_scores_pool(self) -> None:
        matches = find_matches(self.me)
        self.assertEqual([match.user_id for match in matches], [self.rock_fan.id])
        self.assertEqual(matches[0].combined_score, 100)

    def test_rejected_request_returns_user_to_pool(self) -> None:
        Connection.objects.filter(user_b=self.pending).delete()
        ids = [match.user_id for match in find_matches(self.me)]
        self.assertIn(self.pending.id, ids)

    def test_padded_tags_still_enter_pool(self) -> None:
        padded = self._user("padded")
        song = Song.objects.create(title="P", artist="Other ", genre="Rock ")
        ListeningEvent.objects.create(user=padded, song=song, duration_listened=90)
        current = load_signals([self.me.id])[self.me.id]
        self.assertEqual(build_candidate_pool(current), [self.rock_fan.id, padded.id])
        ranked = {match.user_id: match for match in find_matches(self.me)}
        self.assertEqual(ranked[padded.id].combined_score, 70)

    def test_blocked_users_are_not_candidates(self) -> None:
        Connection.objects.create(user_a=self.rock_fan, user_b=self.me, status=Connection.Status.BLOCKED)
        self.assertEqual(find_matches(self.me), [])

    def test_profile_fetch_failure_degrades_to_implicit(self) -> None:
        MusicProfile.objects.create(user=self.me, is_spotify_linked=True, genre_vector={"rock": 1.0})
        with mock.patch(
            "apps.matching.services.ranker.MusicProfile.objects.filter",
            side_effect=DatabaseError("boom"),
        ):
            signals_by_id = load_signals([self.me.id, self.linked.id])
            pair = match_with(self.me, self.rock_fan)
        self.assertIsNone(signals_by_id[self.me.id].profile)
        self.assertIsNone(signals_by_id[self.linked.id].profile)
        self.assertEqual(pair.spotify_score, 0.0)
        self.assertEqual(pair.combined_score, 100)

    def test_page_reports_next_offset_until_exhausted(self) -> None:
        MusicProfile.objects.create(user=self.me, is_spotify_linked=True, genre_vector={"rock": 1.0})
        first, next_offset = find_match_page(self.me, limit=1)
        self.assertEqual([match.user_id for match in first], [self.rock_fan.id])
        self.assertEqual(next_offset, 1)
        second, next_offset = find_match_page(self.me, limit=1, offset=1)
        self.assertEqual([match.user_id for match in second], [self.linked.id])
        self.assertEqual(next_offset, 2)
        last, next_offset = find_match_page(self.me, limit=1, offset=2)
        self.assertEqual(last, [])
        self.assertIsNone(next_offset)
