from __future__ import annotations

from unittest import mock

import requests
from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework.test import APIClient

from apps.music.exceptions import InvalidProfileState, SpotifyAPIError
from apps.music.models import MusicProfile
from apps.music.services.spotify import SpotifyClient, collect_spotify_taste, link_spotify_profile
from apps.users.models import User

ROCK_ARTIST = {"id": "a1", "name": "Band", "genres": ["Rock"]}
JAZZ_ARTIST = {"id": "a2", "name": "Trio", "genres": ["jazz"]}


class FakeSpotifyClient:
    def __init__(self, *, top_artists=None, top_tracks=None, saved_tracks=None, artists=None) -> None:
        self._top_artists = top_artists or []
        self._top_tracks = top_tracks or []
        self._saved_tracks = saved_tracks or []
        self._artists = {artist["id"]: artist for artist in artists or []}
        self.resolved: list[list[str]] = []

    def top_artists(self):
        return self._top_artists

    def top_tracks(self):
        return self._top_tracks

    def saved_tracks(self):
        return self._saved_tracks

    def artists(self, ids):
        ids = list(ids)
        self.resolved.append(ids)
        return [self._artists[artist_id] for artist_id in ids if artist_id in self._artists]


def track(*artist_ids: str) -> dict:
    return {"id": "t", "artists": [{"id": artist_id, "name": artist_id} for artist_id in artist_ids]}


class SpotifyFallbackTests(TestCase):
    def test_uses_top_artists_when_present(self) -> None:
        client = FakeSpotifyClient(top_artists=[ROCK_ARTIST])
        profile, source = collect_spotify_taste(client)
        self.assertEqual(source, "top_artists")
        self.assertEqual(profile.genre_vector, {"rock": 1.0})
        self.assertEqual(client.resolved, [])

    def test_falls_back_to_top_track_artists(self) -> None:
        client = FakeSpotifyClient(
            top_tracks=[track("a1", "a2"), track("a1")],
            artists=[ROCK_ARTIST, JAZZ_ARTIST],
        )
        profile, source = collect_spotify_taste(client)
        self.assertEqual(source, "top_tracks")
        self.assertEqual(client.resolved, [["a1", "a2"]])
        self.assertEqual(set(profile.genre_vector), {"rock", "jazz"})

    def test_falls_back_to_saved_tracks(self) -> None:
        client = FakeSpotifyClient(saved_tracks=[track("a2")], artists=[JAZZ_ARTIST])
        profile, source = collect_spotify_taste(client)
        self.assertEqual(source, "saved_tracks")
        self.assertEqual(profile.genre_vector, {"jazz": 1.0})


class SpotifyLinkPersistenceTests(TestCase):
    def setUp(self) -> None:
        self.user = User.objects.create_user(email="link@example.com", password="pass1234", handle="link")

    def test_valid_profile_is_linked(self) -> None:
        profile = link_spotify_profile(self.user, FakeSpotifyClient(top_artists=[ROCK_ARTIST]))
        self.assertTrue(profile.is_spotify_linked)
        self.assertEqual(profile.top_genres, [{"name": "rock", "count": 1}])
        self.assertIsNotNone(profile.last_updated)

    def test_empty_profile_is_never_linked(self) -> None:
        MusicProfile.objects.create(user=self.user, is_spotify_linked=True, genre_vector={"rock": 1.0})
        with self.assertRaises(InvalidProfileState) as ctx:
            link_spotify_profile(self.user, FakeSpotifyClient())
        self.assertEqual(ctx.exception.source, "saved_tracks")
        self.assertFalse(MusicProfile.objects.get(user=self.user).is_spotify_linked)

    def test_empty_profile_creates_no_row(self) -> None:
        with self.assertRaises(InvalidProfileState):
            link_spotify_profile(self.user, FakeSpotifyClient())
        self.assertFalse(MusicProfile.objects.filter(user=self.user).exists())


class SpotifyClientTests(TestCase):
    def test_http_error_raises_spotify_api_error(self) -> None:
        response = requests.Response()
        response.status_code = 401
        session = mock.Mock()
        session.get.return_value = response
        client = SpotifyClient("token", base_url="https://spotify.test/v1", timeout=1, session=session)
        with self.assertRaises(SpotifyAPIError) as ctx:
            client.top_artists()
        self.assertEqual(ctx.exception.status_code, 401)
        _, kwargs = session.get.call_args
        self.assertEqual(kwargs["headers"], {"Authorization": "Bearer token"})

    def test_artists_are_fetched_in_batches(self) -> None:
        session = mock.Mock()
        session.get.return_value.json.return_value = {"artists": [ROCK_ARTIST]}
        client = SpotifyClient("token", base_url="https://spotify.test/v1", timeout=1, session=session)
        client.artists([f"id{i}" for i in range(120)])
        self.assertEqual(session.get.call_count, 3)


class SpotifyLinkApiTests(TestCase):
    def setUp(self) -> None:
        self.user = User.objects.create_user(email="api@example.com", password="pass1234", handle="api")
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)

    @mock.patch("apps.music.views.SpotifyClient")
    def test_link_and_status(self, client_cls) -> None:
        client_cls.return_value = FakeSpotifyClient(top_artists=[ROCK_ARTIST])
        response = self.client.post("/api/v1/music/spotify/link/", {"access_token": "tok"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["is_spotify_linked"])
        client_cls.assert_called_once_with("tok")

        linked = self.client.get("/api/v1/music/spotify/status/")
        self.assertEqual(linked.data, {"linked": True})

        unlink = self.client.delete("/api/v1/music/spotify/link/")
        self.assertEqual(unlink.data, {"linked": False})
        self.assertFalse(self.client.get("/api/v1/music/spotify/status/").data["linked"])

    @mock.patch("apps.music.views.SpotifyClient")
    def test_empty_profile_returns_partial_failure(self, client_cls) -> None:
        client_cls.return_value = FakeSpotifyClient()
        response = self.client.post("/api/v1/music/spotify/link/", {"access_token": "tok"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertFalse(response.data["linked"])
        self.assertEqual(response.data["source"], "saved_tracks")

    @mock.patch("apps.music.views.exchange_code", side_effect=SpotifyAPIError("down", status_code=500))
    def test_upstream_failure_returns_bad_gateway(self, _exchange) -> None:
        response = self.client.post("/api/v1/music/spotify/link/", {"code": "abc"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)

    def test_requires_token_or_code(self) -> None:
        response = self.client.post("/api/v1/music/spotify/link/", {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(FEATURE_FLAGS={"spotify": False})
    def test_feature_flag_disables_linking(self) -> None:
        response = self.client.post("/api/v1/music/spotify/link/", {"access_token": "tok"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
