from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import requests
from django.conf import settings
from django.db import transaction
from django.utils import timezone
from requests import RequestException

from apps.music.exceptions import InvalidProfileState, SpotifyAPIError
from apps.music.models import MusicProfile
from apps.music.services.preferences import ExplicitProfile, build_explicit_profile
from apps.users.models import User

logger = logging.getLogger(__name__)

ARTISTS_BATCH_SIZE = 50
DEFAULT_LIMIT = 50
DEFAULT_TIME_RANGE = "medium_term"


class SpotifyClient:
    """Thin wrapper over the Spotify Web API endpoints the taste profile needs."""

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str | None = None,
        timeout: int | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.access_token = access_token
        self.base_url = (base_url or settings.SPOTIFY_API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.SPOTIFY_TIMEOUT
        self.session = session or requests.Session()

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except RequestException as exc:
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            logger.warning("Spotify request failed", extra={"path": path, "status_code": status_code})
            raise SpotifyAPIError(f"Spotify request to {path} failed", status_code=status_code) from exc
        return response.json() or {}

    def top_artists(self, limit: int = DEFAULT_LIMIT, time_range: str = DEFAULT_TIME_RANGE) -> List[Dict[str, Any]]:
        return self._get("me/top/artists", {"limit": limit, "time_range": time_range}).get("items") or []

    def top_tracks(self, limit: int = DEFAULT_LIMIT, time_range: str = DEFAULT_TIME_RANGE) -> List[Dict[str, Any]]:
        return self._get("me/top/tracks", {"limit": limit, "time_range": time_range}).get("items") or []

    def saved_tracks(self, limit: int = DEFAULT_LIMIT) -> List[Dict[str, Any]]:
        items = self._get("me/tracks", {"limit": limit}).get("items") or []
        return [item["track"] for item in items if item.get("track")]

    def artists(self, ids: Iterable[str]) -> List[Dict[str, Any]]:
        ids = list(ids)
        resolved: List[Dict[str, Any]] = []
        for start in range(0, len(ids), ARTISTS_BATCH_SIZE):
            batch = ids[start : start + ARTISTS_BATCH_SIZE]
            payload = self._get("artists", {"ids": ",".join(batch)})
            resolved.extend(artist for artist in payload.get("artists") or [] if artist)
        return resolved


def exchange_code(code: str, redirect_uri: str | None = None) -> Dict[str, Any]:
    """Trade an OAuth authorization code for access and refresh tokens."""
    try:
        response = requests.post(
            settings.SPOTIFY_ACCOUNTS_URL,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri or settings.SPOTIFY_REDIRECT_URI,
            },
            auth=(settings.SPOTIFY_CLIENT_ID, settings.SPOTIFY_CLIENT_SECRET),
            timeout=settings.SPOTIFY_TIMEOUT,
        )
        response.raise_for_status()
    except RequestException as exc:
        status_code = getattr(getattr(exc, "response", None), "status_code", None)
        raise SpotifyAPIError("Spotify token exchange failed", status_code=status_code) from exc
    return response.json()


def _track_artist_ids(tracks: Iterable[Dict[str, Any]]) -> List[str]:
    ids: List[str] = []
    for track in tracks:
        for artist in track.get("artists") or []:
            artist_id = artist.get("id")
            if artist_id and artist_id not in ids:
                ids.append(artist_id)
    return ids


def _resolve_track_artists(client: SpotifyClient, tracks: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    ids = _track_artist_ids(tracks)
    if not ids:
        return []
    return client.artists(ids)


def collect_spotify_taste(client: SpotifyClient) -> tuple[ExplicitProfile, str]:
    """
    Gather artists for the profile, falling back when "top" data is thin.

    Accounts with little activity return no top artists. Artists are then
    resolved from top tracks, and failing that from the saved library.
    Returns the profile and the name of the source that produced it.
    """
    artists = client.top_artists()
    tracks = client.top_tracks()
    source = "top_artists"

    if not artists and tracks:
        artists = _resolve_track_artists(client, tracks)
        source = "top_tracks"

    if not artists:
        saved = client.saved_tracks()
        artists = _resolve_track_artists(client, saved)
        tracks = tracks or saved
        source = "saved_tracks"

    profile = build_explicit_profile(artists, tracks)
    logger.info(
        "Collected Spotify taste",
        extra={"source": source, "artists": len(profile.top_artists), "genres": len(profile.genre_vector)},
    )
    return profile, source


def link_spotify_profile(user: User, client: SpotifyClient) -> MusicProfile:
    """
    Overwrite the user's explicit profile and mark it linked.

    An empty profile is never stored as linked: any existing row is flagged
    unlinked and InvalidProfileState is raised for the caller to surface.
    """
    profile, source = collect_spotify_taste(client)
    if not profile.is_valid:
        MusicProfile.objects.filter(user=user).update(is_spotify_linked=False)
        logger.warning("Spotify profile empty, not linking", extra={"user_id": user.id, "source": source})
        raise InvalidProfileState(
            "Not enough Spotify listening activity to build a taste profile.",
            source=source,
        )

    with transaction.atomic():
        music_profile, _ = MusicProfile.objects.update_or_create(
            user=user,
            defaults={
                "top_artists": profile.top_artists,
                "top_genres": profile.top_genres,
                "genre_vector": profile.genre_vector,
                "is_spotify_linked": True,
                "last_updated": timezone.now(),
            },
        )
    logger.info("Spotify profile linked", extra={"user_id": user.id, "source": source})
    return music_profile


def unlink_spotify_profile(user: User) -> bool:
    updated = MusicProfile.objects.filter(user=user, is_spotify_linked=True).update(
        is_spotify_linked=False,
        last_updated=timezone.now(),
    )
    return bool(updated)


def is_spotify_linked(user: User) -> bool:
    return MusicProfile.objects.filter(user=user, is_spotify_linked=True).exists()
