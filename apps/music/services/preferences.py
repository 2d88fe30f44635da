from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from django.db import DatabaseError

from apps.music.exceptions import DataUnavailable
from apps.music.models import ListeningEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TasteSignature:
    genres: FrozenSet[str] = frozenset()
    artists: FrozenSet[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.genres and not self.artists


EMPTY_SIGNATURE = TasteSignature()


@dataclass
class ExplicitProfile:
    top_artists: List[Dict[str, Any]] = field(default_factory=list)
    top_genres: List[Dict[str, Any]] = field(default_factory=list)
    genre_vector: Dict[str, float] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return bool(self.top_artists) or bool(self.genre_vector)

    @property
    def artist_names(self) -> FrozenSet[str]:
        return artist_name_set(self.top_artists)


def _normalize(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def artist_name_set(artists: Iterable[Mapping[str, Any]] | None) -> FrozenSet[str]:
    return frozenset(name for name in (_normalize(a.get("name")) for a in artists or []) if name)


def _event_fields(event: Any) -> Tuple[Any, Any]:
    if isinstance(event, Mapping):
        song = event.get("song") or event.get("songs")
        if isinstance(song, Mapping):
            return song.get("genre"), song.get("artist")
        return event.get("genre"), event.get("artist")
    song = getattr(event, "song", None)
    if song is not None:
        return getattr(song, "genre", None), getattr(song, "artist", None)
    return getattr(event, "genre", None), getattr(event, "artist", None)


def extract_implicit(events: Iterable[Any] | None) -> TasteSignature:
    """
    Fold listening events into lower-cased genre and artist sets.

    Events may be ListeningEvent rows (genre/artist read through the song),
    mappings with ``genre``/``artist`` keys, or mappings nesting them under
    ``song``. Blank values are skipped; no input yields an empty signature.
    """
    genres: set[str] = set()
    artists: set[str] = set()
    for event in events or []:
        genre, artist = _event_fields(event)
        genre, artist = _normalize(genre), _normalize(artist)
        if genre:
            genres.add(genre)
        if artist:
            artists.add(artist)
    return TasteSignature(genres=frozenset(genres), artists=frozenset(artists))


def _artist_image(artist: Mapping[str, Any]) -> str:
    images = artist.get("images") or []
    if images and isinstance(images[0], Mapping):
        return images[0].get("url") or ""
    return artist.get("image") or ""


def build_explicit_profile(
    top_artists: Iterable[Mapping[str, Any]] | None,
    top_tracks: Iterable[Mapping[str, Any]] | None = None,
) -> ExplicitProfile:
    """
    Build the persisted taste profile from Spotify artist objects.

    Each distinct artist adds one count per genre tag it carries. The genre
    vector is count / total over all genres and is empty when no artist has
    tags. ``top_genres`` is ordered by descending count, ties in first-seen
    order. Track artists are stubs without genres; ``collect_spotify_taste``
    resolves them into full artists before calling this.
    """
    artists: Dict[str, Dict[str, Any]] = {}
    genre_counts: Dict[str, int] = {}

    for artist in top_artists or []:
        key = artist.get("id") or artist.get("name")
        if not key or key in artists:
            continue
        tags = [tag for tag in (_normalize(g) for g in artist.get("genres") or []) if tag]
        artists[key] = {
            "name": artist.get("name") or "",
            "id": artist.get("id") or "",
            "genres": tags,
            "image": _artist_image(artist),
        }
        for tag in tags:
            genre_counts[tag] = genre_counts.get(tag, 0) + 1

    total = sum(genre_counts.values())
    genre_vector: Dict[str, float] = {}
    if total > 0:
        genre_vector = {genre: count / total for genre, count in genre_counts.items()}

    top_genres = [
        {"name": name, "count": count}
        for name, count in sorted(genre_counts.items(), key=lambda item: item[1], reverse=True)
    ]
    logger.debug(
        "Built explicit profile",
        extra={"artists": len(artists), "genres": len(genre_counts), "tracks": len(list(top_tracks or []))},
    )
    return ExplicitProfile(top_artists=list(artists.values()), top_genres=top_genres, genre_vector=genre_vector)


def _fetch_history_rows(user_ids: List[int]) -> List[Tuple[int, Optional[str], Optional[str]]]:
    try:
        return list(
            ListeningEvent.objects.filter(user_id__in=user_ids, song__isnull=False).values_list(
                "user_id", "song__genre", "song__artist"
            )
        )
    except DatabaseError as exc:
        raise DataUnavailable("Listening history could not be loaded.") from exc


def load_implicit_signatures(user_ids: Iterable[int]) -> Dict[int, TasteSignature]:
    """Return a signature per user id; users without history map to an empty one."""
    ids = list(dict.fromkeys(user_ids))
    if not ids:
        return {}
    try:
        rows = _fetch_history_rows(ids)
    except DataUnavailable:
        logger.warning("Listening history unavailable, degrading to empty signatures", extra={"user_ids": ids})
        return {user_id: EMPTY_SIGNATURE for user_id in ids}

    grouped: Dict[int, List[Dict[str, Any]]] = {user_id: [] for user_id in ids}
    for user_id, genre, artist in rows:
        grouped[user_id].append({"genre": genre, "artist": artist})
    return {user_id: extract_implicit(events) for user_id, events in grouped.items()}


def load_implicit_signature(user_id: int) -> TasteSignature:
    return load_implicit_signatures([user_id]).get(user_id, EMPTY_SIGNATURE)
