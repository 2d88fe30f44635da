from __future__ import annotations

import math
from dataclasses import dataclass
from typing import AbstractSet, Any, List, Mapping, Optional, Tuple

from django.conf import settings

from apps.music.services.preferences import TasteSignature, artist_name_set

SHARED_INTERESTS_LIMIT = 5


@dataclass(frozen=True)
class ScoreWeights:
    genre: float
    artist: float

    def __post_init__(self) -> None:
        for name, value in (("genre", self.genre), ("artist", self.artist)):
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} weight must be within [0, 1], got {value}")
        if not math.isclose(self.genre + self.artist, 1.0, abs_tol=1e-6):
            raise ValueError("genre and artist weights must sum to 1")

    @classmethod
    def from_pair(cls, pair: Tuple[float, float]) -> "ScoreWeights":
        genre, artist = pair
        return cls(genre=float(genre), artist=float(artist))


def implicit_weights() -> ScoreWeights:
    return ScoreWeights.from_pair(settings.MATCHING_IMPLICIT_WEIGHTS)


def explicit_weights() -> ScoreWeights:
    return ScoreWeights.from_pair(settings.MATCHING_EXPLICIT_WEIGHTS)


def jaccard(a: AbstractSet[Any] | None, b: AbstractSet[Any] | None) -> float:
    """|a & b| / |a | b|, or 0.0 when either side is empty."""
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def cosine(vec_a: Mapping[str, float] | None, vec_b: Mapping[str, float] | None) -> float:
    """Cosine similarity over the union of keys; missing keys count as 0."""
    if not vec_a or not vec_b:
        return 0.0
    keys = set(vec_a) | set(vec_b)
    dot = sum(vec_a.get(key, 0.0) * vec_b.get(key, 0.0) for key in keys)
    mag_a = math.sqrt(sum(value * value for value in vec_a.values()))
    mag_b = math.sqrt(sum(value * value for value in vec_b.values()))
    if mag_a == 0 or mag_b == 0:
        return 0.0
    return dot / (mag_a * mag_b)


def implicit_score(
    sig_a: TasteSignature,
    sig_b: TasteSignature,
    weights: Optional[ScoreWeights] = None,
) -> float:
    weights = weights or implicit_weights()
    return weights.genre * jaccard(sig_a.genres, sig_b.genres) + weights.artist * jaccard(
        sig_a.artists, sig_b.artists
    )


def _linked(profile: Any) -> bool:
    if profile is None:
        return False
    if isinstance(profile, Mapping):
        return bool(profile.get("is_spotify_linked"))
    return bool(getattr(profile, "is_spotify_linked", False))


def _profile_parts(profile: Any) -> Tuple[Mapping[str, float], List[Mapping[str, Any]]]:
    if isinstance(profile, Mapping):
        return profile.get("genre_vector") or {}, profile.get("top_artists") or []
    return getattr(profile, "genre_vector", None) or {}, getattr(profile, "top_artists", None) or []


def explicit_score(profile_a: Any, profile_b: Any, weights: Optional[ScoreWeights] = None) -> float:
    """
    Score two linked Spotify profiles.

    Profiles may be MusicProfile rows or mappings with the same keys. A
    missing or unlinked profile on either side scores 0.
    """
    if not _linked(profile_a) or not _linked(profile_b):
        return 0.0
    weights = weights or explicit_weights()
    vector_a, artists_a = _profile_parts(profile_a)
    vector_b, artists_b = _profile_parts(profile_b)
    return weights.genre * cosine(vector_a, vector_b) + weights.artist * jaccard(
        artist_name_set(artists_a), artist_name_set(artists_b)
    )


def shared_interests(
    sig_a: TasteSignature,
    sig_b: TasteSignature,
    profile_a: Any = None,
    profile_b: Any = None,
) -> Tuple[List[str], List[str]]:
    """
    Common genres and artists across both sources, capped.

    When both sides are linked, genres lead with the heaviest in the first
    profile's vector and artists keep its top-artist order. Everything else
    follows alphabetically.
    """
    genres = set(sig_a.genres & sig_b.genres)
    artists = set(sig_a.artists & sig_b.artists)
    genre_weight: Mapping[str, float] = {}
    artist_rank: dict[str, int] = {}
    if _linked(profile_a) and _linked(profile_b):
        vector_a, artists_a = _profile_parts(profile_a)
        vector_b, artists_b = _profile_parts(profile_b)
        genres |= set(vector_a) & set(vector_b)
        artists |= artist_name_set(artists_a) & artist_name_set(artists_b)
        genre_weight = vector_a
        for artist in artists_a:
            name = str(artist.get("name") or "").strip().lower()
            if name:
                artist_rank.setdefault(name, len(artist_rank))

    ordered_genres = sorted(genres, key=lambda genre: (-genre_weight.get(genre, 0.0), genre))
    ordered_artists = sorted(artists, key=lambda name: (artist_rank.get(name, len(artist_rank)), name))
    return ordered_genres[:SHARED_INTERESTS_LIMIT], ordered_artists[:SHARED_INTERESTS_LIMIT]
