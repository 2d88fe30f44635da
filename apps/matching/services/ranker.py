from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from django.conf import settings
from django.db import DatabaseError
from django.db.models import Q
from django.db.models.functions import Lower, Trim

from apps.connections.services import excluded_user_ids
from apps.music.exceptions import DataUnavailable
from apps.music.models import ListeningEvent, MusicProfile
from apps.music.services.preferences import EMPTY_SIGNATURE, TasteSignature, load_implicit_signatures
from apps.users.models import User

from .similarity import explicit_score, implicit_score, shared_interests

logger = logging.getLogger(__name__)

VIEW_ALL = "all"
VIEW_SPOTIFY = "spotify"
VIEWS = (VIEW_ALL, VIEW_SPOTIFY)


@dataclass(frozen=True)
class CandidateSignals:
    """Everything needed to score one user, fetched up front."""

    user_id: int
    signature: TasteSignature = EMPTY_SIGNATURE
    profile: Optional[Dict[str, Any]] = None


@dataclass
class MatchCandidate:
    user_id: int
    vibe_score: float
    spotify_score: float
    shared_genres: List[str] = field(default_factory=list)
    shared_artists: List[str] = field(default_factory=list)

    @property
    def best_score(self) -> float:
        return max(self.vibe_score, self.spotify_score)

    @property
    def combined_score(self) -> int:
        return round(self.best_score * 100)

    @property
    def vibe_percent(self) -> int:
        return round(self.vibe_score * 100)

    @property
    def spotify_percent(self) -> int:
        return round(self.spotify_score * 100)


def score_candidate(current: CandidateSignals, candidate: CandidateSignals) -> MatchCandidate:
    genres, artists = shared_interests(current.signature, candidate.signature, current.profile, candidate.profile)
    return MatchCandidate(
        user_id=candidate.user_id,
        vibe_score=implicit_score(current.signature, candidate.signature),
        spotify_score=explicit_score(current.profile, candidate.profile),
        shared_genres=genres,
        shared_artists=artists,
    )


def rank_matches(
    current: CandidateSignals,
    candidates: Iterable[CandidateSignals],
    *,
    view: str = VIEW_ALL,
    max_workers: Optional[int] = None,
) -> List[MatchCandidate]:
    """
    Score every candidate against ``current`` and order the survivors.

    A candidate is kept when either score clears the inclusion threshold.
    The "all" view orders by the better of the two scores, the "spotify" view
    keeps explicit scores of at least the filter threshold and orders by
    that score. Ties fall back to ascending user id.
    """
    if view not in VIEWS:
        raise ValueError(f"Unknown match view: {view!r}")

    pool = [candidate for candidate in candidates if candidate.user_id != current.user_id]
    workers = max(1, max_workers or settings.MATCHING_MAX_WORKERS)
    if workers == 1 or len(pool) < 2:
        scored = [score_candidate(current, candidate) for candidate in pool]
    else:
        with ThreadPoolExecutor(max_workers=min(workers, len(pool))) as executor:
            scored = list(executor.map(lambda candidate: score_candidate(current, candidate), pool))

    threshold = settings.MATCHING_INCLUSION_THRESHOLD
    kept = [match for match in scored if match.vibe_score > threshold or match.spotify_score > threshold]

    if view == VIEW_SPOTIFY:
        spotify_floor = settings.MATCHING_SPOTIFY_FILTER_THRESHOLD
        kept = [match for match in kept if match.spotify_score >= spotify_floor]
        kept.sort(key=lambda match: (-match.spotify_score, match.user_id))
    else:
        kept.sort(key=lambda match: (-match.best_score, match.user_id))
    return kept


def _profile_snapshot(profile: MusicProfile) -> Dict[str, Any]:
    return {
        "is_spotify_linked": profile.is_spotify_linked,
        "genre_vector": profile.genre_vector or {},
        "top_artists": profile.top_artists or [],
    }


def _fetch_linked_profiles(user_ids: List[int]) -> List[MusicProfile]:
    try:
        return list(MusicProfile.objects.filter(user_id__in=user_ids, is_spotify_linked=True))
    except DatabaseError as exc:
        raise DataUnavailable("Music profiles could not be loaded.") from exc


def load_linked_profiles(user_ids: Iterable[int]) -> Dict[int, Dict[str, Any]]:
    """Linked profiles by user id; a failed fetch leaves explicit scores at 0."""
    ids = list(user_ids)
    try:
        rows = _fetch_linked_profiles(ids)
    except DataUnavailable:
        logger.warning("Music profiles unavailable, degrading to implicit scores", extra={"user_ids": ids})
        return {}
    return {row.user_id: _profile_snapshot(row) for row in rows}


def load_signals(user_ids: Iterable[int]) -> Dict[int, CandidateSignals]:
    ids = list(dict.fromkeys(user_ids))
    signatures = load_implicit_signatures(ids)
    profiles = load_linked_profiles(ids)
    return {
        user_id: CandidateSignals(
            user_id=user_id,
            signature=signatures.get(user_id, EMPTY_SIGNATURE),
            profile=profiles.get(user_id),
        )
        for user_id in ids
    }


def build_candidate_pool(
    current: CandidateSignals,
    *,
    view: str = VIEW_ALL,
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[int]:
    """
    Ids of users worth scoring against ``current``, one page at a time.

    Only users sharing at least one listened genre or artist, or holding a
    linked Spotify profile while ``current`` holds one too, are considered.
    Genres and artists are compared trimmed and lower-cased, the same way
    signatures are built. Users with any connection row to ``current`` are
    excluded.
    """
    limit = limit or settings.MATCHING_CANDIDATE_LIMIT
    overlap = Q(pk__in=[])

    if view == VIEW_ALL and not current.signature.is_empty:
        listeners = (
            ListeningEvent.objects.annotate(
                genre_key=Trim(Lower("song__genre")),
                artist_key=Trim(Lower("song__artist")),
            )
            .filter(Q(genre_key__in=list(current.signature.genres)) | Q(artist_key__in=list(current.signature.artists)))
            .values("user_id")
        )
        overlap |= Q(id__in=listeners)

    if current.profile is not None:
        linked = MusicProfile.objects.filter(is_spotify_linked=True).values("user_id")
        overlap |= Q(id__in=linked)

    excluded = excluded_user_ids(current.user_id)
    excluded.add(current.user_id)
    queryset = User.objects.filter(overlap, is_active=True).exclude(id__in=excluded).order_by("id")
    return list(queryset.values_list("id", flat=True)[offset : offset + limit])


def find_match_page(
    user: User,
    *,
    view: str = VIEW_ALL,
    limit: Optional[int] = None,
    offset: int = 0,
) -> Tuple[List[MatchCandidate], Optional[int]]:
    """
    Rank one page of the candidate pool.

    The pool is paged by user id before scoring, so ordering holds within a
    page only: a later page can hold better matches than an earlier one.
    Returns the ranked matches and the offset of the next page, or None when
    the pool is exhausted.
    """
    if view not in VIEWS:
        raise ValueError(f"Unknown match view: {view!r}")
    limit = limit or settings.MATCHING_CANDIDATE_LIMIT
    current = load_signals([user.id])[user.id]
    pool_ids = build_candidate_pool(current, view=view, limit=limit, offset=offset)
    signals = load_signals(pool_ids)
    matches = rank_matches(current, signals.values(), view=view)
    next_offset = offset + len(pool_ids) if len(pool_ids) == limit else None
    logger.info(
        "Ranked matches",
        extra={"user_id": user.id, "view": view, "pool": len(pool_ids), "kept": len(matches), "offset": offset},
    )
    return matches, next_offset


def find_matches(
    user: User,
    *,
    view: str = VIEW_ALL,
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[MatchCandidate]:
    """Ranked matches for one page of the pool; see ``find_match_page``."""
    matches, _ = find_match_page(user, view=view, limit=limit, offset=offset)
    return matches


def match_with(user: User, other: User) -> MatchCandidate:
    """Score one pair regardless of thresholds or connection state."""
    signals = load_signals([user.id, other.id])
    return score_candidate(signals[user.id], signals[other.id])
