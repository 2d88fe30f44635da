from __future__ import annotations

import logging

from celery import shared_task

from apps.music.exceptions import InvalidProfileState
from apps.music.services.spotify import SpotifyClient, link_spotify_profile
from apps.users.models import User

logger = logging.getLogger(__name__)


@shared_task
def sync_spotify_profile(user_id: int, access_token: str) -> dict[str, object]:
    user = User.objects.get(id=user_id)
    try:
        profile = link_spotify_profile(user, SpotifyClient(access_token))
    except InvalidProfileState as exc:
        return {"user_id": user_id, "linked": False, "source": exc.source, "detail": str(exc)}
    return {
        "user_id": user_id,
        "linked": profile.is_spotify_linked,
        "artists": len(profile.top_artists),
        "genres": len(profile.genre_vector),
    }
