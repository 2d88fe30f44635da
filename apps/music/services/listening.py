from __future__ import annotations

import logging

from django.conf import settings

from apps.music.models import ListeningEvent, Song
from apps.users.models import User

logger = logging.getLogger(__name__)


def engagement_threshold() -> int:
    return int(getattr(settings, "LISTENING_ENGAGEMENT_SECONDS", 30))


def record_listening(
    user: User,
    song: Song,
    duration_listened: int,
    completed: bool = False,
) -> ListeningEvent | None:
    """
    Append a listening event once a play counts as engagement.

    A play counts when it ran for at least the engagement threshold or
    reached the end of the track. Shorter skips leave no history.
    """
    if duration_listened < engagement_threshold() and not completed:
        logger.debug(
            "Skipping short play",
            extra={"user_id": user.id, "song_id": song.id, "duration_listened": duration_listened},
        )
        return None
    return ListeningEvent.objects.create(
        user=user,
        song=song,
        duration_listened=duration_listened,
        completed=completed,
    )
