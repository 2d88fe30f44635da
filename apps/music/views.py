from __future__ import annotations

import logging

from django.conf import settings
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.music.exceptions import InvalidProfileState, SpotifyAPIError
from apps.music.models import MusicProfile
from apps.music.serializers import ListeningEventSerializer, MusicProfileSerializer, SpotifyLinkSerializer
from apps.music.services.listening import record_listening
from apps.music.services.spotify import (
    SpotifyClient,
    exchange_code,
    is_spotify_linked,
    link_spotify_profile,
    unlink_spotify_profile,
)

logger = logging.getLogger(__name__)


class ListeningEventView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request) -> Response:
        serializer = ListeningEventSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        event = record_listening(
            request.user,
            serializer.validated_data["song"],
            serializer.validated_data["duration_listened"],
            serializer.validated_data.get("completed", False),
        )
        if event is None:
            return Response({"recorded": False}, status=status.HTTP_200_OK)
        return Response(
            {"recorded": True, **ListeningEventSerializer(event).data},
            status=status.HTTP_201_CREATED,
        )


class MusicProfileView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request) -> Response:
        profile = MusicProfile.objects.filter(user=request.user).first()
        if profile is None:
            return Response({"detail": "No music profile yet."}, status=status.HTTP_404_NOT_FOUND)
        return Response(MusicProfileSerializer(profile).data)


class SpotifyStatusView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request) -> Response:
        return Response({"linked": is_spotify_linked(request.user)})


class SpotifyLinkView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "spotify"

    def post(self, request) -> Response:
        if not settings.FEATURE_FLAGS.get("spotify", True):
            return Response({"detail": "Spotify linking is disabled."}, status=status.HTTP_503_SERVICE_UNAVAILABLE)

        serializer = SpotifyLinkSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        access_token = serializer.validated_data.get("access_token")
        try:
            if not access_token:
                tokens = exchange_code(
                    serializer.validated_data["code"],
                    serializer.validated_data.get("redirect_uri"),
                )
                access_token = tokens.get("access_token")
            profile = link_spotify_profile(request.user, SpotifyClient(access_token))
        except InvalidProfileState as exc:
            return Response(
                {"linked": False, "source": exc.source, "detail": str(exc)},
                status=status.HTTP_422_UNPROCESSABLE_ENTITY,
            )
        except SpotifyAPIError:
            logger.exception("Spotify linking failed", extra={"user_id": request.user.id})
            return Response(
                {"linked": False, "detail": "Spotify is unavailable. Try again later."},
                status=status.HTTP_502_BAD_GATEWAY,
            )
        return Response(MusicProfileSerializer(profile).data, status=status.HTTP_200_OK)

    def delete(self, request) -> Response:
        unlink_spotify_profile(request.user)
        return Response({"linked": False}, status=status.HTTP_200_OK)
