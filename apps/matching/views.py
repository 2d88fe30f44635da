from __future__ import annotations

from dataclasses import asdict

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.connections.services import status_between
from apps.matching.serializers import MatchCandidateSerializer, MatchQuerySerializer
from apps.matching.services.ranker import MatchCandidate, find_match_page, match_with
from apps.users.models import User


def _payload(match: MatchCandidate, user: User) -> dict:
    return {
        "user": user,
        **asdict(match),
        "combined_score": match.combined_score,
        "vibe_percent": match.vibe_percent,
        "spotify_percent": match.spotify_percent,
    }


class MatchListView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "matching"

    def get(self, request):
        query = MatchQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        matches, next_offset = find_match_page(
            request.user,
            view=params["view"],
            limit=params.get("limit"),
            offset=params["offset"],
        )
        users = User.objects.in_bulk([match.user_id for match in matches])
        results = [_payload(match, users[match.user_id]) for match in matches if match.user_id in users]
        serializer = MatchCandidateSerializer(results, many=True)
        return Response(
            {
                "view": params["view"],
                "offset": params["offset"],
                "next_offset": next_offset,
                "results": serializer.data,
            },
            status=status.HTTP_200_OK,
        )


class MatchWithView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "matching"

    def get(self, request, user_id: int):
        current_user: User = request.user
        if current_user.id == user_id:
            return Response({"detail": "Cannot match with yourself."}, status=status.HTTP_400_BAD_REQUEST)

        try:
            target = User.objects.get(id=user_id, is_active=True)
        except User.DoesNotExist:
            return Response({"detail": "User not found."}, status=status.HTTP_404_NOT_FOUND)

        match = match_with(current_user, target)
        payload = MatchCandidateSerializer(_payload(match, target)).data
        payload["connection_status"] = status_between(current_user.id, target.id)
        return Response(payload, status=status.HTTP_200_OK)
