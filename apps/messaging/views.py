from __future__ import annotations

from django.shortcuts import get_object_or_404
from django.utils.decorators import method_decorator
from django_ratelimit.decorators import ratelimit
from rest_framework import permissions, status
from rest_framework.exceptions import PermissionDenied
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.connections.exceptions import ConnectionUnauthorized
from apps.users.models import User

from .serializers import MessageSerializer
from .services import conversation, mark_conversation_read, send_message

MAX_HISTORY = 200


@method_decorator(ratelimit(key="user", rate="30/min", method="POST", block=True), name="post")
class ConversationView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request: Request, user_id: int) -> Response:
        other = get_object_or_404(User, id=user_id)
        try:
            messages = conversation(request.user, other)
        except ConnectionUnauthorized as exc:
            raise PermissionDenied(str(exc)) from exc
        recent = list(messages.order_by("-created_at", "-id")[:MAX_HISTORY])
        recent.reverse()
        return Response(MessageSerializer(recent, many=True).data)

    def post(self, request: Request, user_id: int) -> Response:
        other = get_object_or_404(User, id=user_id)
        serializer = MessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            message = send_message(request.user, other, serializer.validated_data["body"])
        except ConnectionUnauthorized as exc:
            raise PermissionDenied(str(exc)) from exc
        return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)


class ConversationReadView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request: Request, user_id: int) -> Response:
        other = get_object_or_404(User, id=user_id)
        try:
            updated = mark_conversation_read(request.user, other)
        except ConnectionUnauthorized as exc:
            raise PermissionDenied(str(exc)) from exc
        return Response({"updated": updated}, status=status.HTTP_200_OK)
