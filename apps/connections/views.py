from __future__ import annotations

from django.db.models import Q
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import APIException, NotFound, PermissionDenied, ValidationError
from rest_framework.request import Request
from rest_framework.response import Response

from apps.connections import services
from apps.connections.exceptions import (
    ConnectionConflict,
    ConnectionNotFound,
    ConnectionStateError,
    ConnectionUnauthorized,
    InvalidTransition,
)
from apps.connections.models import Connection
from apps.connections.serializers import ConnectionCreateSerializer, ConnectionSerializer


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict."
    default_code = "conflict"


def _raise_api_error(exc: ConnectionStateError) -> None:
    if isinstance(exc, ConnectionConflict):
        raise Conflict(str(exc)) from exc
    if isinstance(exc, ConnectionUnauthorized):
        raise PermissionDenied(str(exc)) from exc
    if isinstance(exc, ConnectionNotFound):
        raise NotFound(str(exc)) from exc
    if isinstance(exc, InvalidTransition):
        raise ValidationError({"detail": str(exc)}) from exc
    raise exc


class ConnectionViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = ConnectionSerializer
    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = r"\d+"

    def get_queryset(self):  # type: ignore[override]
        user = self.request.user
        queryset = Connection.objects.filter(Q(user_a=user) | Q(user_b=user)).select_related("user_a", "user_b")
        status_param = self.request.query_params.get("status")
        if status_param:
            queryset = queryset.filter(status=status_param)
        return queryset

    def create(self, request: Request) -> Response:
        serializer = ConnectionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            connection = services.propose(
                request.user,
                serializer.validated_data["user_id"],
                serializer.validated_data.get("match_score"),
            )
        except ConnectionStateError as exc:
            _raise_api_error(exc)
        data = ConnectionSerializer(connection, context={"request": request}).data
        return Response(data, status=status.HTTP_201_CREATED)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        try:
            services.remove(int(pk), request.user)
        except ConnectionStateError as exc:
            _raise_api_error(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def accept(self, request: Request, pk: str | None = None) -> Response:
        try:
            connection = services.accept(int(pk), request.user)
        except ConnectionStateError as exc:
            _raise_api_error(exc)
        return Response(ConnectionSerializer(connection, context={"request": request}).data)

    @action(detail=True, methods=["post"])
    def reject(self, request: Request, pk: str | None = None) -> Response:
        try:
            services.reject(int(pk), request.user)
        except ConnectionStateError as exc:
            _raise_api_error(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"])
    def incoming(self, request: Request) -> Response:
        queryset = (
            Connection.objects.filter(user_b=request.user, status=Connection.Status.PENDING)
            .select_related("user_a", "user_b")
        )
        page = self.paginate_queryset(queryset)
        serializer = self.get_serializer(page if page is not None else queryset, many=True)
        if page is not None:
            return self.get_paginated_response(serializer.data)
        return Response(serializer.data)
