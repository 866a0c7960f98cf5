"""Helpers shared by DRF views: error translation and cart owner resolution."""

from rest_framework import status
from rest_framework.response import Response

from .errors import (
    CommerceError,
    EmptyCart,
    InsufficientStock,
    InvalidQuantity,
    InvalidTransition,
    NotFound,
    Unauthorized,
    ValidationError,
)

ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    InsufficientStock: status.HTTP_409_CONFLICT,
    InvalidQuantity: status.HTTP_400_BAD_REQUEST,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    EmptyCart: status.HTTP_400_BAD_REQUEST,
    InvalidTransition: status.HTTP_409_CONFLICT,
    Unauthorized: status.HTTP_403_FORBIDDEN,
}

SESSION_HEADER = "X-Session-Id"
MISSING_SESSION = {"detail": "Missing X-Session-Id."}


def error_status(exc: CommerceError) -> int:
    if getattr(exc, "status_code", None):
        return int(exc.status_code)
    for klass in type(exc).__mro__:
        if klass in ERROR_STATUS:
            return ERROR_STATUS[klass]
    return status.HTTP_400_BAD_REQUEST


def error_payload(exc: CommerceError) -> tuple[dict, int]:
    return exc.as_dict(), error_status(exc)


def error_response(exc: CommerceError) -> Response:
    body, code = error_payload(exc)
    return Response(body, status=code)


def session_token(request) -> str | None:
    token = request.headers.get(SESSION_HEADER)
    if token:
        token = token.strip()
    return token or None
