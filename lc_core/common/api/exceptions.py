# lc_core/common/api/exceptions.py

from __future__ import annotations

import logging
import re
import uuid
from typing import Any

from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, NotAuthenticated, PermissionDenied, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "HTTP_X_REQUEST_ID"
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{8,64}$")

# First match wins; APIException subclasses fall back to their own default_code.
_ERROR_CODES: tuple[tuple[type, str], ...] = (
    (ValidationError, "validation_error"),
    (NotAuthenticated, "not_authenticated"),
    (PermissionDenied, "permission_denied"),
    (Http404, "not_found"),
)


def ensure_request_id(request) -> str:
    """
    Request id for the envelope. An upstream X-Request-Id (proxy, cron wrapper)
    is reused when it looks sane; otherwise one is minted and pinned on the request.
    """
    if request is None:
        return uuid.uuid4().hex

    rid = getattr(request, "request_id", None)
    if rid:
        return rid

    meta = getattr(request, "META", None) or {}
    incoming = str(meta.get(REQUEST_ID_HEADER, "")).strip()
    rid = incoming if _REQUEST_ID_RE.match(incoming) else uuid.uuid4().hex
    setattr(request, "request_id", rid)
    return rid


def build_error_envelope(*, request=None, code: str, message: str, details: Any = None) -> dict[str, Any]:
    """
    {"error": {code, message, details, request_id}}. Shared by the scope
    middleware (JsonResponse) and the DRF handler below.
    """
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": ensure_request_id(request),
        }
    }


class ServiceUnavailableError(APIException):
    """
    503 for reads that must not degrade into a partial answer,
    such as the broadcast audience universe.
    """
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Service temporarily unavailable."
    default_code = "service_unavailable"

    def __init__(self, detail=None, code=None):
        super().__init__(detail=detail or self.default_detail, code=code or self.default_code)


def _error_code(exc: Exception, http_status: int) -> str:
    for exc_type, code in _ERROR_CODES:
        if isinstance(exc, exc_type):
            return code
    if isinstance(exc, APIException):
        return getattr(exc, "default_code", None) or "api_error"
    return "server_error" if http_status >= 500 else "error"


def _first_message(value: Any) -> str:
    # DRF wraps messages in lists and dicts; the envelope wants one readable line.
    while isinstance(value, (list, tuple, dict)) and value:
        value = next(iter(value.values())) if isinstance(value, dict) else value[0]
    return "" if isinstance(value, (list, tuple, dict)) else str(value)


def _from_django_validation(exc: DjangoValidationError) -> ValidationError:
    if hasattr(exc, "error_dict"):
        return ValidationError(exc.message_dict)
    return ValidationError({"detail": exc.messages[0] if exc.messages else str(exc)})


def api_exception_handler(exc: Exception, context: dict[str, Any]):
    request = context.get("request")

    # Services raise Django's ValidationError; it is a client error here too.
    if isinstance(exc, DjangoValidationError):
        exc = _from_django_validation(exc)

    response = drf_exception_handler(exc, context)

    if response is None:
        view = context.get("view")
        logger.exception(
            "unhandled API error in %s (request_id=%s)",
            view.__class__.__name__ if view is not None else "unknown view",
            ensure_request_id(request),
            exc_info=exc,
        )
        return Response(
            build_error_envelope(request=request, code="server_error", message="Unexpected server error."),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    data = response.data
    if isinstance(data, dict) and "detail" in data:
        message = _first_message(data["detail"])
        details = {k: v for k, v in data.items() if k != "detail"} or None
    else:
        message = _first_message(data) or "Request failed."
        details = data

    return Response(
        build_error_envelope(
            request=request,
            code=_error_code(exc, response.status_code),
            message=message,
            details=details,
        ),
        status=response.status_code,
        headers=response.headers,
    )
