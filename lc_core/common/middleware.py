# lc_core/common/middleware.py
from __future__ import annotations

from typing import Optional

from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

from lc_core.common.api.exceptions import build_error_envelope
from lc_core.common.scope import (
    INVALID_SCOPE_MSG,
    MISSING_SCOPE_MSG,
    TENANT_META_KEYS,
    Scope,
    parse_uuid,
)


class TenantScopeMiddleware(MiddlewareMixin):
    """
    Enforces tenant scope for API requests.

    Behavior:
      - Enforced for /api/v1/*.
      - Docs/schema/admin endpoints: public.
      - Unauthenticated requests pass through (DRF answers 401 later).
      - Missing header -> 400, invalid UUID -> 400 (both in the error envelope).
      - On success -> attaches request.scope and request.tenant_id
    """

    ENFORCED_PREFIXES = ("/api/v1/",)

    PUBLIC_PATH_PREFIXES = (
        "/admin/",
        "/api/docs/",
        "/api/schema/",
    )

    ALLOW_NO_SCOPE_EXACT_PATHS = ("/api/v1/",)

    def _starts_with_any(self, path: str, prefixes: tuple[str, ...]) -> bool:
        return any(path.startswith(p) for p in prefixes)

    def _get_meta_first(self, request, keys: tuple[str, ...]) -> Optional[str]:
        for k in keys:
            v = request.META.get(k)
            if v:
                return v
        return None

    def _json_error(self, request, *, status_code: int, code: str, message: str) -> JsonResponse:
        return JsonResponse(
            build_error_envelope(request=request, code=code, message=message, details=None),
            status=status_code,
        )

    def process_request(self, request):
        request.scope = None
        request.tenant_id = None

        path = getattr(request, "path", "") or ""

        if self._starts_with_any(path, self.PUBLIC_PATH_PREFIXES):
            return None
        if not self._starts_with_any(path, self.ENFORCED_PREFIXES):
            return None
        if path in self.ALLOW_NO_SCOPE_EXACT_PATHS:
            return None

        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return None

        tenant_raw = self._get_meta_first(request, TENANT_META_KEYS)
        if not tenant_raw:
            return self._json_error(
                request, status_code=400, code="validation_error", message=MISSING_SCOPE_MSG
            )

        tenant_id = parse_uuid(tenant_raw)
        if tenant_id is None:
            return self._json_error(
                request, status_code=400, code="validation_error", message=INVALID_SCOPE_MSG
            )

        request.scope = Scope(tenant_id=tenant_id)
        request.tenant_id = tenant_id
        return None
