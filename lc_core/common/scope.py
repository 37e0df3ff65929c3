# lc_core/common/scope.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from rest_framework.exceptions import ValidationError


@dataclass(frozen=True)
class Scope:
    """
    Opaque tenant-scope token. Every selector/service that touches tenant rows takes one.
    """
    tenant_id: UUID


# Preferred header name (what we standardize on)
HDR_TENANT = "X-Tenant-Id"

# Legacy variant (kept for compatibility)
HDR_TENANT_LEGACY = "X-Tenant-ID"

TENANT_META_KEYS = ("HTTP_X_TENANT_ID",)

MISSING_SCOPE_MSG = "Missing scope header. Provide X-Tenant-Id."
INVALID_SCOPE_MSG = "Invalid scope header. Provide a valid UUID for X-Tenant-Id."


def parse_uuid(value) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def _get_header(request, name: str) -> Optional[str]:
    """
    request.headers is case-insensitive; fallback to META for RequestFactory requests.
    """
    headers = getattr(request, "headers", None)
    if headers is not None:
        v = headers.get(name)
        if v:
            return v

    meta_key = "HTTP_" + name.upper().replace("-", "_")
    return request.META.get(meta_key)


def resolve_scope(request) -> Optional[Scope]:
    """
    Returns Scope when the tenant is known (middleware-attached or header).
    Returns None if no scope information is present at all.
    Raises ValidationError if the header is present but not a UUID.
    """
    attached = getattr(request, "scope", None)
    if isinstance(attached, Scope):
        return attached

    t = getattr(request, "tenant_id", None)
    if t:
        tu = parse_uuid(t)
        if tu:
            return Scope(tenant_id=tu)

    tenant_raw = _get_header(request, HDR_TENANT) or _get_header(request, HDR_TENANT_LEGACY)
    if not tenant_raw:
        return None

    tenant_id = parse_uuid(tenant_raw)
    if tenant_id is None:
        raise ValidationError({"detail": INVALID_SCOPE_MSG})
    return Scope(tenant_id=tenant_id)


def require_scope(request) -> Scope:
    """
    DRF-friendly variant: 400 (through the error envelope) when scope is missing.
    Attaches the resolved scope to the request for downstream consistency.
    """
    scope = resolve_scope(request)
    if scope is None:
        raise ValidationError({"detail": MISSING_SCOPE_MSG})

    request.scope = scope
    request.tenant_id = scope.tenant_id
    return scope
