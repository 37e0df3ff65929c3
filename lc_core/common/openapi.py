# lc_core/common/openapi.py
from __future__ import annotations

from drf_spectacular.openapi import AutoSchema
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter


class ScopedAutoSchema(AutoSchema):
    """
    Adds the X-Tenant-Id header to every scoped endpoint.
    Schema/docs views are left alone.
    """

    SCOPE_HEADER = OpenApiParameter(
        name="X-Tenant-Id",
        type=OpenApiTypes.UUID,
        location=OpenApiParameter.HEADER,
        required=True,
        description="Tenant scope UUID (required for scoped endpoints).",
    )

    def _is_unscoped_endpoint(self) -> bool:
        view = getattr(self, "view", None)
        if view is None:
            return False
        return view.__class__.__name__ in {"SpectacularAPIView", "SpectacularSwaggerView"}

    def get_override_parameters(self):
        params = list(super().get_override_parameters() or [])

        if not self._is_unscoped_endpoint():
            if not any(p.name.lower() == "x-tenant-id" for p in params):
                params.append(self.SCOPE_HEADER)

        return params
