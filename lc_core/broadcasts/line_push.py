# lc_core/broadcasts/line_push.py
"""LINE Messaging API push transport."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from django.conf import settings

from lc_core.common.scope import Scope
from lc_core.tenants.selectors import get_line_channel_token

logger = logging.getLogger(__name__)

DEFAULT_PUSH_URL = "https://api.line.me/v2/bot/message/push"


@dataclass(frozen=True)
class PushResult:
    ok: bool
    status_code: Optional[int] = None
    error: str = ""


def text_message(text: str) -> dict[str, Any]:
    return {"type": "text", "text": text}


def push_message(
    line_id: str,
    messages: list[dict[str, Any]],
    *,
    scope: Scope,
    channel_token: Optional[str] = None,
) -> PushResult:
    """
    Pushes message objects to one LINE user.

    Transport and HTTP errors come back as PushResult(ok=False); nothing raises.
    channel_token skips the tenant lookup (callers on worker threads pass it in).
    """
    token = channel_token if channel_token is not None else get_line_channel_token(tenant_id=scope.tenant_id)
    if not token:
        logger.error("LINE push skipped: no channel access token (tenant=%s)", scope.tenant_id)
        return PushResult(ok=False, error="missing channel access token")

    url = getattr(settings, "LINE_PUSH_API_URL", DEFAULT_PUSH_URL) or DEFAULT_PUSH_URL
    timeout = float(getattr(settings, "LINE_PUSH_TIMEOUT", 10.0))

    try:
        response = httpx.post(
            url,
            json={"to": line_id, "messages": messages},
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
        )
        response.raise_for_status()
        return PushResult(ok=True, status_code=response.status_code)
    except httpx.HTTPStatusError as e:
        logger.error("LINE push HTTP error (to=%s): %s", line_id, e)
        return PushResult(ok=False, status_code=e.response.status_code, error=str(e))
    except httpx.RequestError as e:
        logger.error("LINE push request error (to=%s): %s", line_id, e)
        return PushResult(ok=False, error=str(e))
