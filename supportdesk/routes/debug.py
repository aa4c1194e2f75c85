"""
Debug endpoints (dev only).

Check which credentials the proxy picked up without ever returning them.
These routes make no external calls and answer 404 unless
``enable_debug_routes`` is set.
"""

from __future__ import annotations

import hashlib
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.routing import APIRoute

from supportdesk.auth.identity import get_identity, identity_provider_configured
from supportdesk.core.config import settings

router = APIRouter(prefix="/debug", tags=["debug"])


def _require_enabled() -> None:
    if not settings.enable_debug_routes:
        # 404 rather than 403, nothing to advertise
        raise HTTPException(status_code=404, detail="Not found")


def _fingerprint(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:12]


@router.get("/config")
async def debug_config(request: Request) -> Dict[str, Any]:
    _require_enabled()

    identity = get_identity(request)
    return {
        "env": settings.env,
        "jira_domain": settings.jira_domain,
        "jira_email_present": bool(settings.jira_email),
        "jira_email_fingerprint": _fingerprint(settings.jira_email),
        "jira_api_token_present": bool(settings.jira_api_token),
        "jira_api_token_fingerprint": _fingerprint(settings.jira_api_token),
        "identity_provider_configured": identity_provider_configured(),
        "identity_cookie_present": identity is not None,
        "default_project_key": settings.default_project_key,
        "retry": {
            "attempts": settings.jira_retry_attempts,
            "delay_seconds": settings.jira_retry_delay_seconds,
            "timeout_seconds": settings.jira_timeout_seconds,
        },
    }


@router.get("/routes")
async def debug_routes(request: Request) -> List[Dict[str, Any]]:
    _require_enabled()

    out: List[Dict[str, Any]] = []
    for route in request.app.routes:
        if isinstance(route, APIRoute):
            out.append({"path": route.path, "methods": sorted(route.methods or [])})
    return out
