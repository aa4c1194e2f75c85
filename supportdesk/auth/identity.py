"""
Identity of the support agent using the dashboard.

Login is delegated to an external identity provider (Supabase-style auth
API). The browser signs in there, then hands its access token to
``POST /auth/session``; we verify it with the provider and keep only the
resulting identity (email + display name) in a signed, time-limited cookie.
Nothing is stored server-side.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, cast

import httpx
from fastapi import HTTPException, Request, Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from supportdesk.core.config import settings

logger = logging.getLogger(__name__)

IDENTITY_COOKIE = "sd_identity"

_serializer = URLSafeTimedSerializer(settings.app_secret_key, salt="identity")


def identity_provider_configured() -> bool:
    return bool(settings.identity_provider_url and settings.identity_provider_anon_key)


def get_identity(request: Request) -> Optional[Dict[str, Any]]:
    raw = request.cookies.get(IDENTITY_COOKIE)
    if not raw:
        return None
    try:
        data = _serializer.loads(raw, max_age=settings.identity_max_age_seconds)
    except SignatureExpired:
        logger.info("[Identity] cookie expired")
        return None
    except BadSignature:
        return None
    if not isinstance(data, dict) or not data.get("email"):
        return None
    return cast(Dict[str, Any], data)


def set_identity_cookie(response: Response, identity: Dict[str, Any]) -> None:
    response.set_cookie(
        key=IDENTITY_COOKIE,
        value=_serializer.dumps(identity),
        httponly=True,
        samesite=settings.cookie_samesite,
        secure=settings.cookie_secure,
        path="/",
        max_age=settings.identity_max_age_seconds,
    )


def clear_identity_cookie(response: Response) -> None:
    response.delete_cookie(IDENTITY_COOKIE, path="/")


def current_identity(request: Request) -> Optional[Dict[str, Any]]:
    """Dependency: the signed-in identity, or None."""
    return get_identity(request)


def require_identity(request: Request) -> Dict[str, Any]:
    identity = get_identity(request)
    if not identity:
        raise HTTPException(401, "Sign in first")
    return identity


def _identity_from_user(user: Dict[str, Any]) -> Dict[str, Any]:
    meta = user.get("user_metadata") or {}
    email = str(user.get("email") or "").strip()
    name = meta.get("full_name") or meta.get("name") or email.split("@", 1)[0]
    return {"email": email, "name": name, "id": user.get("id")}


async def verify_access_token(access_token: str, *, timeout: float = 10.0) -> Dict[str, Any]:
    """Ask the identity provider who owns ``access_token``.

    Raises HTTPException 401 for a rejected token, 502 when the provider
    cannot be reached or answers unexpectedly, 503 when not configured.
    """
    if not identity_provider_configured():
        raise HTTPException(503, "Identity provider not configured")

    url = f"{(settings.identity_provider_url or '').rstrip('/')}/auth/v1/user"
    headers = {
        "apikey": settings.identity_provider_anon_key or "",
        "Authorization": f"Bearer {access_token}",
        "Accept": "application/json",
    }
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            r = await client.get(url, headers=headers)
    except httpx.HTTPError as e:
        logger.warning("[Identity] provider unreachable: %s", e)
        raise HTTPException(502, "Identity provider unreachable")

    if r.status_code in (401, 403):
        raise HTTPException(401, "Invalid or expired session")
    if r.status_code >= 400:
        logger.warning("[Identity] HTTP %s: %s", r.status_code, (r.text or "")[:300])
        raise HTTPException(502, "Identity provider error")

    user = r.json()
    if not isinstance(user, dict) or not user.get("email"):
        raise HTTPException(502, "Unexpected identity provider response")
    return _identity_from_user(user)
