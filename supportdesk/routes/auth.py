from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel

from supportdesk.auth.identity import (
    clear_identity_cookie,
    get_identity,
    identity_provider_configured,
    set_identity_cookie,
    verify_access_token,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class SessionRequest(BaseModel):  # type: ignore[misc]
    access_token: str


class AuthState(BaseModel):  # type: ignore[misc]
    logged_in: bool
    email: Optional[str] = None
    name: Optional[str] = None
    provider_configured: bool = False


@router.post("/session", response_model=AuthState)
async def create_session(payload: SessionRequest, response: Response) -> AuthState:
    identity = await verify_access_token(payload.access_token)
    set_identity_cookie(response, identity)
    logger.info("[Auth] signed in %s", identity["email"])
    return AuthState(
        logged_in=True,
        email=identity["email"],
        name=identity.get("name"),
        provider_configured=True,
    )


@router.get("/state", response_model=AuthState)
async def auth_state(request: Request) -> AuthState:
    identity = get_identity(request) or {}
    return AuthState(
        logged_in=bool(identity),
        email=identity.get("email"),
        name=identity.get("name"),
        provider_configured=identity_provider_configured(),
    )


@router.post("/logout")
async def logout(response: Response) -> Dict[str, Any]:
    clear_identity_cookie(response)
    return {"ok": True}
