from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from supportdesk.auth.identity import identity_provider_configured
from supportdesk.core.config import settings

router = APIRouter(prefix="/ui", tags=["ui"])

UI_DIR = Path(__file__).resolve().parents[1] / "ui" / "app"
_HTML = (UI_DIR / "index.html").read_text(encoding="utf-8")


class UiConfig(BaseModel):  # type: ignore[misc]
    identity_provider_url: Optional[str] = None
    identity_provider_anon_key: Optional[str] = None
    identity_provider_configured: bool = False
    jira_browse_url: Optional[str] = None
    default_project_key: str
    show_debug_links: bool = False


@router.get("", response_class=HTMLResponse)
async def ui_page() -> HTMLResponse:
    # The page itself is public; it asks /auth/state and shows the login form.
    return HTMLResponse(_HTML)


@router.get("/config", response_model=UiConfig)
async def ui_config() -> UiConfig:
    """Public, browser-safe settings. The anon key is meant to be public."""
    return UiConfig(
        identity_provider_url=settings.identity_provider_url,
        identity_provider_anon_key=settings.identity_provider_anon_key,
        identity_provider_configured=identity_provider_configured(),
        jira_browse_url=settings.jira_browse_url,
        default_project_key=settings.default_project_key,
        show_debug_links=settings.enable_debug_routes,
    )
