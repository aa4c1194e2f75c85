from __future__ import annotations

import logging
import os
import time
from datetime import datetime, timezone
from typing import Any, Dict

import psutil
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from supportdesk.clients.jira import JiraApiError, JiraClient, JiraCredentialsError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])

_STARTED_AT = time.monotonic()


def _memory() -> Dict[str, int]:
    info = psutil.Process(os.getpid()).memory_info()
    return {"rss": info.rss, "vms": info.vms}


async def _probe_jira() -> Dict[str, Any]:
    """Call ``/myself`` with the service account; never raises."""
    client = JiraClient.from_settings()
    try:
        await client.myself()
        return {"baseUrl": client.base_url, "connected": True}
    except JiraCredentialsError as e:
        return {"baseUrl": None, "connected": False, "error": str(e)}
    except JiraApiError as e:
        logger.warning("[Health] Jira probe failed: %s", e)
        return {"baseUrl": client.base_url, "connected": False, "error": e.message}
    finally:
        await client.aclose()


@router.get("/health")
async def health() -> JSONResponse:
    jira = await _probe_jira()
    body = {
        "status": "ok" if jira["connected"] else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "server": {
            "uptime": round(time.monotonic() - _STARTED_AT, 3),
            "memory": _memory(),
        },
        "jira": jira,
    }
    return JSONResponse(status_code=200 if jira["connected"] else 503, content=body)
