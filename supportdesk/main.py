from __future__ import annotations

from collections.abc import Awaitable, Callable
import logging
from pathlib import Path
import platform
import time

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from prometheus_client import (
    generate_latest,
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    CollectorRegistry,
)
from starlette.exceptions import HTTPException as StarletteHTTPException

from supportdesk.clients.jira import JiraApiError, JiraCredentialsError
from supportdesk.core.config import settings
from supportdesk.core.metrics import UPSTREAM_REGISTRY
from supportdesk.core.telemetry import configure_logging, setup_telemetry
from supportdesk.routes.auth import router as auth_router
from supportdesk.routes.debug import router as debug_router
from supportdesk.routes.health import router as health_router
from supportdesk.routes.issues import router as issues_router
from supportdesk.routes.projects import router as projects_router
from supportdesk.routes.tickets import router as tickets_router
from supportdesk.routes.ui import UI_DIR, router as ui_router
from supportdesk.routes.users import router as users_router
from supportdesk.services.issues import IssueValidationError

logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = first.get("msg", "invalid value")
    return f"{loc}: {msg}" if loc else msg


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(JiraApiError)
    async def jira_error(request: Request, exc: JiraApiError) -> JSONResponse:
        # upstream status is relayed as-is (404 stays 404, 5xx stays 5xx)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, "status": exc.status_code},
        )

    @app.exception_handler(IssueValidationError)
    async def issue_validation_error(
        request: Request, exc: IssueValidationError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @app.exception_handler(JiraCredentialsError)
    async def credentials_error(
        request: Request, exc: JiraCredentialsError
    ) -> JSONResponse:
        logger.error("[App] %s", exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(StarletteHTTPException)
    async def http_error(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 404 and exc.detail == "Not Found":
            return JSONResponse(
                status_code=404,
                content={
                    "error": "Endpoint not found",
                    "path": request.url.path,
                    "method": request.method,
                },
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("[App] unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(title="Support Desk", version=APP_VERSION)

    @app.get("/version", include_in_schema=False)
    async def version() -> dict:
        try:
            version_str = (Path(__file__).resolve().parents[1] / "VERSION").read_text().strip()
        except OSError:
            version_str = app.version
        return {
            "service": "supportdesk",
            "version": version_str,
            "python_version": platform.python_version(),
        }

    registry = CollectorRegistry()

    REQUEST_COUNT = Counter(
        "http_requests_total",
        "Total HTTP requests",
        ["method", "path", "status"],
        registry=registry,
    )
    REQUEST_LATENCY = Histogram(
        "http_request_duration_seconds",
        "HTTP request latency in seconds",
        ["method", "path"],
        registry=registry,
    )

    @app.middleware("http")
    async def metrics_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        # label by route template so /api/tickets/SUP-1 and SUP-2 share a series
        route = request.scope.get("route")
        path = getattr(route, "path", None) or request.url.path
        REQUEST_COUNT.labels(request.method, path, str(response.status_code)).inc()
        REQUEST_LATENCY.labels(request.method, path).observe(elapsed)
        return response

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        data = generate_latest(registry) + generate_latest(UPSTREAM_REGISTRY)
        return Response(content=data, media_type=CONTENT_TYPE_LATEST)

    _install_error_handlers(app)

    # Identity (sign-in via external provider, signed cookie)
    app.include_router(auth_router)

    # Jira proxy (/api)
    app.include_router(health_router)
    app.include_router(users_router)
    app.include_router(tickets_router)
    app.include_router(issues_router)
    app.include_router(projects_router)

    if settings.enable_ui:
        @app.get("/", include_in_schema=False)
        async def root() -> RedirectResponse:
            return RedirectResponse("/ui")

        app.mount("/ui/assets", StaticFiles(directory=UI_DIR), name="ui-assets")
        app.include_router(ui_router)

    # Debug endpoints: dev only
    if settings.enable_debug_routes:
        app.include_router(debug_router)

    # OpenTelemetry (optional)
    setup_telemetry(app, service_name="supportdesk")

    return app


app = create_app()
