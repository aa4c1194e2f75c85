import os
from typing import Any, Callable, Dict, List, Optional

import pytest

# Settings are read once at import time: make sure required values exist
# before any supportdesk module is imported.
os.environ.setdefault("JIRA_EMAIL", "svc@example.com")
os.environ.setdefault("JIRA_API_TOKEN", "token-for-tests")
os.environ.setdefault("JIRA_DOMAIN", "acme.atlassian.net")
os.environ.setdefault("APP_SECRET_KEY", "secret-for-tests")
os.environ.pop("OTEL_EXPORTER_OTLP_ENDPOINT", None)

from fastapi.testclient import TestClient  # noqa: E402

from supportdesk.auth import identity  # noqa: E402
from supportdesk.clients.jira import get_jira_client  # noqa: E402
from supportdesk.main import create_app  # noqa: E402


class FakeJira:
    """In-memory stand-in for JiraClient used through dependency overrides.

    Every awaited method call is recorded in ``calls`` as
    ``(name, args, kwargs)``. ``responses[name]`` is returned as-is and
    ``errors[name]`` is raised instead. ``pages`` feeds ``search_jql`` one
    page per call.
    """

    base_url = "https://acme.atlassian.net/rest/api/3"

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.responses: Dict[str, Any] = {}
        self.errors: Dict[str, Exception] = {}
        self.pages: List[Dict[str, Any]] = []

    def names(self) -> List[str]:
        return [c[0] for c in self.calls]

    def last(self, name: str) -> tuple:
        for call in reversed(self.calls):
            if call[0] == name:
                return call
        raise AssertionError(f"{name} was not called")

    async def search_jql(self, jql: str, **kwargs: Any) -> Any:
        self.calls.append(("search_jql", (jql,), kwargs))
        # queued pages are served first, the error once they run out
        if "search_jql" in self.errors and not self.pages:
            raise self.errors["search_jql"]
        if self.pages:
            return self.pages.pop(0)
        return {"issues": [], "isLast": True}

    def __getattr__(self, name: str) -> Callable[..., Any]:
        if name.startswith("_"):
            raise AttributeError(name)

        async def call(*args: Any, **kwargs: Any) -> Any:
            self.calls.append((name, args, kwargs))
            if name in self.errors:
                raise self.errors[name]
            return self.responses.get(name)

        return call


@pytest.fixture
def fake_jira() -> FakeJira:
    return FakeJira()


@pytest.fixture
def app(fake_jira: FakeJira):
    application = create_app()
    application.dependency_overrides[get_jira_client] = lambda: fake_jira
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def sign_in(client: TestClient) -> Callable[..., None]:
    """Put a valid identity cookie on the test client."""

    def _sign_in(email: str = "agent@example.com", name: Optional[str] = "Agent") -> None:
        token = identity._serializer.dumps({"email": email, "name": name})
        client.cookies.set(identity.IDENTITY_COOKIE, token)

    return _sign_in


def issue(key: str, summary: str = "Printer offline", status: str = "Open") -> Dict[str, Any]:
    return {
        "id": key.split("-")[-1],
        "key": key,
        "fields": {"summary": summary, "status": {"name": status}},
    }
