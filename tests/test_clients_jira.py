import asyncio
import base64
import json

import httpx
import pytest

from supportdesk.clients.jira import (
    JiraApiError,
    JiraClient,
    JiraCredentialsError,
    JiraTimeoutError,
    JiraUnavailableError,
    _extract_error_message,
    normalize_domain,
)


def make_client(handler, **kwargs):
    kwargs.setdefault("retry_attempts", 3)
    kwargs.setdefault("retry_delay", 0.0)
    return JiraClient(
        "svc@example.com",
        "tok",
        "acme.atlassian.net",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def run(jc, fn):
    async def go():
        try:
            return await fn(jc)
        finally:
            await jc.aclose()

    return asyncio.run(go())


def test_missing_credentials_fail_before_any_call():
    sent = []
    jc = JiraClient(
        None, "tok", "", transport=httpx.MockTransport(lambda r: sent.append(r))
    )

    with pytest.raises(JiraCredentialsError) as exc:
        run(jc, lambda c: c.get_priorities())

    assert sent == []
    assert "JIRA_EMAIL" in str(exc.value)
    assert "JIRA_DOMAIN" in str(exc.value)
    assert "JIRA_API_TOKEN" not in str(exc.value)


def test_normalize_domain_adds_scheme():
    assert normalize_domain("acme.atlassian.net/") == "https://acme.atlassian.net"
    assert normalize_domain("http://localhost:8080") == "http://localhost:8080"
    with pytest.raises(ValueError):
        normalize_domain("  ")


def test_basic_auth_header_and_base_url():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["accept"] = request.headers["Accept"]
        return httpx.Response(200, json={"accountId": "svc"})

    jc = make_client(handler)
    data = run(jc, lambda c: c.myself(expand="groups"))

    expected = base64.b64encode(b"svc@example.com:tok").decode("ascii")
    assert data == {"accountId": "svc"}
    assert seen["auth"] == f"Basic {expected}"
    assert seen["accept"] == "application/json"
    assert seen["url"] == "https://acme.atlassian.net/rest/api/3/myself?expand=groups"


def test_none_params_are_dropped():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=[])

    jc = make_client(handler)
    run(jc, lambda c: c.search_assignable_users("bob", project="SUP"))
    assert seen["params"] == {"query": "bob", "maxResults": "50", "project": "SUP"}


def test_http_error_is_not_retried_and_keeps_status():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(404, json={"errorMessages": ["Issue does not exist"], "errors": {}})

    jc = make_client(handler)
    with pytest.raises(JiraApiError) as exc:
        run(jc, lambda c: c.get_issue("SUP-404"))

    assert len(calls) == 1
    assert exc.value.status_code == 404
    assert exc.value.message == "Issue does not exist"
    assert exc.value.endpoint == "/issue/SUP-404"


def test_server_error_is_relayed_without_retry():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503, text="upstream maintenance")

    jc = make_client(handler)
    with pytest.raises(JiraApiError) as exc:
        run(jc, lambda c: c.get_priorities())
    assert len(calls) == 1
    assert exc.value.status_code == 503
    assert exc.value.message == "upstream maintenance"


def test_transport_errors_are_retried_then_succeed():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json=[{"id": "1", "name": "High"}])

    jc = make_client(handler)
    data = run(jc, lambda c: c.get_priorities())
    assert data == [{"id": "1", "name": "High"}]
    assert len(calls) == 3


def test_timeouts_exhaust_retries():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ReadTimeout("timed out", request=request)

    jc = make_client(handler, retry_attempts=2, timeout=5.0)
    with pytest.raises(JiraTimeoutError) as exc:
        run(jc, lambda c: c.get_fields())
    assert len(calls) == 3
    assert exc.value.status_code == 504


def test_transport_failure_exhausted_is_unavailable():
    def handler(request):
        raise httpx.ConnectError("dns failure", request=request)

    jc = make_client(handler, retry_attempts=0)
    with pytest.raises(JiraUnavailableError) as exc:
        run(jc, lambda c: c.get_fields())
    assert exc.value.status_code == 502
    assert "dns failure" in exc.value.message


def test_empty_body_returns_none():
    def handler(request):
        return httpx.Response(204)

    jc = make_client(handler)
    assert run(jc, lambda c: c.delete_issue("SUP-1", delete_subtasks=True)) is None


def test_search_jql_posts_token_and_fields():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"issues": [], "isLast": True})

    jc = make_client(handler)
    run(
        jc,
        lambda c: c.search_jql(
            "project = SUP",
            max_results=50,
            next_page_token="tok-2",
            fields=["summary", "status"],
            expand=["renderedFields", "changelog"],
        ),
    )
    assert seen["method"] == "POST"
    assert seen["path"] == "/rest/api/3/search/jql"
    assert seen["body"] == {
        "jql": "project = SUP",
        "maxResults": 50,
        "nextPageToken": "tok-2",
        "fields": ["summary", "status"],
        "expand": "renderedFields,changelog",
    }


def test_add_watcher_sends_bare_json_string():
    seen = {}

    def handler(request):
        seen["body"] = request.content
        return httpx.Response(204)

    jc = make_client(handler)
    run(jc, lambda c: c.add_watcher("SUP-1", "acc-1"))
    assert seen["body"] == b'"acc-1"'


def test_project_issue_types_come_from_project():
    def handler(request):
        assert request.url.params["expand"] == "issueTypes"
        return httpx.Response(200, json={"key": "SUP", "issueTypes": [{"id": "10001"}]})

    jc = make_client(handler)
    assert run(jc, lambda c: c.get_project_issue_types("SUP")) == [{"id": "10001"}]


def test_extract_error_message_variants():
    assert _extract_error_message({"errorMessages": ["a", "b"]}, "x")[0] == "a, b"
    assert _extract_error_message({"message": "nope"}, "x")[0] == "nope"
    msg, details = _extract_error_message({"errors": {"summary": "required"}}, "x")
    assert msg == "summary: required"
    assert details["errors"] == {"summary": "required"}
    assert _extract_error_message("", "HTTP 500")[0] == "HTTP 500"
