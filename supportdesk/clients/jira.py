from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Union

import httpx

from supportdesk.core.config import settings
from supportdesk.core.metrics import JIRA_REQUESTS

logger = logging.getLogger(__name__)


class JiraApiError(RuntimeError):
    """Upstream call failed; carries the status code relayed to the browser."""

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        endpoint: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details or {}
        self.endpoint = endpoint

    def __str__(self) -> str:
        return f"[JiraApiError] {self.status_code} - {self.message} ({self.endpoint})"


class JiraTimeoutError(JiraApiError):
    def __init__(self, endpoint: str, timeout: float) -> None:
        super().__init__(
            504,
            f"Jira request exceeded the {timeout:g}s timeout",
            endpoint=endpoint,
        )
        self.timeout = timeout


class JiraUnavailableError(JiraApiError):
    def __init__(self, endpoint: str, reason: str) -> None:
        super().__init__(502, f"Jira unreachable: {reason}", endpoint=endpoint)


class JiraCredentialsError(RuntimeError):
    pass


def _extract_error_message(payload: Any, fallback: str) -> tuple[str, Dict[str, Any]]:
    """Best-effort message from a Jira error body.

    Jira answers with ``{"errorMessages": [...], "errors": {...}}`` for most
    failures; a few endpoints use ``{"message": ...}``. Anything else falls
    back to the raw text.
    """
    if isinstance(payload, dict):
        em = payload.get("errorMessages")
        errs = payload.get("errors")
        parts: List[str] = []
        if isinstance(em, list):
            parts.extend(str(x) for x in em if x)
        if not parts and payload.get("message"):
            parts.append(str(payload["message"]))
        if not parts and isinstance(errs, dict) and errs:
            parts.extend(f"{k}: {v}" for k, v in errs.items())
        msg = ", ".join(parts).strip() or fallback
        return msg, {"errorMessages": em or [], "errors": errs or {}}
    if isinstance(payload, str) and payload.strip():
        return payload.strip()[:500], {}
    return fallback, {}


def normalize_domain(domain: str) -> str:
    d = (domain or "").strip().rstrip("/")
    if not d:
        raise ValueError("Jira domain is required")
    if not d.startswith(("http://", "https://")):
        d = "https://" + d
    return d


def _csv(value: Union[str, Iterable[str], None]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    joined = ",".join(v for v in value if v)
    return joined or None


class JiraClient:
    """Async client for the Jira Cloud REST API v3 using a service account.

    Requests authenticate with httpx Basic auth from the service email and
    API token. Transport failures and timeouts are retried a fixed
    number of times with a fixed delay; HTTP error responses are never
    retried and surface as :class:`JiraApiError` with the upstream status.
    """

    def __init__(
        self,
        email: Optional[str],
        api_token: Optional[str],
        domain: Optional[str],
        *,
        timeout: float = 30.0,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._missing = [
            name
            for name, value in (
                ("JIRA_EMAIL", email),
                ("JIRA_API_TOKEN", api_token),
                ("JIRA_DOMAIN", domain),
            )
            if not value
        ]

        self.email = email
        self.api_token = api_token
        self.domain = normalize_domain(domain) if domain else ""
        self.timeout = timeout
        self.retry_attempts = max(0, retry_attempts)
        self.retry_delay = retry_delay
        self._client = httpx.AsyncClient(
            auth=None if self._missing else httpx.BasicAuth(email, api_token),
            headers={"Accept": "application/json", "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, **kwargs: Any) -> "JiraClient":
        return cls(
            settings.jira_email,
            settings.jira_api_token,
            settings.jira_domain,
            timeout=settings.jira_timeout_seconds,
            retry_attempts=settings.jira_retry_attempts,
            retry_delay=settings.jira_retry_delay_seconds,
            **kwargs,
        )

    def check_credentials(self) -> None:
        """Raise before any network call when the service account is incomplete."""
        if self._missing:
            raise JiraCredentialsError(
                "Jira credentials not configured: set " + ", ".join(self._missing)
            )

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def base_url(self) -> str:
        return f"{self.domain}/rest/api/3"

    async def _send(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]],
        json_body: Any,
    ) -> httpx.Response:
        attempts = self.retry_attempts + 1
        for attempt in range(1, attempts + 1):
            try:
                return await self._client.request(
                    method=method,
                    url=url,
                    params=params,
                    json=json_body,
                )
            except httpx.TimeoutException as e:
                if attempt >= attempts:
                    JIRA_REQUESTS.labels(method, "timeout").inc()
                    raise JiraTimeoutError(url, self.timeout) from e
                logger.warning(
                    "[Jira] timeout on %s %s, %d retries left",
                    method, url, attempts - attempt,
                )
            except httpx.TransportError as e:
                if attempt >= attempts:
                    JIRA_REQUESTS.labels(method, "unreachable").inc()
                    raise JiraUnavailableError(url, str(e) or type(e).__name__) from e
                logger.warning(
                    "[Jira] %s on %s %s, %d retries left",
                    type(e).__name__, method, url, attempts - attempt,
                )
            await asyncio.sleep(self.retry_delay)
        raise AssertionError("unreachable")  # pragma: no cover

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
    ) -> Any:
        """Perform a Jira call and normalize errors.

        Returns parsed JSON, raw text for non-JSON bodies, or None for empty
        responses (204). Raises JiraApiError for any HTTP status >= 400.
        """
        self.check_credentials()
        url = f"{self.base_url}{path}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        logger.debug("[Jira] %s %s", method, url)

        r = await self._send(method, url, params=params, json_body=json_body)

        if r.status_code >= 400:
            JIRA_REQUESTS.labels(method, "error").inc()
            try:
                payload: Any = r.json()
            except ValueError:
                payload = (r.text or "")[:800]
            msg, details = _extract_error_message(payload, f"HTTP {r.status_code}")
            snippet = msg[:300].replace("\n", " ")
            logger.warning("[Jira] HTTP %s on %s %s: %s", r.status_code, method, path, snippet)
            raise JiraApiError(r.status_code, msg, details=details, endpoint=path)

        JIRA_REQUESTS.labels(method, "ok").inc()
        if r.status_code == 204 or not r.content:
            return None
        try:
            return r.json()
        except ValueError:
            return r.text

    # ------------------------------------------------------------------
    # Myself / users
    # ------------------------------------------------------------------

    async def myself(self, *, expand: Optional[str] = None) -> Any:
        return await self._request("GET", "/myself", params={"expand": expand})

    async def search_users(
        self, query: str = "", *, start_at: int = 0, max_results: int = 50
    ) -> Any:
        return await self._request(
            "GET",
            "/user/search",
            params={"query": query, "startAt": start_at, "maxResults": max_results},
        )

    async def search_assignable_users(
        self,
        query: str = "",
        *,
        project: Optional[str] = None,
        issue_key: Optional[str] = None,
        max_results: int = 50,
    ) -> Any:
        return await self._request(
            "GET",
            "/user/assignable/search",
            params={
                "query": query,
                "maxResults": max_results,
                "project": project,
                "issueKey": issue_key,
            },
        )

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search_jql(
        self,
        jql: str,
        *,
        max_results: int = 100,
        next_page_token: Optional[str] = None,
        fields: Optional[List[str]] = None,
        expand: Optional[List[str]] = None,
    ) -> Any:
        """Fetch a single page from the token-paginated ``/search/jql``."""
        body: Dict[str, Any] = {"jql": jql, "maxResults": max_results}
        if next_page_token:
            body["nextPageToken"] = next_page_token
        if fields:
            body["fields"] = list(fields)
        if expand:
            # POST /search/jql takes expand as a comma separated string
            body["expand"] = _csv(expand)
        return await self._request("POST", "/search/jql", json_body=body)

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    async def get_issue(
        self,
        issue_key: str,
        *,
        fields: Union[str, Iterable[str], None] = None,
        expand: Union[str, Iterable[str], None] = None,
    ) -> Any:
        return await self._request(
            "GET",
            f"/issue/{issue_key}",
            params={"fields": _csv(fields), "expand": _csv(expand)},
        )

    async def create_issue(self, payload: Dict[str, Any], *, update_history: bool = False) -> Any:
        params = {"updateHistory": "true"} if update_history else None
        return await self._request("POST", "/issue", params=params, json_body=payload)

    async def update_issue(
        self, issue_key: str, payload: Dict[str, Any], *, notify_users: bool = True
    ) -> None:
        await self._request(
            "PUT",
            f"/issue/{issue_key}",
            params={"notifyUsers": "true" if notify_users else "false"},
            json_body=payload,
        )

    async def delete_issue(self, issue_key: str, *, delete_subtasks: bool = False) -> None:
        await self._request(
            "DELETE",
            f"/issue/{issue_key}",
            params={"deleteSubtasks": "true" if delete_subtasks else "false"},
        )

    async def get_transitions(self, issue_key: str) -> Any:
        return await self._request(
            "GET",
            f"/issue/{issue_key}/transitions",
            params={"expand": "transitions.fields"},
        )

    async def do_transition(self, issue_key: str, payload: Dict[str, Any]) -> None:
        await self._request("POST", f"/issue/{issue_key}/transitions", json_body=payload)

    async def get_watchers(self, issue_key: str) -> Any:
        return await self._request("GET", f"/issue/{issue_key}/watchers")

    async def add_watcher(self, issue_key: str, account_id: str) -> None:
        # Jira expects the bare JSON string as body
        await self._request("POST", f"/issue/{issue_key}/watchers", json_body=account_id)

    async def get_create_meta(
        self,
        *,
        project_ids: Optional[str] = None,
        project_keys: Optional[str] = None,
        issuetype_ids: Optional[str] = None,
        issuetype_names: Optional[str] = None,
        expand: str = "projects.issuetypes.fields",
    ) -> Any:
        return await self._request(
            "GET",
            "/issue/createmeta",
            params={
                "expand": expand,
                "projectIds": project_ids,
                "projectKeys": project_keys,
                "issuetypeIds": issuetype_ids,
                "issuetypeNames": issuetype_names,
            },
        )

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    async def get_comments(
        self,
        issue_key: str,
        *,
        start_at: int = 0,
        max_results: int = 50,
        order_by: str = "-created",
    ) -> Any:
        return await self._request(
            "GET",
            f"/issue/{issue_key}/comment",
            params={
                "startAt": start_at,
                "maxResults": max_results,
                "orderBy": order_by,
                "expand": "renderedBody",
            },
        )

    async def add_comment(self, issue_key: str, payload: Dict[str, Any]) -> Any:
        return await self._request("POST", f"/issue/{issue_key}/comment", json_body=payload)

    async def update_comment(
        self, issue_key: str, comment_id: str, payload: Dict[str, Any]
    ) -> Any:
        return await self._request(
            "PUT", f"/issue/{issue_key}/comment/{comment_id}", json_body=payload
        )

    async def delete_comment(self, issue_key: str, comment_id: str) -> None:
        await self._request("DELETE", f"/issue/{issue_key}/comment/{comment_id}")

    # ------------------------------------------------------------------
    # Projects / metadata
    # ------------------------------------------------------------------

    async def search_projects(
        self,
        *,
        start_at: int = 0,
        max_results: int = 50,
        order_by: str = "name",
        query: Optional[str] = None,
        expand: str = "description,lead,issueTypes",
    ) -> Any:
        return await self._request(
            "GET",
            "/project/search",
            params={
                "startAt": start_at,
                "maxResults": max_results,
                "orderBy": order_by,
                "expand": expand,
                "query": query or None,
            },
        )

    async def get_project(
        self,
        project_key: str,
        *,
        expand: str = "description,lead,issueTypes,components,versions",
    ) -> Any:
        return await self._request("GET", f"/project/{project_key}", params={"expand": expand})

    async def get_project_statuses(self, project_key: str) -> Any:
        return await self._request("GET", f"/project/{project_key}/statuses")

    async def get_project_issue_types(self, project_key: str) -> List[Any]:
        project = await self.get_project(project_key, expand="issueTypes")
        if not isinstance(project, dict):
            return []
        return project.get("issueTypes") or []

    async def get_issue_types(self, *, project_id: Optional[str] = None) -> Any:
        if project_id:
            return await self._request(
                "GET", "/issuetype/project", params={"projectId": project_id}
            )
        return await self._request("GET", "/issuetype")

    async def get_priorities(self) -> Any:
        return await self._request("GET", "/priority")

    async def get_fields(self) -> Any:
        return await self._request("GET", "/field")

    async def get_attachment(self, attachment_id: str) -> Any:
        return await self._request("GET", f"/attachment/{attachment_id}")


async def get_jira_client() -> AsyncIterator[JiraClient]:
    """FastAPI dependency: one client per request, closed afterwards.

    Building the client never fails, so request validation in the route body
    runs first; missing credentials surface as JiraCredentialsError on the
    first upstream call, before any network traffic.
    """
    client = JiraClient.from_settings()
    try:
        yield client
    finally:
        await client.aclose()
