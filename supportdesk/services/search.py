from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from supportdesk.clients.jira import JiraClient
from supportdesk.services.labels import derive_label

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100

DEFAULT_ISSUE_FIELDS = [
    "summary",
    "status",
    "priority",
    "assignee",
    "reporter",
    "created",
    "updated",
    "issuetype",
    "project",
    "description",
    "comment",
    "labels",
    "resolution",
    "resolutiondate",
]

DETAIL_FIELDS = DEFAULT_ISSUE_FIELDS + [
    "attachment",
    "worklog",
    "components",
    "fixVersions",
    "duedate",
    "timetracking",
]

DETAIL_EXPAND = ["renderedFields", "changelog", "operations"]

DEFAULT_ORDER = "ORDER BY priority DESC, created DESC"
CLOSED_STATUSES = ("Done", "Closed")


async def search_all(
    client: JiraClient,
    jql: str,
    *,
    fields: Optional[Sequence[str]] = None,
    expand: Optional[Sequence[str]] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    fetch_all: bool = True,
) -> Dict[str, Any]:
    """Concatenate every page of a token-paginated ``/search/jql`` query.

    Pages are requested sequentially since each token comes from the
    previous response. Items keep the upstream order. Any page failure
    propagates and the pages already fetched are dropped.
    """
    if not jql or not jql.strip():
        raise ValueError("jql is required")

    issues: List[Any] = []
    next_page_token: Optional[str] = None
    previous_token: Optional[str] = None
    pages = 0

    logger.info("[Search] JQL: %s", jql)
    while True:
        data = await client.search_jql(
            jql,
            max_results=page_size,
            next_page_token=next_page_token,
            fields=list(fields) if fields else None,
            expand=list(expand) if expand else None,
        )
        pages += 1
        if not isinstance(data, dict):
            logger.warning("[Search] empty response from Jira on page %d", pages)
            break

        page = data.get("issues") or []
        issues.extend(page)
        is_last = data.get("isLast") is True
        next_page_token = data.get("nextPageToken") or None
        logger.debug(
            "[Search] page=%d items=%d total=%d isLast=%s",
            pages, len(page), len(issues), is_last,
        )

        if is_last or not fetch_all:
            break
        if not next_page_token:
            # No way to ask for more: either an empty page or a final page
            # missing its isLast flag.
            break
        if next_page_token == previous_token:
            logger.warning(
                "[Search] Jira repeated nextPageToken on page %d, stopping", pages
            )
            break
        previous_token = next_page_token

    logger.info("[Search] %d issues in %d page(s)", len(issues), pages)
    return {
        "issues": issues,
        "total": len(issues),
        "startAt": 0,
        "maxResults": len(issues),
    }


# ----------------------------------------------------------------------
# JQL construction
# ----------------------------------------------------------------------


def quote_jql(value: str) -> str:
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_ticket_jql(project: Optional[str] = None, status: Optional[str] = None) -> str:
    conditions: List[str] = []
    if project:
        conditions.append(f"project = {quote_jql(project)}")
    if status:
        conditions.append(f"status = {quote_jql(status)}")
    if not conditions:
        return DEFAULT_ORDER
    return f"{' AND '.join(conditions)} {DEFAULT_ORDER}"


def build_assigned_jql(status: Optional[str] = None) -> str:
    jql = "assignee = currentUser()"
    if status:
        jql += f" AND status = {quote_jql(status)}"
    else:
        jql += f" AND status NOT IN ({', '.join(CLOSED_STATUSES)})"
    return f"{jql} {DEFAULT_ORDER}"


def build_reported_jql() -> str:
    return "reporter = currentUser() ORDER BY created DESC"


def build_requester_jql(email: str) -> str:
    """Tickets opened on behalf of ``email``: tag label or description line."""
    label = derive_label(email)
    requested = quote_jql(f"Requested by: {email}")
    return f"(labels = {quote_jql(label)} OR description ~ {requested}) {DEFAULT_ORDER}"


def build_account_jql(account_id: str, role: str = "any") -> str:
    who = quote_jql(account_id)
    if role == "assignee":
        jql = f"assignee = {who}"
    elif role == "reporter":
        jql = f"reporter = {who}"
    else:
        jql = f"assignee = {who} OR reporter = {who}"
    return f"{jql} ORDER BY updated DESC"
