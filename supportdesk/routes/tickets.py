from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from supportdesk.auth.identity import require_identity
from supportdesk.clients.jira import JiraClient, get_jira_client
from supportdesk.core.config import settings
from supportdesk.models.jira import SearchRequest, SearchResponse
from supportdesk.services.search import (
    DEFAULT_ISSUE_FIELDS,
    DETAIL_EXPAND,
    DETAIL_FIELDS,
    build_account_jql,
    build_assigned_jql,
    build_reported_jql,
    build_requester_jql,
    build_ticket_jql,
    search_all,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tickets", tags=["tickets"])


def _split(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [v.strip() for v in value.split(",") if v.strip()]


@router.get("", response_model=SearchResponse)
async def list_tickets(
    jql: Optional[str] = None,
    project: Optional[str] = None,
    status: Optional[str] = None,
    maxResults: int = Query(default=100, ge=1, le=5000),
    fetchAll: bool = True,
    client: JiraClient = Depends(get_jira_client),
) -> Dict[str, Any]:
    if jql and jql.strip():
        query = jql.strip()
    else:
        query = build_ticket_jql(project or settings.default_project_key, status)
    return await search_all(
        client,
        query,
        fields=DEFAULT_ISSUE_FIELDS,
        page_size=maxResults,
        fetch_all=fetchAll,
    )


@router.get("/assigned", response_model=SearchResponse)
async def assigned_tickets(
    status: Optional[str] = None,
    client: JiraClient = Depends(get_jira_client),
) -> Dict[str, Any]:
    return await search_all(
        client,
        build_assigned_jql(status),
        fields=DEFAULT_ISSUE_FIELDS,
        page_size=settings.jira_page_size,
    )


@router.get("/reported", response_model=SearchResponse)
async def reported_tickets(client: JiraClient = Depends(get_jira_client)) -> Dict[str, Any]:
    return await search_all(
        client,
        build_reported_jql(),
        fields=DEFAULT_ISSUE_FIELDS,
        page_size=settings.jira_page_size,
    )


@router.get("/mine", response_model=SearchResponse)
async def my_tickets(
    identity: Dict[str, Any] = Depends(require_identity),
    client: JiraClient = Depends(get_jira_client),
) -> Dict[str, Any]:
    """Tickets opened on behalf of the signed-in agent (requester label)."""
    return await search_all(
        client,
        build_requester_jql(identity["email"]),
        fields=DEFAULT_ISSUE_FIELDS,
        page_size=settings.jira_page_size,
    )


@router.get("/user/{account_id}/by-account")
async def tickets_by_account(
    account_id: str,
    role: str = "any",
    client: JiraClient = Depends(get_jira_client),
) -> List[Any]:
    if role not in {"any", "assignee", "reporter"}:
        raise HTTPException(400, "role must be one of: any, assignee, reporter")
    result = await search_all(
        client,
        build_account_jql(account_id, role),
        fields=DEFAULT_ISSUE_FIELDS,
        page_size=settings.jira_page_size,
    )
    return result["issues"]


@router.get("/user/{user_email}")
async def tickets_for_user(
    user_email: str,
    client: JiraClient = Depends(get_jira_client),
) -> List[Any]:
    if not user_email.strip():
        raise HTTPException(400, "User identifier is required")
    result = await search_all(
        client,
        build_requester_jql(user_email),
        fields=DEFAULT_ISSUE_FIELDS,
        page_size=settings.jira_page_size,
    )
    return result["issues"]


@router.post("/search", response_model=SearchResponse)
async def search_tickets(
    payload: SearchRequest,
    client: JiraClient = Depends(get_jira_client),
) -> Dict[str, Any]:
    if not payload.jql or not payload.jql.strip():
        raise HTTPException(400, "JQL is required")
    return await search_all(
        client,
        payload.jql,
        fields=payload.fields if payload.fields is not None else DEFAULT_ISSUE_FIELDS,
        expand=payload.expand,
        page_size=payload.maxResults,
        fetch_all=payload.fetchAll,
    )


@router.get("/{issue_key}")
async def ticket_detail(
    issue_key: str,
    fields: Optional[str] = None,
    expand: Optional[str] = None,
    client: JiraClient = Depends(get_jira_client),
) -> Any:
    issue = await client.get_issue(
        issue_key,
        fields=_split(fields) or DETAIL_FIELDS,
        expand=_split(expand) or DETAIL_EXPAND,
    )
    if isinstance(issue, dict):
        logger.info(
            "[Tickets] %s - %s",
            issue.get("key"),
            (issue.get("fields") or {}).get("summary"),
        )
    return issue
