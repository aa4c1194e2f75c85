from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from supportdesk.clients.jira import JiraClient, get_jira_client

router = APIRouter(prefix="/api/user", tags=["users"])


@router.get("")
async def current_user(
    expand: str = "groups,applicationRoles",
    client: JiraClient = Depends(get_jira_client),
) -> Any:
    """The service account the proxy talks to Jira as."""
    return await client.myself(expand=expand)


@router.get("/search")
async def search_users(
    query: str = "",
    startAt: int = Query(default=0, ge=0),
    maxResults: int = Query(default=50, ge=1, le=1000),
    client: JiraClient = Depends(get_jira_client),
) -> Any:
    return await client.search_users(query, start_at=startAt, max_results=maxResults)


@router.get("/assignable/search")
async def assignable_users(
    query: str = "",
    project: Optional[str] = None,
    issueKey: Optional[str] = None,
    maxResults: int = Query(default=50, ge=1, le=1000),
    client: JiraClient = Depends(get_jira_client),
) -> Any:
    if not project and not issueKey:
        raise HTTPException(400, "project or issueKey is required")
    return await client.search_assignable_users(
        query, project=project, issue_key=issueKey, max_results=maxResults
    )
