from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from supportdesk.clients.jira import JiraClient, get_jira_client

# Lookup data for the create form and filters: projects, issue types,
# priorities, fields, create metadata and attachments.
router = APIRouter(prefix="/api", tags=["projects"])


@router.get("/projects")
async def list_projects(
    startAt: int = Query(default=0, ge=0),
    maxResults: int = Query(default=50, ge=1, le=100),
    orderBy: str = "name",
    query: Optional[str] = None,
    client: JiraClient = Depends(get_jira_client),
) -> Any:
    return await client.search_projects(
        start_at=startAt, max_results=maxResults, order_by=orderBy, query=query
    )


@router.get("/projects/{project_key}")
async def project_detail(
    project_key: str, client: JiraClient = Depends(get_jira_client)
) -> Any:
    return await client.get_project(project_key)


@router.get("/projects/{project_key}/statuses")
async def project_statuses(
    project_key: str, client: JiraClient = Depends(get_jira_client)
) -> Any:
    return await client.get_project_statuses(project_key)


@router.get("/projects/{project_key}/issuetypes")
async def project_issue_types(
    project_key: str, client: JiraClient = Depends(get_jira_client)
) -> Any:
    return await client.get_project_issue_types(project_key)


@router.get("/issuetype")
async def issue_types(client: JiraClient = Depends(get_jira_client)) -> Any:
    return await client.get_issue_types()


@router.get("/issuetype/project")
async def issue_types_for_project(
    projectId: Optional[str] = None,
    client: JiraClient = Depends(get_jira_client),
) -> Any:
    if not projectId:
        raise HTTPException(400, "projectId is required")
    return await client.get_issue_types(project_id=projectId)


@router.get("/priority")
async def priorities(client: JiraClient = Depends(get_jira_client)) -> Any:
    return await client.get_priorities()


@router.get("/field")
async def fields(client: JiraClient = Depends(get_jira_client)) -> Any:
    return await client.get_fields()


@router.get("/issue/createmeta")
async def create_meta(
    projectIds: Optional[str] = None,
    projectKeys: Optional[str] = None,
    issuetypeIds: Optional[str] = None,
    issuetypeNames: Optional[str] = None,
    expand: str = "projects.issuetypes.fields",
    client: JiraClient = Depends(get_jira_client),
) -> Any:
    return await client.get_create_meta(
        project_ids=projectIds,
        project_keys=projectKeys,
        issuetype_ids=issuetypeIds,
        issuetype_names=issuetypeNames,
        expand=expand,
    )


@router.get("/attachment/{attachment_id}")
async def attachment(
    attachment_id: str, client: JiraClient = Depends(get_jira_client)
) -> Any:
    return await client.get_attachment(attachment_id)
