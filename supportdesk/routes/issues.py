from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Response

from supportdesk.auth.identity import current_identity
from supportdesk.clients.jira import JiraClient, get_jira_client
from supportdesk.models.jira import (
    CommentRequest,
    IssueCreateRequest,
    IssueUpdateRequest,
    TransitionRequest,
)
from supportdesk.services.comments import (
    CUSTOMER,
    INTERNAL,
    annotate_comment,
    separate_comments,
)
from supportdesk.services.issues import (
    IssueValidationError,
    build_comment_payload,
    build_create_payload,
    build_transition_payload,
    build_update_payload,
    fields_from_form,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/issues", tags=["issues"])


@router.post("", status_code=201)
async def create_issue(
    payload: IssueCreateRequest,
    identity: Optional[Dict[str, Any]] = Depends(current_identity),
    client: JiraClient = Depends(get_jira_client),
) -> Any:
    """Create a ticket from Jira-shaped ``fields`` or the flat form.

    The requester defaults to the signed-in identity so the ticket shows up
    in that person's "my tickets" view.
    """
    fields = payload.fields
    if fields is None:
        fields = fields_from_form(
            project_id=payload.projectId,
            issue_type_id=payload.issueTypeId,
            summary=payload.summary,
            description=payload.description,
            priority=payload.priority,
        )
    requested_by = payload.requestedBy or (identity or {}).get("email")
    body = build_create_payload(fields, requested_by=requested_by)

    created = await client.create_issue(body, update_history=payload.updateHistory)
    if isinstance(created, dict):
        logger.info("[Issues] created %s", created.get("key"))
    return created


@router.put("/{issue_key}", status_code=204)
async def update_issue(
    issue_key: str,
    payload: IssueUpdateRequest,
    notifyUsers: bool = True,
    client: JiraClient = Depends(get_jira_client),
) -> Response:
    body = build_update_payload(payload.fields, payload.update)
    await client.update_issue(issue_key, body, notify_users=notifyUsers)
    return Response(status_code=204)


@router.delete("/{issue_key}", status_code=204)
async def delete_issue(
    issue_key: str,
    deleteSubtasks: bool = False,
    client: JiraClient = Depends(get_jira_client),
) -> Response:
    await client.delete_issue(issue_key, delete_subtasks=deleteSubtasks)
    logger.info("[Issues] deleted %s", issue_key)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


@router.get("/{issue_key}/transitions")
async def list_transitions(
    issue_key: str, client: JiraClient = Depends(get_jira_client)
) -> Any:
    return await client.get_transitions(issue_key)


@router.post("/{issue_key}/transitions", status_code=204)
async def transition_issue(
    issue_key: str,
    payload: TransitionRequest,
    client: JiraClient = Depends(get_jira_client),
) -> Response:
    body = build_transition_payload(payload.transition, payload.fields, payload.update)
    await client.do_transition(issue_key, body)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


@router.get("/{issue_key}/comments")
async def list_comments(
    issue_key: str,
    startAt: int = Query(default=0, ge=0),
    maxResults: int = Query(default=50, ge=1, le=5000),
    orderBy: str = "-created",
    client: JiraClient = Depends(get_jira_client),
) -> Any:
    data = await client.get_comments(
        issue_key, start_at=startAt, max_results=maxResults, order_by=orderBy
    )
    if isinstance(data, dict) and isinstance(data.get("comments"), list):
        comments: List[Any] = data["comments"]
        buckets = separate_comments(comments)
        data = {
            **data,
            "comments": [annotate_comment(c) for c in comments if isinstance(c, dict)],
            "internalCount": len(buckets[INTERNAL]),
            "customerCount": len(buckets[CUSTOMER]),
        }
    return data


@router.post("/{issue_key}/comments", status_code=201)
async def add_comment(
    issue_key: str,
    payload: CommentRequest,
    client: JiraClient = Depends(get_jira_client),
) -> Any:
    body = build_comment_payload(payload.body, payload.visibility)
    created = await client.add_comment(issue_key, body)
    return created


@router.put("/{issue_key}/comments/{comment_id}")
async def update_comment(
    issue_key: str,
    comment_id: str,
    payload: CommentRequest,
    client: JiraClient = Depends(get_jira_client),
) -> Any:
    body = build_comment_payload(payload.body, payload.visibility)
    return await client.update_comment(issue_key, comment_id, body)


@router.delete("/{issue_key}/comments/{comment_id}", status_code=204)
async def delete_comment(
    issue_key: str,
    comment_id: str,
    client: JiraClient = Depends(get_jira_client),
) -> Response:
    await client.delete_comment(issue_key, comment_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Watchers
# ---------------------------------------------------------------------------


@router.get("/{issue_key}/watchers")
async def list_watchers(
    issue_key: str, client: JiraClient = Depends(get_jira_client)
) -> Any:
    return await client.get_watchers(issue_key)


@router.post("/{issue_key}/watchers", status_code=204)
async def add_watcher(
    issue_key: str,
    payload: Any = Body(default=None),
    client: JiraClient = Depends(get_jira_client),
) -> Response:
    # accepts either the bare account id string or {"accountId": "..."}
    account_id = payload.get("accountId") if isinstance(payload, dict) else payload
    if not isinstance(account_id, str) or not account_id.strip():
        raise IssueValidationError("accountId is required")
    await client.add_watcher(issue_key, account_id.strip())
    return Response(status_code=204)
