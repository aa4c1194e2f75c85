from __future__ import annotations

from typing import Any, Dict, List, Optional

from supportdesk.services.adf import text_to_document
from supportdesk.services.labels import derive_label


class IssueValidationError(ValueError):
    """Request rejected locally, before any upstream call (HTTP 400)."""


def _ref(value: Any, *, key_field: str = "name") -> Any:
    """Turn form shorthands into Jira references.

    Numeric strings are ids, other strings use ``key_field``; dicts pass
    through untouched.
    """
    if isinstance(value, str):
        v = value.strip()
        if v.isdigit():
            return {"id": v}
        return {key_field: v}
    return value


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip()) or value == {}


def _description(value: Any) -> Any:
    if value is None:
        return text_to_document("")
    if isinstance(value, str):
        return text_to_document(value if value.strip() else "")
    return value


def _with_requester(description: Any, requested_by: str) -> Any:
    line = f"Requested by: {requested_by}"
    if description is None or isinstance(description, str):
        text = (description or "").rstrip()
        return f"{text}\n\n{line}" if text.strip() else line
    if isinstance(description, dict) and isinstance(description.get("content"), list):
        paragraph = {"type": "paragraph", "content": [{"type": "text", "text": line}]}
        return {**description, "content": [*description["content"], paragraph]}
    return description


def fields_from_form(
    *,
    project_id: Optional[str] = None,
    issue_type_id: Optional[str] = None,
    summary: Optional[str] = None,
    description: Optional[str] = None,
    priority: Optional[str] = None,
) -> Dict[str, Any]:
    """Map the flat create form (projectId, issueTypeId, ...) to ``fields``."""
    fields: Dict[str, Any] = {
        "project": project_id,
        "issuetype": issue_type_id,
        "summary": summary,
    }
    if description is not None:
        fields["description"] = description
    if priority:
        fields["priority"] = priority
    return fields


def build_create_payload(
    fields: Optional[Dict[str, Any]],
    *,
    requested_by: Optional[str] = None,
) -> Dict[str, Any]:
    """Validate and normalize the ``fields`` of a new ticket.

    ``project``, ``issuetype`` and a non-blank ``summary`` are required.
    When ``requested_by`` is given the ticket is tagged with the requester
    label and a "Requested by" line is appended to the description.
    """
    if not isinstance(fields, dict):
        raise IssueValidationError('The "fields" object is required')
    if _is_blank(fields.get("project")):
        raise IssueValidationError("Project is required (fields.project)")
    if _is_blank(fields.get("issuetype")):
        raise IssueValidationError("Issue type is required (fields.issuetype)")
    summary = fields.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        raise IssueValidationError("Summary is required and cannot be blank (fields.summary)")

    out: Dict[str, Any] = dict(fields)
    out["summary"] = summary.strip()
    out["project"] = _ref(fields["project"], key_field="key")
    out["issuetype"] = _ref(fields["issuetype"])
    if "priority" in fields and not _is_blank(fields["priority"]):
        out["priority"] = _ref(fields["priority"])
    else:
        out.pop("priority", None)
    if isinstance(fields.get("assignee"), str):
        out["assignee"] = {"accountId": fields["assignee"]}

    description = fields.get("description")
    if requested_by:
        description = _with_requester(description, requested_by)
    out["description"] = _description(description)

    raw_labels = fields.get("labels")
    if isinstance(raw_labels, str):
        raw_labels = [raw_labels]
    elif raw_labels is not None and not isinstance(raw_labels, list):
        raise IssueValidationError("fields.labels must be a list of strings")
    labels: List[str] = [str(x) for x in raw_labels or [] if not _is_blank(x)]
    if requested_by:
        tag = derive_label(requested_by)
        if tag not in labels:
            labels.append(tag)
    if labels or raw_labels is not None:
        out["labels"] = labels

    return {"fields": out}


def build_update_payload(
    fields: Optional[Dict[str, Any]] = None,
    update: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    if not fields and not update:
        raise IssueValidationError('Nothing to update: send "fields" and/or "update"')
    payload: Dict[str, Any] = {}
    if fields:
        patch = dict(fields)
        if isinstance(patch.get("description"), str):
            patch["description"] = _description(patch["description"])
        if "summary" in patch and (
            not isinstance(patch["summary"], str) or not patch["summary"].strip()
        ):
            raise IssueValidationError("Summary cannot be blank (fields.summary)")
        payload["fields"] = patch
    if update:
        payload["update"] = update
    return payload


def build_comment_payload(body: Any, visibility: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    if _is_blank(body):
        raise IssueValidationError("Comment body is required")
    payload: Dict[str, Any] = {
        "body": text_to_document(body) if isinstance(body, str) else body,
    }
    if visibility:
        payload["visibility"] = visibility
    return payload


def build_transition_payload(
    transition: Optional[Dict[str, Any]],
    fields: Optional[Dict[str, Any]] = None,
    update: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    tid = (transition or {}).get("id") if isinstance(transition, dict) else None
    if _is_blank(tid):
        raise IssueValidationError("transition.id is required")
    payload: Dict[str, Any] = {"transition": {**transition, "id": str(tid)}}
    if fields:
        payload["fields"] = fields
    if update:
        payload["update"] = update
    return payload
