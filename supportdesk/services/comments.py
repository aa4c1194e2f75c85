"""
Internal vs customer-facing comment classification.

Jira has no "internal" flag on comments; restricted visibility (role or
group) is used as a hint instead. This is a display convenience for the
support dashboard: it is a best-effort heuristic over a static name list,
NOT an access-control decision. Restricted comments are already filtered by
Jira for callers who cannot see them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from supportdesk.services.adf import document_to_text

INTERNAL = "internal"
CUSTOMER = "customer"

INTERNAL_ROLES = (
    "Administrators",
    "jira-servicedesk-users",
    "Service Desk Team",
    "Agents",
    "servicedesk-users",
    "jira-administrators",
    "atlassian-addons-admin",
    "developers",
)

INTERNAL_GROUPS = (
    "jira-servicedesk-users",
    "jira-administrators",
    "servicedesk-agents",
    "jira-software-users",
    "site-admins",
)


def is_internal_comment(comment: Dict[str, Any] | None) -> bool:
    if not isinstance(comment, dict):
        return False
    visibility = comment.get("visibility")
    if not isinstance(visibility, dict):
        return False

    vtype = str(visibility.get("type") or "").lower()
    value = str(visibility.get("value") or "").lower()
    if not vtype or not value:
        return False

    if vtype == "role":
        names = INTERNAL_ROLES
    elif vtype == "group":
        names = INTERNAL_GROUPS
    else:
        return False
    return any(name.lower() in value for name in names)


def comment_type(comment: Dict[str, Any] | None) -> str:
    return INTERNAL if is_internal_comment(comment) else CUSTOMER


def _created_key(comment: Dict[str, Any]) -> float:
    raw = comment.get("created")
    if not isinstance(raw, str):
        return float("-inf")
    try:
        # Jira: 2024-05-01T10:00:00.000+0000
        dt = datetime.strptime(raw, "%Y-%m-%dT%H:%M:%S.%f%z")
    except ValueError:
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            return float("-inf")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def separate_comments(comments: Any) -> Dict[str, List[Dict[str, Any]]]:
    """Split comments into internal / customer buckets plus ``all``.

    Bucket order follows the input; ``all`` is sorted newest first.
    """
    result: Dict[str, List[Dict[str, Any]]] = {INTERNAL: [], CUSTOMER: [], "all": []}
    if not isinstance(comments, list):
        return result

    for c in comments:
        if not isinstance(c, dict):
            continue
        result[comment_type(c)].append(c)
        result["all"].append(c)

    result["all"].sort(key=_created_key, reverse=True)
    return result


def annotate_comment(comment: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``comment`` with the display fields used by the dashboard."""
    author = comment.get("author") or {}
    internal = is_internal_comment(comment)
    return {
        **comment,
        "type": INTERNAL if internal else CUSTOMER,
        "isInternal": internal,
        "plainTextBody": document_to_text(comment.get("body")),
        "authorName": author.get("displayName") or "Unknown",
    }
