from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SearchRequest(BaseModel):
    """Body of ``POST /api/tickets/search``. Paging is token based, so an
    offset such as ``startAt`` is ignored."""

    jql: Optional[str] = None
    fields: Optional[List[str]] = None
    expand: Optional[List[str]] = None
    maxResults: int = Field(default=100, ge=1, le=5000)
    fetchAll: bool = False


class SearchResponse(BaseModel):
    issues: List[Dict[str, Any]]
    total: int
    startAt: int = 0
    maxResults: int


class IssueCreateRequest(BaseModel):
    """Either a Jira-shaped ``fields`` object or the flat form fields."""

    model_config = ConfigDict(extra="ignore")

    fields: Optional[Dict[str, Any]] = None
    updateHistory: bool = False
    requestedBy: Optional[str] = None

    # flat form variant
    projectId: Optional[str] = None
    issueTypeId: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None


class IssueUpdateRequest(BaseModel):
    fields: Optional[Dict[str, Any]] = None
    update: Optional[Dict[str, Any]] = None


class TransitionRequest(BaseModel):
    transition: Optional[Dict[str, Any]] = None
    fields: Optional[Dict[str, Any]] = None
    update: Optional[Dict[str, Any]] = None


class CommentRequest(BaseModel):
    body: Any = None
    visibility: Optional[Dict[str, Any]] = None
