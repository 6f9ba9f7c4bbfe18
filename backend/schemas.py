"""
Pydantic schemas for API request/response validation.

These schemas provide:
- Type safety for API inputs and outputs
- Automatic validation and error messages
- OpenAPI documentation generation
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, field_validator

from taskflow.core.models import Priority, Status


def _reject_null(value):
    """Omit a field to keep its value; null is not a valid value for it."""
    if value is None:
        raise ValueError("may be omitted but not null")
    return value


# =============================================================================
# Task Schemas
# =============================================================================

class TaskCreate(BaseModel):
    """Request body for creating a task."""
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    status: Status = Status.TODO
    priority: Priority = Priority.MEDIUM
    due_date: Optional[datetime] = None
    list_id: Optional[int] = None
    tags: List[str] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Request body for updating a task; omitted fields keep their value."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[Status] = None
    priority: Optional[Priority] = None
    due_date: Optional[datetime] = None
    list_id: Optional[int] = None
    tags: Optional[List[str]] = None

    @field_validator("title", "status", "priority", "tags")
    @classmethod
    def _not_null(cls, value):
        return _reject_null(value)


class TaskResponse(BaseModel):
    """Task data returned from API."""
    id: int
    list_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    due_date: Optional[str] = None
    created_at: Optional[str] = None
    tags: List[str] = []


# =============================================================================
# Note Schemas
# =============================================================================

class NoteCreate(BaseModel):
    """Request body for creating a note."""
    title: str = Field(..., min_length=1, max_length=500)
    content: Optional[str] = None
    list_id: Optional[int] = None
    tags: List[str] = Field(default_factory=list)


class NoteUpdate(BaseModel):
    """Request body for updating a note; omitted fields keep their value."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    content: Optional[str] = None
    list_id: Optional[int] = None
    tags: Optional[List[str]] = None

    @field_validator("title", "tags")
    @classmethod
    def _not_null(cls, value):
        return _reject_null(value)


class NoteResponse(BaseModel):
    """Note data returned from API."""
    id: int
    list_id: Optional[int] = None
    title: str
    content: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    tags: List[str] = []


class ReindexResponse(BaseModel):
    """Result of an explicit embedding refresh."""
    id: int
    indexed: bool


# =============================================================================
# Search Schemas
# =============================================================================

class SearchRequest(BaseModel):
    """Natural language search request."""
    query: str = Field(..., max_length=2000)
    kind: Literal["task", "note"] = "task"
    now: Optional[datetime] = Field(
        default=None, description="Reference time for relative dates (defaults to server time)"
    )


class FilterSchema(BaseModel):
    field: Any = None
    operator: Any = None
    value: Any = None


class IntentSchema(BaseModel):
    """How the query was interpreted."""
    type: str
    filters: List[FilterSchema] = []
    search_terms: Optional[str] = None


class SearchHit(BaseModel):
    id: int
    kind: str
    similarity: Optional[float] = None
    record: Optional[Dict[str, Any]] = None


class SearchResponse(BaseModel):
    """Ranked search results plus diagnostics."""
    intent: IntentSchema
    results: List[SearchHit]
    total: int
    dropped_filters: List[str] = []
