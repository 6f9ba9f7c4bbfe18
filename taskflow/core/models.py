"""
Data models for TaskFlow
Defines the searchable record types (tasks and notes) and their row mapping.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any, Union
import json

from dateutil import parser as date_parser


class RecordKind(str, Enum):
    """Kind of searchable record; the value is the backing table name"""
    TASK = "tasks"
    NOTE = "notes"

    @property
    def label(self) -> str:
        return "Task" if self is RecordKind.TASK else "Note"


class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class Status(str, Enum):
    BACKLOG = "Backlog"
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    REVIEW = "Review"
    WAITING = "Waiting"
    DONE = "Done"


def to_iso(value: Union[str, datetime, None]) -> Optional[str]:
    """
    Normalize a timestamp to the stored form ``YYYY-MM-DDTHH:MM:SS.sssZ``.

    Naive datetimes are taken to be UTC. Every stored timestamp uses this
    form so string comparison in SQL matches chronological order.

    Raises:
        ValueError: If a string cannot be parsed as a date
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = date_parser.isoparse(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def utc_now_iso() -> str:
    """Current time in the stored timestamp form"""
    return to_iso(datetime.now(timezone.utc))


def _parse_json_list(json_str: Optional[str]) -> List[str]:
    """Parse JSON array string from database"""
    if json_str:
        try:
            result = json.loads(json_str)
            return result if isinstance(result, list) else []
        except (json.JSONDecodeError, TypeError):
            return []
    return []


@dataclass
class Task:
    """Task data model"""
    id: Optional[int] = None
    list_id: Optional[int] = None
    title: str = ""
    description: Optional[str] = None
    status: str = Status.TODO.value
    priority: str = Priority.MEDIUM.value
    due_date: Optional[str] = None
    created_at: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    kind = RecordKind.TASK

    @property
    def body(self) -> str:
        return self.description or ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Task':
        """Create Task from database row dictionary"""
        return cls(
            id=data.get('id'),
            list_id=data.get('list_id'),
            title=data.get('title') or '',
            description=data.get('description'),
            status=data.get('status') or Status.TODO.value,
            priority=data.get('priority') or Priority.MEDIUM.value,
            due_date=data.get('due_date'),
            created_at=data.get('created_at'),
            tags=_parse_json_list(data.get('tags')),
        )

    def to_row(self) -> Dict[str, Any]:
        """Column values for INSERT/UPDATE (id and embedding excluded)"""
        return {
            'list_id': self.list_id,
            'title': self.title,
            'description': self.description,
            'status': self.status,
            'priority': self.priority,
            'due_date': to_iso(self.due_date),
            'created_at': to_iso(self.created_at) or utc_now_iso(),
            'tags': json.dumps(self.tags),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'list_id': self.list_id,
            'title': self.title,
            'description': self.description,
            'status': self.status,
            'priority': self.priority,
            'due_date': self.due_date,
            'created_at': self.created_at,
            'tags': list(self.tags),
        }


@dataclass
class Note:
    """Note data model"""
    id: Optional[int] = None
    list_id: Optional[int] = None
    title: str = ""
    content: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    kind = RecordKind.NOTE

    @property
    def body(self) -> str:
        return self.content or ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Note':
        """Create Note from database row dictionary"""
        return cls(
            id=data.get('id'),
            list_id=data.get('list_id'),
            title=data.get('title') or '',
            content=data.get('content'),
            created_at=data.get('created_at'),
            updated_at=data.get('updated_at'),
            tags=_parse_json_list(data.get('tags')),
        )

    def to_row(self) -> Dict[str, Any]:
        """Column values for INSERT/UPDATE (id and embedding excluded)"""
        return {
            'list_id': self.list_id,
            'title': self.title,
            'content': self.content,
            'created_at': to_iso(self.created_at) or utc_now_iso(),
            'updated_at': to_iso(self.updated_at),
            'tags': json.dumps(self.tags),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'list_id': self.list_id,
            'title': self.title,
            'content': self.content,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
            'tags': list(self.tags),
        }


Record = Union[Task, Note]

MODEL_FOR_KIND = {
    RecordKind.TASK: Task,
    RecordKind.NOTE: Note,
}


def record_from_row(kind: RecordKind, row: Dict[str, Any]) -> Record:
    """Build the model matching ``kind`` from a database row"""
    return MODEL_FOR_KIND[kind].from_dict(row)
