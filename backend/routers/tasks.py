"""
Task management API endpoints.

Writes go through the RecordStore, which re-indexes a task's embedding
whenever its title or description changes.
"""

from fastapi import APIRouter, Depends, HTTPException

from backend.dependencies import get_indexer, get_record_store
from backend.schemas import ReindexResponse, TaskCreate, TaskResponse, TaskUpdate
from taskflow.core.models import RecordKind, Task
from taskflow.core.record_store import RecordStore
from taskflow.errors import EmbeddingError, RecordNotFoundError
from taskflow.search.indexer import EmbeddingIndexer

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _to_response(task: Task) -> TaskResponse:
    return TaskResponse(**task.to_dict())


def _plain(value):
    """Enum members to their stored string value"""
    return getattr(value, "value", value)


@router.post("/", response_model=TaskResponse, status_code=201)
def create_task(
    task: TaskCreate,
    store: RecordStore = Depends(get_record_store),
):
    """Create a task; it becomes searchable once its embedding is written."""
    record = Task(
        title=task.title,
        description=task.description,
        status=_plain(task.status),
        priority=_plain(task.priority),
        due_date=task.due_date,
        list_id=task.list_id,
        tags=task.tags,
    )
    return _to_response(store.put(RecordKind.TASK, record))


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(
    task_id: int,
    store: RecordStore = Depends(get_record_store),
):
    """Get a single task by ID."""
    task = store.get_by_id(RecordKind.TASK, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return _to_response(task)


@router.put("/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: int,
    update: TaskUpdate,
    store: RecordStore = Depends(get_record_store),
):
    """Update a task. Only provided fields are changed."""
    task = store.get_by_id(RecordKind.TASK, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")

    for key, value in update.model_dump(exclude_unset=True).items():
        setattr(task, key, _plain(value))

    try:
        return _to_response(store.put(RecordKind.TASK, task))
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="Task not found")


@router.delete("/{task_id}", status_code=204)
def delete_task(
    task_id: int,
    store: RecordStore = Depends(get_record_store),
):
    """Delete a task."""
    if not store.delete(RecordKind.TASK, task_id):
        raise HTTPException(status_code=404, detail="Task not found")


@router.post("/{task_id}/reindex", response_model=ReindexResponse)
def reindex_task(
    task_id: int,
    indexer: EmbeddingIndexer = Depends(get_indexer),
):
    """Recompute a task's embedding from its current text."""
    try:
        indexed = indexer.reindex(RecordKind.TASK, task_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="Task not found")
    except EmbeddingError as e:
        raise HTTPException(status_code=503, detail=f"Embedding unavailable: {e}")
    return ReindexResponse(id=task_id, indexed=indexed)
