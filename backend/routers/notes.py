"""
Notes management API endpoints.

Writes go through the RecordStore, which re-indexes a note's embedding
whenever its title or content changes.
"""

from fastapi import APIRouter, Depends, HTTPException

from backend.dependencies import get_indexer, get_record_store
from backend.schemas import NoteCreate, NoteResponse, NoteUpdate, ReindexResponse
from taskflow.core.models import Note, RecordKind
from taskflow.core.record_store import RecordStore
from taskflow.errors import EmbeddingError, RecordNotFoundError
from taskflow.search.indexer import EmbeddingIndexer

router = APIRouter(prefix="/notes", tags=["notes"])


@router.post("/", response_model=NoteResponse, status_code=201)
def create_note(
    note: NoteCreate,
    store: RecordStore = Depends(get_record_store),
):
    """Create a new note."""
    record = Note(
        title=note.title,
        content=note.content,
        list_id=note.list_id,
        tags=note.tags,
    )
    return NoteResponse(**store.put(RecordKind.NOTE, record).to_dict())


@router.get("/{note_id}", response_model=NoteResponse)
def get_note(
    note_id: int,
    store: RecordStore = Depends(get_record_store),
):
    """Get a single note by ID."""
    note = store.get_by_id(RecordKind.NOTE, note_id)
    if note is None:
        raise HTTPException(status_code=404, detail="Note not found")
    return NoteResponse(**note.to_dict())


@router.put("/{note_id}", response_model=NoteResponse)
def update_note(
    note_id: int,
    update: NoteUpdate,
    store: RecordStore = Depends(get_record_store),
):
    """Update a note. Only provided fields are changed."""
    note = store.get_by_id(RecordKind.NOTE, note_id)
    if note is None:
        raise HTTPException(status_code=404, detail="Note not found")

    for key, value in update.model_dump(exclude_unset=True).items():
        setattr(note, key, value)

    try:
        return NoteResponse(**store.put(RecordKind.NOTE, note).to_dict())
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="Note not found")


@router.delete("/{note_id}", status_code=204)
def delete_note(
    note_id: int,
    store: RecordStore = Depends(get_record_store),
):
    """Delete a note."""
    if not store.delete(RecordKind.NOTE, note_id):
        raise HTTPException(status_code=404, detail="Note not found")


@router.post("/{note_id}/reindex", response_model=ReindexResponse)
def reindex_note(
    note_id: int,
    indexer: EmbeddingIndexer = Depends(get_indexer),
):
    """Recompute a note's embedding from its current text."""
    try:
        indexed = indexer.reindex(RecordKind.NOTE, note_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="Note not found")
    except EmbeddingError as e:
        raise HTTPException(status_code=503, detail=f"Embedding unavailable: {e}")
    return ReindexResponse(id=note_id, indexed=indexed)
