"""
Natural language search endpoint.

Classifies the query and returns a ranked list of tasks or notes that
mixes exact filtering with embedding similarity. A failed search is an
HTTP error, never an empty result list.

The handler is a plain ``def``: classification, model loading and sqlite3
all block, so FastAPI runs it in its threadpool.
"""

from fastapi import APIRouter, Depends, HTTPException

from backend.dependencies import get_result_fuser
from backend.schemas import IntentSchema, SearchHit, SearchRequest, SearchResponse
from taskflow.core.models import RecordKind
from taskflow.errors import SearchUnavailable, StoreError
from taskflow.search.fuser import ResultFuser

router = APIRouter(prefix="/search", tags=["search"])

_KINDS = {"task": RecordKind.TASK, "note": RecordKind.NOTE}


@router.post("/", response_model=SearchResponse)
def search(
    request: SearchRequest,
    fuser: ResultFuser = Depends(get_result_fuser),
):
    """
    Search tasks or notes with a free-form query.

    Examples:
    - "high priority tasks due this week"        (structured)
    - "anything about the quarterly budget"      (semantic)
    - "high-priority tasks about Apollo due in the last 5 days" (hybrid)
    """
    try:
        outcome = fuser.search(request.query, now=request.now, kind=_KINDS[request.kind])
    except SearchUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Search failed: {e}")

    return SearchResponse(
        intent=IntentSchema(**outcome.intent.to_dict()),
        results=[SearchHit(**hit.to_dict()) for hit in outcome.results],
        total=len(outcome.results),
        dropped_filters=[str(e) for e in outcome.dropped_predicates],
    )
