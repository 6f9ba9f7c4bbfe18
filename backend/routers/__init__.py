"""
API routers for the TaskFlow backend.

Each router handles a specific domain:
- tasks: Task CRUD and embedding refresh
- notes: Note CRUD and embedding refresh
- search: Natural language hybrid search
"""

from .tasks import router as tasks_router
from .notes import router as notes_router
from .search import router as search_router

__all__ = [
    'tasks_router',
    'notes_router',
    'search_router',
]
