"""
TaskFlow FastAPI Backend

Main entry point for the API server that exposes task/note storage and
natural language hybrid search.

Architecture:
- FastAPI handles HTTP routing and request/response validation
- Pydantic schemas ensure type safety
- taskflow.search handles classification, filtering and ranking
- Database provides persistence via SQLite

Run with:
    uvicorn backend.main:app --reload --port 8000

Or:
    python -m backend.main
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.routers import (
    tasks_router,
    notes_router,
    search_router,
)
from backend.dependencies import get_database, get_config
from taskflow.errors import StoreError

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Runs startup and shutdown tasks:
    - Startup: Verify database connection
    - Shutdown: Clean up resources
    """
    # Startup
    try:
        db = get_database()
        config = get_config()
        logger.info(f"Database connected: {db.db_path}")
        logger.info(f"Config loaded from: {config.config_dir}")
    except FileNotFoundError as e:
        logger.error(str(e))
        logger.error("Run 'python scripts/init_db.py' to create the database.")
        # Allow app to start but endpoints will fail

    yield

    logger.info("Shutting down...")


# Create FastAPI app
app = FastAPI(
    title="TaskFlow Search API",
    description="""
    Natural language search over personal tasks and notes.

    ## Features

    - **Tasks / Notes**: Create, update and delete records; embeddings refresh on write
    - **Search**: Free-form queries mixing exact filters with semantic similarity

    ## Query Examples

    - "high priority tasks"
    - "notes about the kitchen renovation"
    - "high-priority tasks about Apollo due in the last 5 days"
    """,
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",  # Vite dev server
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(tasks_router)
app.include_router(notes_router)
app.include_router(search_router)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"Store error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": f"Storage error: {exc}"})


@app.get("/")
async def root():
    """API root - returns basic info and available endpoints."""
    return {
        "name": "TaskFlow Search API",
        "version": "0.1.0",
        "docs": "/docs",
        "endpoints": {
            "tasks": "/tasks",
            "notes": "/notes",
            "search": "/search",
        }
    }


@app.get("/health")
def health_check():
    """Health check endpoint for monitoring."""
    try:
        db = get_database()
        db.execute_one("SELECT 1")
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}


# Allow running directly with: python -m backend.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "backend.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
