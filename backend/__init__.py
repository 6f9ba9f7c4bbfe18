"""TaskFlow FastAPI backend."""
