"""
Database schema for TaskFlow
Tables for tasks and notes; each row carries its own embedding blob.
"""

import sqlite3
from pathlib import Path
from typing import Union


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    list_id INTEGER,
    title TEXT NOT NULL,
    description TEXT,
    status TEXT NOT NULL DEFAULT 'To Do'
        CHECK(status IN ('Backlog', 'To Do', 'In Progress', 'Review', 'Waiting', 'Done')),
    priority TEXT NOT NULL DEFAULT 'Medium'
        CHECK(priority IN ('Low', 'Medium', 'High')),
    due_date TEXT,
    created_at TEXT NOT NULL,
    tags TEXT,
    embedding BLOB
);

CREATE INDEX IF NOT EXISTS idx_tasks_priority ON tasks(priority);
CREATE INDEX IF NOT EXISTS idx_tasks_due_date ON tasks(due_date) WHERE due_date IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);

CREATE TABLE IF NOT EXISTS notes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    list_id INTEGER,
    title TEXT NOT NULL,
    content TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT,
    tags TEXT,
    embedding BLOB
);

CREATE INDEX IF NOT EXISTS idx_notes_updated_at ON notes(updated_at);
"""


def init_schema(db_path: Union[str, Path]) -> Path:
    """
    Create the database file (and parent directories) and apply the schema.

    Safe to call on an existing database; every statement is IF NOT EXISTS.
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    try:
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    finally:
        conn.close()
    return db_path
