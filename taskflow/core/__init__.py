"""
Core module for TaskFlow
Contains database, configuration, record store and model definitions
"""

from .config import Config
from .database import Database
from .models import Task, Note, RecordKind, Priority, Status
from .record_store import RecordStore

__all__ = ['Config', 'Database', 'Task', 'Note', 'RecordKind', 'Priority', 'Status', 'RecordStore']
