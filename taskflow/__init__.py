"""
TaskFlow: natural-language hybrid search over personal tasks and notes.
"""

__version__ = "0.1.0"
