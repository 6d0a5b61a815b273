"""
Data persistence infrastructure for attempt records, sessions and results.
"""

from .json_store import JsonDocumentStore, JsonDirectoryStore

__all__ = [
    'JsonDocumentStore',
    'JsonDirectoryStore',
]
