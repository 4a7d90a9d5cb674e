"""
Store adapters.

Provides:
- InMemoryStore: dictionary-backed local store
- InMemoryRemoteStore: in-memory stand-in for a cloud store
- JsonFileStore: local store persisted as a JSON document
"""

from .file import JsonFileStore
from .memory import InMemoryRemoteStore, InMemoryStore

__all__ = [
    "InMemoryStore",
    "InMemoryRemoteStore",
    "JsonFileStore",
]
