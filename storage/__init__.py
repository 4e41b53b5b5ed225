"""
Storage Module
Media blob storage.
"""
from .media_store import BaseMediaStore, LocalMediaStore

__all__ = [
    "BaseMediaStore",
    "LocalMediaStore",
]
