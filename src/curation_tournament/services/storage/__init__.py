from .base import SessionStore, StoredSession
from .db_store import DBSessionStore
from .memory_store import InMemorySessionStore

__all__ = ["DBSessionStore", "InMemorySessionStore", "SessionStore", "StoredSession"]
