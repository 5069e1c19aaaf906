"""Content store boundary and the in-memory implementation."""

from kurral_core.store.base import ContentStore, PostNotFoundError
from kurral_core.store.memory import InMemoryContentStore

__all__ = ["ContentStore", "InMemoryContentStore", "PostNotFoundError"]
