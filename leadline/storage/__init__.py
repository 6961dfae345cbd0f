"""Storage backends."""

from leadline.storage.base import StorageBackend
from leadline.storage.memory import InMemoryStorage

__all__ = ["StorageBackend", "InMemoryStorage"]
