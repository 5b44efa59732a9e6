"""SharedStorage backends: indexed, direct, and in-memory."""

from mediapub.storage._detect import detect_backend, open_shared_storage
from mediapub.storage._direct import DirectSharedStorage
from mediapub.storage._indexed import IndexedSharedStorage
from mediapub.storage._memory import InMemorySharedStorage
from mediapub.storage._store import SharedStorage, collection_for, destination_path

__all__ = [
    "DirectSharedStorage",
    "InMemorySharedStorage",
    "IndexedSharedStorage",
    "SharedStorage",
    "collection_for",
    "destination_path",
    "detect_backend",
    "open_shared_storage",
]
