"""Backend selection for a shared-storage root."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from mediapub.storage._direct import DirectSharedStorage
from mediapub.storage._indexed import INDEX_DIR, IndexedSharedStorage
from mediapub.storage._store import COLLECTIONS

logger = logging.getLogger(__name__)

BackendName = Literal["auto", "indexed", "direct"]
BACKEND_NAMES = frozenset({"auto", "indexed", "direct"})


def _has_unindexed_media(root: Path) -> bool:
    """Return whether a public collection folder already holds non-hidden content."""
    for collection in COLLECTIONS.values():
        base = root / collection
        if base.is_dir() and any(not path.name.startswith(".") for path in base.iterdir()):
            return True
    return False


def detect_backend(root: str | Path) -> Literal["indexed", "direct"]:
    """Pick the backend a root supports.

    A root that already carries an index, or is new or empty, gets the
    indexed backend. A root holding public media without an index is a
    plain public directory that other applications scan, so it gets the
    direct backend.
    """
    root = Path(root)
    if (root / INDEX_DIR).is_dir():
        return "indexed"
    if root.is_dir() and _has_unindexed_media(root):
        return "direct"
    return "indexed"


def open_shared_storage(
    root: str | Path,
    backend: BackendName = "auto",
) -> IndexedSharedStorage | DirectSharedStorage:
    """Open a shared-storage root with an explicit or detected backend."""
    if backend not in BACKEND_NAMES:
        msg = f"Unknown storage backend {backend!r}. Expected one of auto/indexed/direct."
        raise ValueError(msg)
    chosen = detect_backend(root) if backend == "auto" else backend
    logger.debug("Opening shared storage at %s with %s backend", root, chosen)
    if chosen == "indexed":
        return IndexedSharedStorage(root)
    return DirectSharedStorage(root)
