"""SharedStoragePublisher: two-phase publication into shared storage."""

from __future__ import annotations

import hashlib
import io
import logging
import time
from typing import TYPE_CHECKING, BinaryIO

from mediapub.errors import EntryCreationError, TransferError, UnsupportedMediaKindError
from mediapub.storage._store import destination_path
from mediapub.types import PublishedMedia, PublishRecord, classify_mime

if TYPE_CHECKING:
    from collections.abc import Callable

    from mediapub.storage import SharedStorage
    from mediapub.types import StorageEntry

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


class _TransferTimeout(Exception):
    """Internal signal that the per-item deadline passed mid-transfer."""


class SharedStoragePublisher:
    """Publish byte sources into a SharedStorage backend.

    Every call runs open -> transfer -> commit. Any failure after the entry
    exists deletes it again, so callers observe either no entry or one fully
    written visible entry.
    """

    def __init__(
        self,
        storage: SharedStorage,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        transfer_timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize with a backend and transfer limits."""
        if chunk_size <= 0:
            msg = "chunk_size must be > 0."
            raise ValueError(msg)
        if transfer_timeout is not None and transfer_timeout <= 0:
            msg = "transfer_timeout must be > 0 or None."
            raise ValueError(msg)
        self._storage = storage
        self._chunk_size = chunk_size
        self._transfer_timeout = transfer_timeout
        self._clock = clock

    @property
    def storage(self) -> SharedStorage:
        """Return the storage backend."""
        return self._storage

    def publish(
        self,
        display_name: str,
        mime_type: str,
        source: bytes | BinaryIO,
        subfolder: str,
    ) -> PublishedMedia:
        """Write ``source`` into a new visible entry under ``subfolder``."""
        category = classify_mime(mime_type)
        if category == "unsupported":
            logger.warning("Unsupported mime type %r for %r", mime_type, display_name)
            raise UnsupportedMediaKindError(mime_type)

        try:
            relative_path = destination_path(category, subfolder)
        except (TypeError, ValueError) as exc:
            raise EntryCreationError(display_name, str(exc)) from exc

        try:
            entry = self._storage.create_entry(display_name, mime_type, relative_path)
        except EntryCreationError:
            logger.warning("Storage refused a new entry for %r", display_name)
            raise
        except OSError as exc:
            logger.warning("Storage refused a new entry for %r: %s", display_name, exc)
            raise EntryCreationError(display_name, str(exc)) from exc

        record = PublishRecord(entry=entry, category=category)
        logger.debug("Created pending entry %s in %s", entry.id, relative_path)

        stream = io.BytesIO(source) if isinstance(source, (bytes, bytearray, memoryview)) else source
        try:
            digest, size = self._transfer(entry, stream)
            committed = self._storage.finalize(entry)
        except (OSError, _TransferTimeout) as exc:
            reason = "transfer timed out" if isinstance(exc, _TransferTimeout) else str(exc)
            logger.warning("Transfer into %s failed: %s; rolling back", entry.id, reason)
            self.rollback(entry)
            raise TransferError(entry.id, reason) from exc
        except BaseException:
            # Interrupted (cancelled, Ctrl-C): never leave a partial entry behind.
            self.rollback(entry)
            raise

        record.entry = committed
        record.mark_visible()
        published = PublishedMedia(
            id=committed.id,
            display_name=committed.display_name,
            mime_type=committed.mime_type,
            category=category,
            relative_path=committed.relative_path,
            location=self._storage.locate(committed),
            size=size,
            sha256=digest,
        )
        logger.info("Published %r to %s (%d bytes)", display_name, published.location, size)
        return published

    def _transfer(self, entry: StorageEntry, stream: BinaryIO) -> tuple[str, int]:
        """Copy ``stream`` into the entry in chunks; return its SHA-256 and size."""
        deadline = None if self._transfer_timeout is None else self._clock() + self._transfer_timeout
        digest = hashlib.sha256()
        size = 0
        with self._storage.open_writer(entry) as writer:
            while True:
                if deadline is not None and self._clock() > deadline:
                    raise _TransferTimeout
                try:
                    chunk = stream.read(self._chunk_size)
                except ValueError as exc:
                    # Closed or detached source streams raise ValueError.
                    msg = f"source stream is unreadable: {exc}"
                    raise OSError(msg) from exc
                if not chunk:
                    break
                writer.write(chunk)
                digest.update(chunk)
                size += len(chunk)
        return digest.hexdigest(), size

    def rollback(self, entry: StorageEntry | str) -> bool:
        """Delete an entry, best effort. Safe to call more than once."""
        entry_id = entry if isinstance(entry, str) else entry.id
        try:
            deleted = self._storage.delete_entry(entry)
        except OSError as exc:
            logger.warning("Rollback of entry %s failed: %s", entry_id, exc)
            return False
        if deleted:
            logger.debug("Rolled back entry %s", entry_id)
        return deleted
