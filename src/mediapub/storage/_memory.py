"""InMemorySharedStorage: dict-based shared storage for development and testing."""

from __future__ import annotations

import io
import threading
import uuid
from contextlib import contextmanager
from dataclasses import replace
from typing import TYPE_CHECKING

from mediapub.errors import EntryCreationError, EntryNotFoundError
from mediapub.storage._store import (
    entry_matches_filters,
    normalize_entry_id,
    require_publishable,
    sanitize_display_name,
    sort_entries,
    unique_file_name,
    utc_now,
    validate_relative_path,
)
from mediapub.types import StorageEntry

if TYPE_CHECKING:
    from collections.abc import Iterator
    from typing import BinaryIO

    from mediapub.types import MediaCategory


class InMemorySharedStorage:
    """In-memory shared storage with a native pending flag."""

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._entries: dict[str, StorageEntry] = {}
        self._data: dict[str, bytes] = {}
        self._lock = threading.Lock()

    @property
    def supports_pending(self) -> bool:
        """Return ``True``: entries carry a pending flag."""
        return True

    def create_entry(self, display_name: str, mime_type: str, relative_path: str) -> StorageEntry:
        """Create an empty pending entry."""
        try:
            category = require_publishable(display_name, mime_type)
            validate_relative_path(relative_path)
        except ValueError as exc:
            raise EntryCreationError(display_name, str(exc)) from exc

        name = sanitize_display_name(display_name)
        with self._lock:
            taken = [entry.file_name for entry in self._entries.values() if entry.relative_path == relative_path]
            entry = StorageEntry(
                id=uuid.uuid4().hex,
                display_name=display_name,
                mime_type=mime_type,
                category=category,
                relative_path=relative_path,
                file_name=unique_file_name(name, taken),
                pending=True,
                created_at=utc_now(),
            )
            self._entries[entry.id] = entry
            self._data[entry.id] = b""
        return entry

    @contextmanager
    def open_writer(self, entry: StorageEntry) -> Iterator[BinaryIO]:
        """Buffer writes and store them into the pending entry on close."""
        current = self._entries.get(entry.id)
        if current is None or not current.pending:
            msg = f"Entry {entry.id} is not pending."
            raise OSError(msg)
        buffer = io.BytesIO()
        yield buffer
        with self._lock:
            if entry.id not in self._entries:
                msg = f"Entry {entry.id} was deleted while being written."
                raise OSError(msg)
            self._data[entry.id] = buffer.getvalue()

    def finalize(self, entry: StorageEntry) -> StorageEntry:
        """Clear the pending flag."""
        with self._lock:
            current = self._entries.get(entry.id)
            if current is None:
                msg = f"Entry {entry.id} no longer exists."
                raise OSError(msg)
            updated = replace(current, pending=False, size=len(self._data[entry.id]))
            self._entries[entry.id] = updated
        return updated

    def delete_entry(self, entry_or_id: StorageEntry | str) -> bool:
        """Delete an entry by handle or ID."""
        entry_id = normalize_entry_id(entry_or_id)
        with self._lock:
            self._data.pop(entry_id, None)
            return self._entries.pop(entry_id, None) is not None

    def has_entry(self, entry_or_id: StorageEntry | str) -> bool:
        """Check whether a visible entry exists."""
        entry = self._entries.get(normalize_entry_id(entry_or_id))
        return entry is not None and not entry.pending

    def read_entry(self, entry_or_id: StorageEntry | str) -> bytes:
        """Return the bytes of a visible entry."""
        entry_id = normalize_entry_id(entry_or_id)
        if not self.has_entry(entry_id):
            raise EntryNotFoundError(entry_id)
        return self._data[entry_id]

    def locate(self, entry: StorageEntry) -> str:
        """Return a ``memory://`` location for the entry."""
        return f"memory://{entry.id}"

    def list_entries(
        self,
        *,
        relative_path: str | None = None,
        category: MediaCategory | None = None,
        include_pending: bool = False,
    ) -> tuple[StorageEntry, ...]:
        """List entries, optionally filtered by folder and category."""
        with self._lock:
            entries = tuple(self._entries.values())
        return sort_entries(
            entry
            for entry in entries
            if entry_matches_filters(
                entry,
                relative_path=relative_path,
                category=category,
                include_pending=include_pending,
            )
        )

    def purge_pending(self) -> int:
        """Return 0: an in-memory store has no leftovers from other processes."""
        return 0
