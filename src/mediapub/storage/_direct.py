"""DirectSharedStorage: public folders without a pending flag, committed by atomic rename."""

from __future__ import annotations

import mimetypes
import os
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from mediapub.errors import EntryCreationError, EntryNotFoundError
from mediapub.storage._store import (
    COLLECTIONS,
    entry_matches_filters,
    normalize_entry_id,
    require_publishable,
    sanitize_display_name,
    sort_entries,
    unique_file_name,
    utc_now,
    validate_relative_path,
)
from mediapub.types import StorageEntry, classify_mime

if TYPE_CHECKING:
    from mediapub.types import MediaCategory

STAGING_DIR = ".staging"
_PART_SUFFIX = ".part"


class DirectSharedStorage:
    """Shared storage for plain public folders that other applications scan directly.

    There is no pending flag: bytes are staged in ``<root>/.staging`` and
    ``os.replace`` moves them into ``<root>/<collection>/<subfolder>`` in one
    step. A pending entry has an opaque ID that only addresses its staging
    file; a visible entry's ID is its POSIX path relative to the root.
    """

    def __init__(self, root: str | Path) -> None:
        """Initialize with a root directory, creating it and the staging area if needed."""
        self._root = Path(root)
        self._staging = self._root / STAGING_DIR
        self._staging.mkdir(parents=True, exist_ok=True)
        self._pending: dict[str, StorageEntry] = {}
        self._staged: dict[str, Path] = {}
        self._lock = threading.Lock()

    @property
    def root(self) -> Path:
        """Return the root directory path."""
        return self._root

    @property
    def supports_pending(self) -> bool:
        """Return ``False``: visibility is reached by renaming into the public folder."""
        return False

    def _folder(self, relative_path: str) -> Path:
        """Return the directory for a relative destination path."""
        return self._root.joinpath(*validate_relative_path(relative_path).parts)

    def _visible_path(self, entry_id: str) -> Path | None:
        """Resolve a visible entry ID to its path, rejecting hidden or escaping paths."""
        try:
            relative = validate_relative_path(entry_id)
        except ValueError:
            return None
        if any(part.startswith(".") for part in relative.parts):
            return None
        if len(relative.parts) < 2 or relative.parts[0] not in COLLECTIONS.values():
            return None
        root = self._root.resolve()
        candidate = self._root.joinpath(*relative.parts).resolve()
        try:
            candidate.relative_to(root)
        except ValueError:
            return None
        return candidate

    def _taken_names(self, folder: Path, relative_path: str) -> set[str]:
        """Collect names used on disk or reserved by in-flight entries."""
        taken = {entry.file_name for entry in self._pending.values() if entry.relative_path == relative_path}
        if folder.is_dir():
            taken.update(path.name for path in folder.iterdir())
        return taken

    def _entry_from_path(self, path: Path) -> StorageEntry:
        """Build a visible StorageEntry from a file in a public folder."""
        relative = path.relative_to(self._root).as_posix()
        stat = path.stat()
        mime_type, _ = mimetypes.guess_type(path.name)
        mime_type = mime_type or "application/octet-stream"
        return StorageEntry(
            id=relative,
            display_name=path.name,
            mime_type=mime_type,
            category=classify_mime(mime_type),
            relative_path=path.parent.relative_to(self._root).as_posix(),
            file_name=path.name,
            pending=False,
            size=stat.st_size,
            created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )

    def create_entry(self, display_name: str, mime_type: str, relative_path: str) -> StorageEntry:
        """Reserve a public file name and create an empty staging file."""
        try:
            category = require_publishable(display_name, mime_type)
            folder = self._folder(relative_path)
        except ValueError as exc:
            raise EntryCreationError(display_name, str(exc)) from exc

        name = sanitize_display_name(display_name)
        with self._lock:
            try:
                folder.mkdir(parents=True, exist_ok=True)
                file_name = unique_file_name(name, self._taken_names(folder, relative_path))
            except OSError as exc:
                raise EntryCreationError(display_name, str(exc)) from exc

            entry = StorageEntry(
                id=uuid.uuid4().hex,
                display_name=display_name,
                mime_type=mime_type,
                category=category,
                relative_path=relative_path,
                file_name=file_name,
                pending=True,
                created_at=utc_now(),
            )
            staged = self._staging / f"{uuid.uuid4().hex}{_PART_SUFFIX}"
            try:
                staged.open("xb").close()
            except OSError as exc:
                raise EntryCreationError(display_name, str(exc)) from exc
            self._pending[entry.id] = entry
            self._staged[entry.id] = staged
        return entry

    def open_writer(self, entry: StorageEntry) -> BinaryIO:
        """Open the staging file of a pending entry for writing."""
        staged = self._staged.get(entry.id)
        if staged is None:
            msg = f"Entry {entry.id} is not pending."
            raise OSError(msg)
        return staged.open("wb")

    def finalize(self, entry: StorageEntry) -> StorageEntry:
        """Rename the staging file into the public folder."""
        with self._lock:
            current = self._pending.get(entry.id)
            staged = self._staged.get(entry.id)
            if current is None or staged is None:
                msg = f"Entry {entry.id} is not pending."
                raise OSError(msg)
            folder = self._folder(current.relative_path)
            file_name = current.file_name
            if (folder / file_name).exists():
                file_name = unique_file_name(file_name, self._taken_names(folder, current.relative_path))
            final_path = folder / file_name
            size = staged.stat().st_size

            # Commit point.
            os.replace(staged, final_path)
            del self._pending[entry.id]
            del self._staged[entry.id]
        return replace(
            current,
            id=f"{current.relative_path}/{file_name}",
            file_name=file_name,
            pending=False,
            size=size,
        )

    def delete_entry(self, entry_or_id: StorageEntry | str) -> bool:
        """Delete a staged or visible entry."""
        entry_id = normalize_entry_id(entry_or_id)
        with self._lock:
            self._pending.pop(entry_id, None)
            staged = self._staged.pop(entry_id, None)
        if staged is not None:
            try:
                staged.unlink()
            except FileNotFoundError:
                return False
            return True
        if isinstance(entry_or_id, StorageEntry) and entry_or_id.pending:
            # A pending handle never addresses a public file.
            return False

        path = self._visible_path(entry_id)
        if path is None:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def has_entry(self, entry_or_id: StorageEntry | str) -> bool:
        """Check whether a visible entry exists."""
        entry_id = normalize_entry_id(entry_or_id)
        if entry_id in self._pending:
            return False
        path = self._visible_path(entry_id)
        return path is not None and path.is_file()

    def read_entry(self, entry_or_id: StorageEntry | str) -> bytes:
        """Read a visible entry's bytes."""
        entry_id = normalize_entry_id(entry_or_id)
        if not self.has_entry(entry_id):
            raise EntryNotFoundError(entry_id)
        path = self._visible_path(entry_id)
        if path is None:
            raise EntryNotFoundError(entry_id)
        return path.read_bytes()

    def locate(self, entry: StorageEntry) -> str:
        """Return the absolute public path of an entry."""
        return str((self._folder(entry.relative_path) / entry.file_name).resolve())

    def list_entries(
        self,
        *,
        relative_path: str | None = None,
        category: MediaCategory | None = None,
        include_pending: bool = False,
    ) -> tuple[StorageEntry, ...]:
        """Scan the public folders, plus in-flight entries when ``include_pending`` is set."""
        entries: list[StorageEntry] = []
        for collection in COLLECTIONS.values():
            base = self._root / collection
            if not base.is_dir():
                continue
            for path in base.rglob("*"):
                relative_parts = path.relative_to(self._root).parts
                if any(part.startswith(".") for part in relative_parts) or not path.is_file():
                    continue
                entries.append(self._entry_from_path(path))
        if include_pending:
            with self._lock:
                entries.extend(self._pending.values())
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
        """Remove staging files not owned by this instance."""
        purged = 0
        for path in self._staging.glob(f"*{_PART_SUFFIX}"):
            with self._lock:
                if path in self._staged.values():
                    continue
                path.unlink(missing_ok=True)
            purged += 1
        return purged
