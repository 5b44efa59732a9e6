"""IndexedSharedStorage: shared storage with an on-disk index and a native pending flag."""

from __future__ import annotations

import json
import os
import threading
import uuid
from dataclasses import replace
from datetime import datetime
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
from mediapub.types import PUBLISHABLE_CATEGORIES, StorageEntry

if TYPE_CHECKING:
    from mediapub.types import MediaCategory

INDEX_DIR = ".index"
_META_SUFFIX = ".json"
_PENDING_PREFIX = ".pending-"


def _is_plain_name(name: str) -> bool:
    """Return whether ``name`` is a single visible path segment."""
    return bool(name) and not name.startswith(".") and "/" not in name and "\\" not in name


def _unlink(path: Path) -> bool:
    """Remove a file; return ``False`` when it was already gone."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


class IndexedSharedStorage:
    """Shared storage modelled on a media index with ``is_pending`` rows.

    Payloads live under ``<root>/<collection>/<subfolder>/<name>``. Each entry
    has a metadata file ``<root>/.index/<id>.json``; other applications list
    the index and only see entries whose metadata says ``pending: false``.
    While pending, bytes are written to a hidden ``.pending-<id>-<name>`` file
    next to the final location.
    """

    def __init__(self, root: str | Path) -> None:
        """Initialize with a root directory, creating it and its index if needed."""
        self._root = Path(root)
        self._index = self._root / INDEX_DIR
        self._index.mkdir(parents=True, exist_ok=True)
        self._entries: dict[str, StorageEntry] = {}
        self._owned: set[str] = set()
        self._committing: dict[str, str] = {}
        self._lock = threading.Lock()
        self._load_entries()

    @property
    def root(self) -> Path:
        """Return the root directory path."""
        return self._root

    @property
    def supports_pending(self) -> bool:
        """Return ``True``: visibility is driven by the index's pending flag."""
        return True

    def _meta_path(self, entry_id: str) -> Path | None:
        """Resolve the metadata path for an entry ID and keep it inside the index."""
        index = self._index.resolve()
        candidate = (self._index / f"{entry_id}{_META_SUFFIX}").resolve()
        try:
            candidate.relative_to(index)
        except ValueError:
            return None
        return candidate

    def _folder(self, relative_path: str) -> Path:
        """Return the directory for a relative destination path."""
        return self._root.joinpath(*validate_relative_path(relative_path).parts)

    def _pending_path(self, entry: StorageEntry) -> Path:
        """Return the hidden path used while an entry is pending."""
        return self._folder(entry.relative_path) / f"{_PENDING_PREFIX}{entry.id}-{entry.file_name}"

    def _final_path(self, entry: StorageEntry) -> Path:
        """Return the public path of an entry."""
        return self._folder(entry.relative_path) / entry.file_name

    def _entry_to_payload(self, entry: StorageEntry, *, commit_name: str | None = None) -> dict[str, object]:
        """Serialize a StorageEntry for its metadata file.

        ``commit_name`` records the public name a pending payload is about to be
        renamed to, so recovery can find it if the flag flip never happens.
        """
        payload: dict[str, object] = {
            "id": entry.id,
            "display_name": entry.display_name,
            "mime_type": entry.mime_type,
            "category": entry.category,
            "relative_path": entry.relative_path,
            "file_name": entry.file_name,
            "pending": entry.pending,
            "size": entry.size,
            "created_at": entry.created_at.isoformat(),
        }
        if commit_name is not None:
            payload["commit_name"] = commit_name
        return payload

    def _entry_from_payload(self, payload: object, *, entry_id: str) -> StorageEntry | None:
        """Deserialize one metadata payload, or return ``None`` when malformed."""
        if not isinstance(payload, dict):
            return None
        data = {str(key): value for key, value in payload.items()}

        str_fields = ("id", "display_name", "mime_type", "category", "relative_path", "file_name")
        if any(not isinstance(data.get(name), str) for name in str_fields):
            return None
        if data["id"] != entry_id or data["category"] not in PUBLISHABLE_CATEGORIES:
            return None
        pending = data.get("pending")
        size = data.get("size")
        if not isinstance(pending, bool) or not isinstance(size, int) or isinstance(size, bool):
            return None
        created_at_raw = data.get("created_at")
        if not isinstance(created_at_raw, str):
            return None
        try:
            created_at = datetime.fromisoformat(created_at_raw)
            validate_relative_path(str(data["relative_path"]))
        except ValueError:
            return None

        return StorageEntry(
            id=entry_id,
            display_name=str(data["display_name"]),
            mime_type=str(data["mime_type"]),
            category=data["category"],  # type: ignore[arg-type]
            relative_path=str(data["relative_path"]),
            file_name=str(data["file_name"]),
            pending=pending,
            size=size,
            created_at=created_at,
        )

    def _write_entry(self, entry: StorageEntry, *, commit_name: str | None = None) -> None:
        """Atomically replace the metadata file of an entry."""
        meta_path = self._meta_path(entry.id)
        if meta_path is None:
            msg = f"Entry ID {entry.id!r} resolves outside the index."
            raise ValueError(msg)
        tmp_path = meta_path.with_name(f"{meta_path.name}.tmp")
        payload = self._entry_to_payload(entry, commit_name=commit_name)
        tmp_path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp_path, meta_path)

    def _load_entries(self) -> None:
        """Load metadata files into the in-memory index."""
        for meta_path in self._index.glob(f"*{_META_SUFFIX}"):
            entry_id = meta_path.name[: -len(_META_SUFFIX)]
            try:
                raw = json.loads(meta_path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError):
                continue
            entry = self._entry_from_payload(raw, entry_id=entry_id)
            if entry is None:
                continue
            self._entries[entry_id] = entry
            commit_name = raw.get("commit_name")
            if entry.pending and isinstance(commit_name, str) and _is_plain_name(commit_name):
                self._committing[entry_id] = commit_name

    def _taken_names(self, folder: Path, relative_path: str) -> set[str]:
        """Collect names already used in a folder, on disk or reserved by entries."""
        taken = {entry.file_name for entry in self._entries.values() if entry.relative_path == relative_path}
        if folder.is_dir():
            taken.update(path.name for path in folder.iterdir())
        return taken

    def create_entry(self, display_name: str, mime_type: str, relative_path: str) -> StorageEntry:
        """Create an empty pending entry and its metadata."""
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
            self._entries[entry.id] = entry
            self._owned.add(entry.id)
            pending_path = self._pending_path(entry)
            try:
                pending_path.open("xb").close()
                self._write_entry(entry)
            except OSError as exc:
                self._entries.pop(entry.id, None)
                self._owned.discard(entry.id)
                pending_path.unlink(missing_ok=True)
                raise EntryCreationError(display_name, str(exc)) from exc
        return entry

    def open_writer(self, entry: StorageEntry) -> BinaryIO:
        """Open the hidden pending file of an entry for writing."""
        current = self._entries.get(entry.id)
        if current is None or not current.pending:
            msg = f"Entry {entry.id} is not pending."
            raise OSError(msg)
        return self._pending_path(current).open("wb")

    def finalize(self, entry: StorageEntry) -> StorageEntry:
        """Move the payload into place, then clear the pending flag in the index."""
        with self._lock:
            current = self._entries.get(entry.id)
            if current is None or not current.pending:
                msg = f"Entry {entry.id} is not pending."
                raise OSError(msg)
            folder = self._folder(current.relative_path)
            file_name = current.file_name
            if (folder / file_name).exists():
                file_name = unique_file_name(file_name, self._taken_names(folder, current.relative_path))

            pending_path = self._pending_path(current)
            final_path = folder / file_name
            size = pending_path.stat().st_size
            # The target name is indexed before the rename so a crash before the flip stays recoverable.
            self._write_entry(current, commit_name=file_name)
            self._committing[entry.id] = file_name
            os.replace(pending_path, final_path)
            updated = replace(current, file_name=file_name, pending=False, size=size)
            self._entries[entry.id] = updated

        # Commit point: the index row flips to visible.
        self._write_entry(updated)
        with self._lock:
            self._committing.pop(entry.id, None)
            self._owned.discard(entry.id)
        return updated

    def delete_entry(self, entry_or_id: StorageEntry | str) -> bool:
        """Delete an entry's payload and metadata, pending or visible.

        A pending entry whose payload was already renamed to its public name
        (recorded as ``commit_name``) has that public file removed instead.
        """
        entry_id = normalize_entry_id(entry_or_id)
        deleted = False
        with self._lock:
            entry = self._entries.pop(entry_id, None)
            commit_name = self._committing.pop(entry_id, None)
            self._owned.discard(entry_id)

        if entry is not None:
            if not entry.pending:
                deleted = _unlink(self._final_path(entry))
            elif _unlink(self._pending_path(entry)):
                deleted = True
            elif commit_name is not None:
                deleted = _unlink(self._folder(entry.relative_path) / commit_name)

        meta_path = self._meta_path(entry_id)
        if meta_path is not None and _unlink(meta_path):
            deleted = True
        return deleted

    def has_entry(self, entry_or_id: StorageEntry | str) -> bool:
        """Check whether a visible entry exists."""
        entry = self._entries.get(normalize_entry_id(entry_or_id))
        return entry is not None and not entry.pending and self._final_path(entry).exists()

    def read_entry(self, entry_or_id: StorageEntry | str) -> bytes:
        """Read a visible entry's payload."""
        entry_id = normalize_entry_id(entry_or_id)
        entry = self._entries.get(entry_id)
        if entry is None or entry.pending:
            raise EntryNotFoundError(entry_id)
        try:
            return self._final_path(entry).read_bytes()
        except FileNotFoundError:
            raise EntryNotFoundError(entry_id) from None

    def locate(self, entry: StorageEntry) -> str:
        """Return the absolute public path of an entry."""
        current = self._entries.get(entry.id, entry)
        return str(self._final_path(current).resolve())

    def list_entries(
        self,
        *,
        relative_path: str | None = None,
        category: MediaCategory | None = None,
        include_pending: bool = False,
    ) -> tuple[StorageEntry, ...]:
        """List indexed entries, dropping rows whose visible payload has vanished."""
        with self._lock:
            stale_ids = [
                entry_id
                for entry_id, entry in self._entries.items()
                if not entry.pending and not self._final_path(entry).exists()
            ]
            for entry_id in stale_ids:
                self._entries.pop(entry_id, None)
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
        """Remove pending entries and orphaned pending files left by other processes."""
        with self._lock:
            stale = [entry for entry in self._entries.values() if entry.pending and entry.id not in self._owned]
        purged = sum(1 for entry in stale if self.delete_entry(entry.id))

        for collection in COLLECTIONS.values():
            base = self._root / collection
            if not base.is_dir():
                continue
            for path in base.rglob(f"{_PENDING_PREFIX}*"):
                entry_id = path.name[len(_PENDING_PREFIX) :].split("-", 1)[0]
                with self._lock:
                    if entry_id in self._entries:
                        continue
                    path.unlink(missing_ok=True)
                purged += 1
        return purged
