"""SharedStorage: protocol for shared-storage backends."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, BinaryIO, Protocol, runtime_checkable

from mediapub.types import classify_mime

if TYPE_CHECKING:
    from collections.abc import Iterable
    from contextlib import AbstractContextManager

    from mediapub.types import MediaCategory, StorageEntry

DEFAULT_DISPLAY_NAME = "unnamed_file"

# Public collections, named after the Android shared directories.
COLLECTIONS: dict[str, str] = {
    "image": "Pictures",
    "video": "Movies",
}


def utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def normalize_entry_id(entry_or_id: StorageEntry | str) -> str:
    """Normalize an entry selector into an entry ID string."""
    if isinstance(entry_or_id, str):
        return entry_or_id
    return entry_or_id.id


def collection_for(category: MediaCategory) -> str:
    """Return the public collection folder for a publishable category."""
    try:
        return COLLECTIONS[category]
    except KeyError:
        msg = f"No shared collection for category {category!r}."
        raise ValueError(msg) from None


def validate_subfolder(subfolder: str) -> str:
    """Return ``subfolder`` if it is a single safe path segment."""
    if not isinstance(subfolder, str):
        msg = "subfolder must be a string."
        raise TypeError(msg)
    stripped = subfolder.strip()
    if not stripped or stripped in (".", "..") or "/" in stripped or "\\" in stripped:
        msg = f"subfolder must be one non-empty path segment; got {subfolder!r}."
        raise ValueError(msg)
    return stripped


def destination_path(category: MediaCategory, subfolder: str) -> str:
    """Build the relative destination path, e.g. ``Pictures/AppExports``."""
    return f"{collection_for(category)}/{validate_subfolder(subfolder)}"


def validate_relative_path(relative_path: str) -> PurePosixPath:
    """Check that a relative destination path stays inside a storage root."""
    path = PurePosixPath(relative_path)
    if path.is_absolute() or not path.parts or any(part in ("", ".", "..") for part in path.parts):
        msg = f"relative_path must be a relative path without '.' or '..'; got {relative_path!r}."
        raise ValueError(msg)
    return path


def sanitize_display_name(display_name: str | None) -> str:
    """Reduce a display name to a bare, non-hidden file name."""
    if not display_name:
        return DEFAULT_DISPLAY_NAME
    name = display_name.replace("\\", "/").rsplit("/", 1)[-1].strip()
    name = name.lstrip(".")
    if not name:
        return DEFAULT_DISPLAY_NAME
    return name


def unique_file_name(name: str, taken: Iterable[str]) -> str:
    """Return ``name`` or the first free ``stem (n).suffix`` variant."""
    taken_set = set(taken)
    if name not in taken_set:
        return name
    path = PurePosixPath(name)
    suffix = "".join(path.suffixes[-1:])
    stem = name[: -len(suffix)] if suffix else name
    counter = 1
    while True:
        candidate = f"{stem} ({counter}){suffix}"
        if candidate not in taken_set:
            return candidate
        counter += 1


def entry_matches_filters(
    entry: StorageEntry,
    *,
    relative_path: str | None = None,
    category: MediaCategory | None = None,
    include_pending: bool = False,
) -> bool:
    """Return whether an entry matches list_entries filters."""
    if entry.pending and not include_pending:
        return False
    if relative_path is not None and entry.relative_path != relative_path:
        return False
    return category is None or entry.category == category


def sort_entries(entries: Iterable[StorageEntry]) -> tuple[StorageEntry, ...]:
    """Order entries by creation time, then ID."""
    return tuple(sorted(entries, key=lambda entry: (entry.created_at, entry.id)))


def require_publishable(display_name: str, mime_type: str) -> MediaCategory:
    """Return the category of ``mime_type`` or raise ValueError for unsupported kinds."""
    category = classify_mime(mime_type)
    if category == "unsupported":
        msg = f"Cannot store {display_name!r} with unsupported MIME type {mime_type!r}."
        raise ValueError(msg)
    return category


@runtime_checkable
class SharedStorage(Protocol):
    """Shared-storage backend protocol.

    Entries are created pending, written through ``open_writer`` and become
    visible to other applications only after ``finalize``. Backends without a
    native pending flag must still keep unfinished bytes out of the public
    location until finalize.
    """

    @property
    def supports_pending(self) -> bool:
        """Return whether the backend has a native pending/visible flag."""
        ...

    def create_entry(self, display_name: str, mime_type: str, relative_path: str) -> StorageEntry:
        """Create an empty pending entry. Raise EntryCreationError on refusal."""
        ...

    def open_writer(self, entry: StorageEntry) -> AbstractContextManager[BinaryIO]:
        """Open a writable binary stream into a pending entry."""
        ...

    def finalize(self, entry: StorageEntry) -> StorageEntry:
        """Make a fully written entry visible and return its updated handle."""
        ...

    def delete_entry(self, entry_or_id: StorageEntry | str) -> bool:
        """Delete an entry, pending or visible. Return ``True`` when something was removed."""
        ...

    def has_entry(self, entry_or_id: StorageEntry | str) -> bool:
        """Check whether a visible entry exists."""
        ...

    def read_entry(self, entry_or_id: StorageEntry | str) -> bytes:
        """Read a visible entry's bytes."""
        ...

    def locate(self, entry: StorageEntry) -> str:
        """Return a location string a consumer can open."""
        ...

    def list_entries(
        self,
        *,
        relative_path: str | None = None,
        category: MediaCategory | None = None,
        include_pending: bool = False,
    ) -> tuple[StorageEntry, ...]:
        """List entries, visible only unless ``include_pending`` is set."""
        ...

    def purge_pending(self) -> int:
        """Remove pending leftovers not owned by this instance. Return the count removed."""
        ...
