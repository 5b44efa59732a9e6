"""Core data types: InputItem, MediaBlob, StorageEntry, PublishRecord, PublishedMedia, BatchReport."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from mediapub.errors import MediapubError

MediaCategory = Literal["image", "video", "unsupported"]
PUBLISHABLE_CATEGORIES = frozenset({"image", "video"})


def classify_mime(mime_type: str | None) -> MediaCategory:
    """Classify a MIME type into image, video, or unsupported."""
    if not mime_type:
        return "unsupported"
    essence = mime_type.split(";", 1)[0].strip().lower()
    major, sep, minor = essence.partition("/")
    if not sep or not minor:
        return "unsupported"
    if major == "image":
        return "image"
    if major == "video":
        return "video"
    return "unsupported"


@dataclass(frozen=True, slots=True)
class InputItem:
    """A resolved user selection: opaque reference plus name and MIME type."""

    reference: str
    display_name: str
    mime_type: str

    @property
    def category(self) -> MediaCategory:
        """Return the MIME category of this item."""
        return classify_mime(self.mime_type)


@dataclass(frozen=True, slots=True)
class MediaBlob:
    """Media bytes owned by one pipeline stage at a time."""

    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        """Return the byte length."""
        return len(self.data)

    @property
    def category(self) -> MediaCategory:
        """Return the MIME category of the payload."""
        return classify_mime(self.mime_type)

    def open(self) -> io.BytesIO:
        """Return a fresh readable stream over the bytes."""
        return io.BytesIO(self.data)


@dataclass(frozen=True, slots=True)
class StorageEntry:
    """One entry in shared storage, as seen by its backend."""

    id: str
    display_name: str
    mime_type: str
    category: MediaCategory
    relative_path: str
    file_name: str
    pending: bool
    size: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(slots=True)
class PublishRecord:
    """Publisher-side state of one entry between creation and commit."""

    entry: StorageEntry
    category: MediaCategory
    pending: bool = True

    def mark_visible(self) -> None:
        """Flip the pending flag. Allowed exactly once."""
        if not self.pending:
            msg = f"Entry {self.entry.id} is already visible."
            raise RuntimeError(msg)
        self.pending = False


@dataclass(frozen=True, slots=True)
class PublishedMedia:
    """Stable reference to a visible entry, handed to share consumers."""

    id: str
    display_name: str
    mime_type: str
    category: MediaCategory
    relative_path: str
    location: str
    size: int
    sha256: str


@dataclass(frozen=True, slots=True)
class ItemOutcome:
    """Result of processing one input reference."""

    index: int
    reference: str
    published: PublishedMedia | None = None
    error: MediapubError | None = None
    original_size: int | None = None
    compressed_size: int | None = None

    @property
    def ok(self) -> bool:
        """Return whether the item was published."""
        return self.published is not None


@dataclass(frozen=True, slots=True)
class BatchReport:
    """Per-item outcomes of one batch, in input order."""

    outcomes: tuple[ItemOutcome, ...] = ()

    def __post_init__(self) -> None:
        """Normalize outcomes container to tuple."""
        object.__setattr__(self, "outcomes", tuple(self.outcomes))

    @property
    def published(self) -> list[PublishedMedia]:
        """Return successful references, preserving input order."""
        return [outcome.published for outcome in self.outcomes if outcome.published is not None]

    @property
    def failures(self) -> tuple[ItemOutcome, ...]:
        """Return the outcomes of dropped items."""
        return tuple(outcome for outcome in self.outcomes if not outcome.ok)

    @property
    def comparisons(self) -> tuple[tuple[PublishedMedia, int, int], ...]:
        """Return ``(published, original_size, compressed_size)`` for successful items."""
        return tuple(
            (outcome.published, outcome.original_size or 0, outcome.compressed_size or 0)
            for outcome in self.outcomes
            if outcome.published is not None
        )
