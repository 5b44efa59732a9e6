"""Typed errors for mediapub."""


class MediapubError(Exception):
    """Base exception for all mediapub errors."""


class ConfigError(MediapubError):
    """Raised when a PublishConfig value is invalid."""


class ItemError(MediapubError):
    """Base for failures that drop a single item from a batch."""


class ResolutionError(ItemError):
    """Raised when an input reference cannot be read or its kind determined."""

    def __init__(self, reference: str, reason: str) -> None:
        """Initialize with the unresolved reference and a reason."""
        self.reference = reference
        self.reason = reason
        super().__init__(f"Cannot resolve {reference!r}: {reason}")


class UnsupportedMediaKindError(ItemError):
    """Raised when a MIME type is neither image nor video."""

    def __init__(self, mime_type: str) -> None:
        """Initialize with the rejected MIME type."""
        self.mime_type = mime_type
        super().__init__(f"Unsupported media kind: {mime_type!r}")


class EntryCreationError(ItemError):
    """Raised when a storage backend refuses to create a new entry."""

    def __init__(self, display_name: str, reason: str) -> None:
        """Initialize with the requested display name and a reason."""
        self.display_name = display_name
        self.reason = reason
        super().__init__(f"Cannot create storage entry for {display_name!r}: {reason}")


class TransferError(ItemError):
    """Raised when writing an entry fails; the entry has been rolled back."""

    def __init__(self, entry_id: str, reason: str) -> None:
        """Initialize with the rolled-back entry ID and a reason."""
        self.entry_id = entry_id
        self.reason = reason
        super().__init__(f"Transfer into entry {entry_id} failed: {reason}")


class BatchCancelledError(ItemError):
    """Raised for items that were never started because the batch was cancelled."""

    def __init__(self, reference: str) -> None:
        """Initialize with the skipped reference."""
        self.reference = reference
        super().__init__(f"Batch cancelled before {reference!r} was processed")


class EntryNotFoundError(MediapubError):
    """Raised when a storage entry does not exist or is not visible yet."""

    def __init__(self, entry_id: str) -> None:
        """Initialize with the missing entry's ID."""
        self.entry_id = entry_id
        super().__init__(f"Storage entry not found: {entry_id}")


class BatchSizeError(MediapubError):
    """Raised when a batch holds more references than the configured maximum."""

    def __init__(self, size: int, limit: int) -> None:
        """Initialize with the batch size and the configured limit."""
        self.size = size
        self.limit = limit
        super().__init__(f"Batch of {size} items exceeds the maximum of {limit}")
