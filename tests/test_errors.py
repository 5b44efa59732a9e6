"""Tests for mediapub.errors."""

from mediapub.errors import (
    BatchCancelledError,
    BatchSizeError,
    ConfigError,
    EntryCreationError,
    EntryNotFoundError,
    ItemError,
    MediapubError,
    ResolutionError,
    TransferError,
    UnsupportedMediaKindError,
)


def test_mediapub_error_is_exception() -> None:
    assert issubclass(MediapubError, Exception)


def test_per_item_errors_share_a_base() -> None:
    for error_type in (
        ResolutionError,
        UnsupportedMediaKindError,
        EntryCreationError,
        TransferError,
        BatchCancelledError,
    ):
        assert issubclass(error_type, ItemError)
        assert issubclass(error_type, MediapubError)


def test_batch_level_errors_are_not_item_errors() -> None:
    assert not issubclass(BatchSizeError, ItemError)
    assert not issubclass(ConfigError, ItemError)
    assert not issubclass(EntryNotFoundError, ItemError)


def test_resolution_error_carries_attributes() -> None:
    err = ResolutionError("file:///missing.jpg", "no such file")
    assert err.reference == "file:///missing.jpg"
    assert err.reason == "no such file"
    assert "missing.jpg" in str(err)


def test_unsupported_media_kind_message() -> None:
    err = UnsupportedMediaKindError("application/pdf")
    assert err.mime_type == "application/pdf"
    assert "application/pdf" in str(err)


def test_transfer_error_carries_entry_id() -> None:
    err = TransferError("abc123", "disk full")
    assert err.entry_id == "abc123"
    assert "abc123" in str(err)
    assert "disk full" in str(err)


def test_entry_creation_error_carries_display_name() -> None:
    err = EntryCreationError("photo.jpg", "read-only volume")
    assert err.display_name == "photo.jpg"
    assert "read-only volume" in str(err)


def test_batch_size_error_carries_limits() -> None:
    err = BatchSizeError(7, 5)
    assert (err.size, err.limit) == (7, 5)
    assert "7" in str(err)
    assert "5" in str(err)


def test_entry_not_found_carries_id() -> None:
    err = EntryNotFoundError("xyz")
    assert err.entry_id == "xyz"
