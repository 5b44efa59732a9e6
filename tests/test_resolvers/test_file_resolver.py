"""Tests for FileReferenceResolver."""

from collections.abc import Callable
from pathlib import Path

import pytest

from mediapub.errors import ResolutionError
from mediapub.resolvers import DEFAULT_MIME_TYPE, FileReferenceResolver, ReferenceResolver


def test_satisfies_protocol() -> None:
    assert isinstance(FileReferenceResolver(), ReferenceResolver)


def test_resolve_and_read_path(tmp_path: Path, jpeg_factory: Callable[..., bytes]) -> None:
    data = jpeg_factory()
    path = tmp_path / "holiday.jpg"
    path.write_bytes(data)

    resolver = FileReferenceResolver()
    item = resolver.resolve(str(path))
    assert item.display_name == "holiday.jpg"
    assert item.mime_type == "image/jpeg"
    assert item.category == "image"
    assert resolver.read(item).data == data


def test_resolve_file_uri(tmp_path: Path) -> None:
    path = tmp_path / "my clip.mp4"
    path.write_bytes(b"video")

    item = FileReferenceResolver().resolve(path.as_uri())
    assert item.display_name == "my clip.mp4"
    assert item.mime_type == "video/mp4"
    assert item.reference == path.as_uri()


def test_relative_reference_uses_base_dir(tmp_path: Path) -> None:
    (tmp_path / "a.png").write_bytes(b"png-ish")
    item = FileReferenceResolver(base_dir=tmp_path).resolve("a.png")
    assert item.mime_type == "image/png"


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ResolutionError, match="not a readable file") as exc_info:
        FileReferenceResolver().resolve(str(tmp_path / "gone.jpg"))
    assert exc_info.value.reference.endswith("gone.jpg")


def test_directory_is_not_a_file(tmp_path: Path) -> None:
    with pytest.raises(ResolutionError):
        FileReferenceResolver().resolve(str(tmp_path))


def test_extensionless_image_is_sniffed(tmp_path: Path, png_factory: Callable[..., bytes]) -> None:
    path = tmp_path / "snapshot"
    path.write_bytes(png_factory())
    assert FileReferenceResolver().resolve(str(path)).mime_type == "image/png"


def test_unknown_content_falls_back_to_octet_stream(tmp_path: Path) -> None:
    path = tmp_path / "notes"
    path.write_bytes(b"just text")
    item = FileReferenceResolver().resolve(str(path))
    assert item.mime_type == DEFAULT_MIME_TYPE
    assert item.category == "unsupported"


@pytest.mark.parametrize(
    "reference",
    ["", "https://example.com/a.jpg", "content://media/external/images/1", "file://remote-host/a.jpg"],
)
def test_unsupported_references(reference: str) -> None:
    with pytest.raises(ResolutionError):
        FileReferenceResolver().resolve(reference)


def test_read_after_file_removed(tmp_path: Path) -> None:
    path = tmp_path / "photo.jpg"
    path.write_bytes(b"x")
    resolver = FileReferenceResolver()
    item = resolver.resolve(str(path))
    path.unlink()
    with pytest.raises(ResolutionError):
        resolver.read(item)
