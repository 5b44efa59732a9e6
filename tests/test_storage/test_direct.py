"""Tests for DirectSharedStorage."""

from pathlib import Path

import pytest

import mediapub.storage._direct as direct_module
from mediapub.storage import DirectSharedStorage


def _pending_entry(store: DirectSharedStorage, data: bytes = b"bytes", name: str = "clip.mp4"):
    entry = store.create_entry(name, "video/mp4", "Movies/Test")
    with store.open_writer(entry) as writer:
        writer.write(data)
    return entry


def test_creates_root_and_staging(tmp_path: Path) -> None:
    store = DirectSharedStorage(tmp_path / "shared")
    assert (tmp_path / "shared" / ".staging").is_dir()
    assert store.supports_pending is False


def test_pending_bytes_stay_out_of_public_folder(tmp_path: Path) -> None:
    store = DirectSharedStorage(tmp_path)
    entry = _pending_entry(store, b"partial")

    assert list((tmp_path / "Movies" / "Test").iterdir()) == []
    staged = list((tmp_path / ".staging").iterdir())
    assert len(staged) == 1
    assert staged[0].read_bytes() == b"partial"
    assert entry.file_name == "clip.mp4"
    assert "/" not in entry.id


def test_finalize_renames_into_public_folder(tmp_path: Path) -> None:
    store = DirectSharedStorage(tmp_path)
    committed = store.finalize(_pending_entry(store, b"done"))

    assert (tmp_path / "Movies" / "Test" / "clip.mp4").read_bytes() == b"done"
    assert list((tmp_path / ".staging").iterdir()) == []
    assert committed.id == "Movies/Test/clip.mp4"
    assert store.locate(committed) == str((tmp_path / "Movies" / "Test" / "clip.mp4").resolve())


def test_finalize_uses_os_replace_as_commit_point(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    store = DirectSharedStorage(tmp_path)
    entry = _pending_entry(store)

    def failing_replace(src: object, dst: object) -> None:
        msg = "cross-device link"
        raise OSError(msg)

    monkeypatch.setattr(direct_module.os, "replace", failing_replace)
    with pytest.raises(OSError, match="cross-device"):
        store.finalize(entry)
    monkeypatch.undo()

    assert store.list_entries() == ()
    assert store.delete_entry(entry) is True
    assert list((tmp_path / ".staging").iterdir()) == []


def test_finalize_avoids_file_created_externally_meanwhile(tmp_path: Path) -> None:
    store = DirectSharedStorage(tmp_path)
    entry = _pending_entry(store, b"ours")
    (tmp_path / "Movies" / "Test" / "clip.mp4").write_bytes(b"theirs")

    committed = store.finalize(entry)
    assert committed.id == "Movies/Test/clip (1).mp4"
    assert store.read_entry(committed) == b"ours"
    assert (tmp_path / "Movies" / "Test" / "clip.mp4").read_bytes() == b"theirs"


def test_list_discovers_files_written_by_other_apps(tmp_path: Path) -> None:
    folder = tmp_path / "Pictures" / "Camera"
    folder.mkdir(parents=True)
    (folder / "IMG_0001.jpg").write_bytes(b"jpeg")
    (folder / ".thumbnail").write_bytes(b"hidden")

    store = DirectSharedStorage(tmp_path)
    entries = store.list_entries()
    assert [entry.id for entry in entries] == ["Pictures/Camera/IMG_0001.jpg"]
    assert entries[0].mime_type == "image/jpeg"
    assert entries[0].category == "image"
    assert entries[0].size == 4


def test_visible_ids_cannot_escape_root(tmp_path: Path) -> None:
    root = tmp_path / "shared"
    store = DirectSharedStorage(root)
    (tmp_path / "outside.jpg").write_bytes(b"outside")

    assert store.has_entry("../outside.jpg") is False
    assert store.delete_entry("../outside.jpg") is False
    assert store.has_entry(".staging/anything.part") is False
    assert (tmp_path / "outside.jpg").exists()


def test_purge_pending_keeps_live_staging_files(tmp_path: Path) -> None:
    (tmp_path / ".staging").mkdir()
    (tmp_path / ".staging" / "crashed.part").write_bytes(b"stale")

    store = DirectSharedStorage(tmp_path)
    live = _pending_entry(store)

    assert store.purge_pending() == 1
    assert not (tmp_path / ".staging" / "crashed.part").exists()
    assert store.finalize(live).pending is False


def test_repeated_delete_of_pending_handle_spares_later_publish(tmp_path: Path) -> None:
    store = DirectSharedStorage(tmp_path)
    abandoned = _pending_entry(store, b"abandoned")
    assert store.delete_entry(abandoned) is True

    other = store.finalize(_pending_entry(store, b"someone else"))
    assert other.file_name == abandoned.file_name

    assert store.delete_entry(abandoned) is False
    assert store.delete_entry(abandoned.id) is False
    assert store.read_entry(other) == b"someone else"


def test_ids_outside_collections_are_not_addressable(tmp_path: Path) -> None:
    store = DirectSharedStorage(tmp_path)
    (tmp_path / "notes.txt").write_bytes(b"keep")
    assert store.has_entry("notes.txt") is False
    assert store.delete_entry("notes.txt") is False
    assert (tmp_path / "notes.txt").exists()
