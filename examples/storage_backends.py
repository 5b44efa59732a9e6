"""SharedStorage backends, the two-phase publish protocol, and crash cleanup."""

import tempfile
from pathlib import Path

from mediapub import (
    DirectSharedStorage,
    IndexedSharedStorage,
    InMemorySharedStorage,
    SharedStoragePublisher,
    TransferError,
)
from mediapub.storage import detect_backend

# ---- InMemorySharedStorage ----
# Best for development and tests. Entries carry a pending flag.

memory = InMemorySharedStorage()
entry = memory.create_entry("photo.jpg", "image/jpeg", "Pictures/Demo")
with memory.open_writer(entry) as writer:
    writer.write(b"jpeg bytes")
print(f"[InMemory] pending entry visible? {memory.has_entry(entry)}")
committed = memory.finalize(entry)
print(f"  after finalize: visible={memory.has_entry(committed)}, location={memory.locate(committed)}")

with tempfile.TemporaryDirectory() as tmpdir:
    root = Path(tmpdir)

    # ---- IndexedSharedStorage ----
    # Pending bytes live in a hidden file; flipping the index entry publishes them.

    indexed = IndexedSharedStorage(root / "indexed")
    publisher = SharedStoragePublisher(indexed)
    published = publisher.publish("clip.mp4", "video/mp4", b"\x00" * 4096, "Demo")
    print(f"\n[Indexed] {published.relative_path}: {published.size} bytes, sha256={published.sha256[:16]}...")

    # ---- DirectSharedStorage ----
    # No pending flag: bytes are staged, then renamed into the public folder.

    direct = DirectSharedStorage(root / "direct")
    published = SharedStoragePublisher(direct).publish("photo.png", "image/png", b"png bytes", "Demo")
    print(f"\n[Direct] id={published.id}")
    print(f"  detect_backend() now reports: {detect_backend(direct.root)}")

    # ---- Rollback ----
    # A transfer that exceeds its deadline is deleted again; nothing stays behind.

    ticks = iter(range(100))
    slow = SharedStoragePublisher(indexed, chunk_size=8, transfer_timeout=1.0, clock=lambda: next(ticks))
    try:
        slow.publish("big.jpg", "image/jpeg", b"x" * 64, "Demo")
    except TransferError as exc:
        print(f"\n[Rollback] {exc}")
    print(f"  pending entries left: {len(indexed.list_entries(include_pending=True)) - len(indexed.list_entries())}")

    # ---- purge_pending ----
    # A crashed run leaves a pending entry; another instance cleans it up.

    crashed = IndexedSharedStorage(root / "indexed")
    leftover = crashed.create_entry("interrupted.jpg", "image/jpeg", "Pictures/Demo")
    survivor = IndexedSharedStorage(root / "indexed")
    print(f"\n[Purge] removed {survivor.purge_pending()} leftover entries (was {leftover.id[:8]}...)")
