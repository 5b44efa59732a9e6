"""Publish a mixed selection and hand the results to a share sink."""

import json
import tempfile
from pathlib import Path

from mediapub import (
    InMemoryResolver,
    ManifestShareSink,
    PassthroughCompressor,
    PublishConfig,
    SharedStoragePublisher,
    SharePipeline,
    open_shared_storage,
)

resolver = InMemoryResolver()
references = [
    resolver.add(b"image bytes", display_name="cover.jpg", mime_type="image/jpeg"),
    resolver.add(b"%PDF-1.7", display_name="notes.pdf", mime_type="application/pdf"),
    resolver.add(b"video bytes", display_name="trailer.mp4", mime_type="video/mp4"),
]

with tempfile.TemporaryDirectory() as tmpdir:
    root = Path(tmpdir)
    sink = ManifestShareSink(root / "outbox")
    pipeline = SharePipeline(
        resolver=resolver,
        compressor=PassthroughCompressor(),
        publisher=SharedStoragePublisher(open_shared_storage(root / "shared")),
        config=PublishConfig(subfolder="Shared"),
        sink=sink,
        target_package="com.example.viewer",
    )
    report = pipeline.run(references)

    # The PDF is dropped; the other two keep their input order.
    for outcome in report.outcomes:
        status = outcome.published.relative_path if outcome.published else f"dropped ({outcome.error})"
        print(f"#{outcome.index}: {status}")

    manifest = next(sink.directory.glob("share-*.json"))
    payload = json.loads(manifest.read_text(encoding="utf-8"))
    print(f"\nmanifest mime_hint={payload['mime_hint']!r}, items={len(payload['items'])}")
