"""Basic usage: compress a few images and publish them into shared storage."""

import io
import tempfile
from pathlib import Path

from PIL import Image

from mediapub import (
    FileReferenceResolver,
    PillowCompressor,
    PublishConfig,
    SharedStoragePublisher,
    open_shared_storage,
    publish_batch,
)

with tempfile.TemporaryDirectory() as tmpdir:
    workdir = Path(tmpdir)

    # A few source images, as a gallery picker would hand them over.
    references = []
    for index, color in enumerate([(220, 40, 40), (40, 160, 60), (30, 60, 200)]):
        buf = io.BytesIO()
        noise = Image.effect_noise((320, 240), 48).convert("RGB")
        Image.blend(Image.new("RGB", (320, 240), color), noise, 0.5).save(buf, format="JPEG", quality=95)
        path = workdir / f"IMG_{index:04d}.jpg"
        path.write_bytes(buf.getvalue())
        references.append(str(path))
        print(f"source {path.name}: {len(buf.getvalue())} bytes, tint {color}")

    # A fresh root gets the indexed backend (native pending flag).
    storage = open_shared_storage(workdir / "shared")
    print(f"\nbackend: {type(storage).__name__}")

    report = publish_batch(
        references,
        resolver=FileReferenceResolver(),
        compressor=PillowCompressor(),
        publisher=SharedStoragePublisher(storage),
        config=PublishConfig(subfolder="AppExports", quality=50),
    )

    # Results come back in input order, with before/after sizes.
    for published, original_size, compressed_size in report.comparisons:
        print(f"{published.relative_path}/{Path(published.location).name}: {original_size} -> {compressed_size} bytes")

    visible = storage.list_entries(relative_path="Pictures/AppExports")
    print(f"\nvisible entries: {len(visible)}, failures: {len(report.failures)}")
