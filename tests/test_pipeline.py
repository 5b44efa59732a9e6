"""Tests for batch publishing and the share pipeline."""

import threading
import time
from collections.abc import Callable
from pathlib import Path

import pytest

from mediapub.compress import PassthroughCompressor, PillowCompressor
from mediapub.config import PublishConfig
from mediapub.errors import BatchCancelledError, BatchSizeError, ResolutionError, UnsupportedMediaKindError
from mediapub.pipeline import SharePipeline, publish_all, publish_batch
from mediapub.publisher import SharedStoragePublisher
from mediapub.resolvers import FileReferenceResolver, InMemoryResolver
from mediapub.share import CollectingShareSink
from mediapub.storage import IndexedSharedStorage, InMemorySharedStorage
from mediapub.types import InputItem, MediaBlob


class SlowResolver(InMemoryResolver):
    """Resolver whose earlier references take longer to read."""

    def __init__(self, delays: dict[str, float]) -> None:
        super().__init__()
        self.delays = delays

    def read(self, item: InputItem) -> MediaBlob:
        time.sleep(self.delays.get(item.display_name, 0))
        return super().read(item)


class CancellingResolver(InMemoryResolver):
    """Resolver that sets ``cancel`` as soon as the first item is resolved."""

    def __init__(self, cancel: threading.Event) -> None:
        super().__init__()
        self.cancel = cancel

    def resolve(self, reference: str) -> InputItem:
        self.cancel.set()
        return super().resolve(reference)


def _memory_setup(config: PublishConfig | None = None):
    storage = InMemorySharedStorage()
    kwargs = {
        "compressor": PassthroughCompressor(),
        "publisher": SharedStoragePublisher(storage),
        "config": config or PublishConfig(subfolder="AppExports"),
    }
    return storage, kwargs


def test_empty_batch_creates_nothing() -> None:
    storage, kwargs = _memory_setup()
    report = publish_batch([], resolver=InMemoryResolver(), **kwargs)
    assert report.outcomes == ()
    assert report.published == []
    assert storage.list_entries(include_pending=True) == ()


def test_failed_item_is_dropped_and_order_is_kept() -> None:
    storage, kwargs = _memory_setup()
    resolver = InMemoryResolver()
    first = resolver.add(b"A", display_name="a.jpg", mime_type="image/jpeg")
    broken = resolver.add(b"B", display_name="b.pdf", mime_type="application/pdf")
    last = resolver.add(b"C", display_name="c.mp4", mime_type="video/mp4")

    report = publish_batch([first, broken, last], resolver=resolver, **kwargs)

    assert [item.display_name for item in report.published] == ["a.jpg", "c.mp4"]
    assert [outcome.index for outcome in report.outcomes] == [0, 1, 2]
    assert len(report.failures) == 1
    assert report.failures[0].reference == broken
    assert isinstance(report.failures[0].error, UnsupportedMediaKindError)
    assert len(storage.list_entries(include_pending=True)) == 2


def test_unknown_reference_is_reported() -> None:
    _, kwargs = _memory_setup()
    report = publish_batch(["memory://missing"], resolver=InMemoryResolver(), **kwargs)
    assert report.published == []
    assert isinstance(report.outcomes[0].error, ResolutionError)
    assert report.outcomes[0].original_size is None


def test_order_follows_input_not_completion() -> None:
    _, kwargs = _memory_setup(PublishConfig(subfolder="AppExports", max_workers=3))
    resolver = SlowResolver({"0.jpg": 0.2, "1.jpg": 0.1, "2.jpg": 0.0})
    references = [resolver.add(b"x", display_name=f"{i}.jpg", mime_type="image/jpeg") for i in range(3)]

    published = publish_all(references, resolver=resolver, **kwargs)
    assert [item.display_name for item in published] == ["0.jpg", "1.jpg", "2.jpg"]


def test_batch_over_limit_is_rejected() -> None:
    storage, kwargs = _memory_setup(PublishConfig(subfolder="AppExports", max_batch_size=2))
    resolver = InMemoryResolver()
    references = [resolver.add(b"x", display_name=f"{i}.jpg", mime_type="image/jpeg") for i in range(3)]

    with pytest.raises(BatchSizeError, match="maximum of 2"):
        publish_batch(references, resolver=resolver, **kwargs)
    assert storage.list_entries(include_pending=True) == ()


def test_cancel_before_start_skips_everything() -> None:
    storage, kwargs = _memory_setup()
    resolver = InMemoryResolver()
    references = [resolver.add(b"x", display_name=f"{i}.jpg", mime_type="image/jpeg") for i in range(2)]
    cancel = threading.Event()
    cancel.set()

    report = publish_batch(references, resolver=resolver, cancel=cancel, **kwargs)
    assert report.published == []
    assert all(isinstance(outcome.error, BatchCancelledError) for outcome in report.outcomes)
    assert storage.list_entries(include_pending=True) == ()


def test_cancel_lets_running_item_finish() -> None:
    storage, kwargs = _memory_setup(PublishConfig(subfolder="AppExports", max_workers=1))
    cancel = threading.Event()
    resolver = CancellingResolver(cancel)
    references = [resolver.add(b"x", display_name=f"{i}.jpg", mime_type="image/jpeg") for i in range(3)]

    report = publish_batch(references, resolver=resolver, cancel=cancel, **kwargs)

    assert [item.display_name for item in report.published] == ["0.jpg"]
    assert [type(outcome.error) for outcome in report.failures] == [BatchCancelledError, BatchCancelledError]
    assert len(storage.list_entries()) == 1
    assert storage.list_entries(include_pending=True) == storage.list_entries()


def test_end_to_end_with_files(tmp_path: Path, jpeg_factory: Callable[..., bytes]) -> None:
    sources = tmp_path / "camera"
    sources.mkdir()
    references = []
    for seed in range(3):
        path = sources / f"IMG_{seed}.jpg"
        path.write_bytes(jpeg_factory((96, 72), seed=seed))
        references.append(str(path))

    storage = IndexedSharedStorage(tmp_path / "shared")
    report = publish_batch(
        references,
        resolver=FileReferenceResolver(),
        compressor=PillowCompressor(),
        publisher=SharedStoragePublisher(storage),
        config=PublishConfig(subfolder="AppExports", quality=50),
    )

    assert [item.display_name for item in report.published] == ["IMG_0.jpg", "IMG_1.jpg", "IMG_2.jpg"]
    for published, original_size, compressed_size in report.comparisons:
        assert compressed_size <= original_size
        assert published.size == compressed_size
        assert published.mime_type == "image/jpeg"
        assert Path(published.location).parent == (tmp_path / "shared" / "Pictures" / "AppExports").resolve()
    listed = storage.list_entries(relative_path="Pictures/AppExports")
    assert len(listed) == 3


def test_share_pipeline_shares_published_items() -> None:
    storage = InMemorySharedStorage()
    resolver = InMemoryResolver()
    image = resolver.add(b"i", display_name="a.jpg", mime_type="image/jpeg")
    broken = resolver.add(b"d", display_name="b.txt", mime_type="text/plain")
    video = resolver.add(b"v", display_name="c.mp4", mime_type="video/mp4")
    sink = CollectingShareSink()

    pipeline = SharePipeline(
        resolver=resolver,
        compressor=PassthroughCompressor(),
        publisher=SharedStoragePublisher(storage),
        config=PublishConfig(subfolder="AppExports"),
        sink=sink,
        target_package="com.example.viewer",
    )
    report = pipeline.run([image, broken, video])

    assert len(sink.intents) == 1
    intent = sink.intents[0]
    assert intent.items == tuple(report.published)
    assert intent.mime_hint == "image/* video/*"
    assert intent.target_package == "com.example.viewer"


@pytest.mark.parametrize("references", [[], ["memory://missing"]])
def test_share_pipeline_skips_sink_without_results(references: list[str]) -> None:
    sink = CollectingShareSink()
    pipeline = SharePipeline(
        resolver=InMemoryResolver(),
        compressor=PassthroughCompressor(),
        publisher=SharedStoragePublisher(InMemorySharedStorage()),
        config=PublishConfig(),
        sink=sink,
    )
    pipeline.run(references)
    assert sink.intents == []
