"""Batch orchestration: resolve -> compress -> publish for each reference."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from mediapub.errors import BatchCancelledError, BatchSizeError, MediapubError
from mediapub.share import build_share_intent
from mediapub.types import BatchReport, ItemOutcome

if TYPE_CHECKING:
    import threading
    from collections.abc import Sequence

    from mediapub.compress import Compressor
    from mediapub.config import PublishConfig
    from mediapub.publisher import SharedStoragePublisher
    from mediapub.resolvers import ReferenceResolver
    from mediapub.share import ShareSink
    from mediapub.types import PublishedMedia

logger = logging.getLogger(__name__)


def _process_item(
    index: int,
    reference: str,
    *,
    resolver: ReferenceResolver,
    compressor: Compressor,
    publisher: SharedStoragePublisher,
    config: PublishConfig,
    cancel: threading.Event | None,
) -> ItemOutcome:
    """Run one reference through the pipeline, turning per-item errors into an outcome."""
    if cancel is not None and cancel.is_set():
        return ItemOutcome(index=index, reference=reference, error=BatchCancelledError(reference))

    original_size: int | None = None
    compressed_size: int | None = None
    try:
        item = resolver.resolve(reference)
        blob = resolver.read(item)
        original_size = blob.size
        compressed = compressor.compress(blob, config.quality)
        compressed_size = compressed.size
        published = publisher.publish(item.display_name, compressed.mime_type, compressed.data, config.subfolder)
    except MediapubError as exc:
        logger.warning("Dropping %r: %s", reference, exc)
        return ItemOutcome(
            index=index,
            reference=reference,
            error=exc,
            original_size=original_size,
            compressed_size=compressed_size,
        )
    return ItemOutcome(
        index=index,
        reference=reference,
        published=published,
        original_size=original_size,
        compressed_size=compressed_size,
    )


def publish_batch(
    references: Sequence[str],
    *,
    resolver: ReferenceResolver,
    compressor: Compressor,
    publisher: SharedStoragePublisher,
    config: PublishConfig,
    cancel: threading.Event | None = None,
) -> BatchReport:
    """Publish every reference independently and report per-item outcomes in input order.

    A failed item never stops the others. Items not yet started when
    ``cancel`` is set are reported as cancelled; running items still finish
    their commit or rollback.
    """
    references = tuple(references)
    if not references:
        return BatchReport()
    if len(references) > config.max_batch_size:
        raise BatchSizeError(len(references), config.max_batch_size)

    slots: list[ItemOutcome | None] = [None] * len(references)
    workers = min(config.max_workers, len(references))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="mediapub") as executor:
        futures = [
            executor.submit(
                _process_item,
                index,
                reference,
                resolver=resolver,
                compressor=compressor,
                publisher=publisher,
                config=config,
                cancel=cancel,
            )
            for index, reference in enumerate(references)
        ]
        for index, future in enumerate(futures):
            slots[index] = future.result()

    report = BatchReport(outcomes=tuple(outcome for outcome in slots if outcome is not None))
    logger.info("Published %d of %d items", len(report.published), len(references))
    return report


def publish_all(
    references: Sequence[str],
    *,
    resolver: ReferenceResolver,
    compressor: Compressor,
    publisher: SharedStoragePublisher,
    config: PublishConfig,
    cancel: threading.Event | None = None,
) -> list[PublishedMedia]:
    """Publish every reference and return the successful ones in input order."""
    return publish_batch(
        references,
        resolver=resolver,
        compressor=compressor,
        publisher=publisher,
        config=config,
        cancel=cancel,
    ).published


class SharePipeline:
    """Publish a selection and hand the results to a share sink."""

    def __init__(
        self,
        *,
        resolver: ReferenceResolver,
        compressor: Compressor,
        publisher: SharedStoragePublisher,
        config: PublishConfig,
        sink: ShareSink,
        target_package: str | None = None,
    ) -> None:
        """Initialize with all collaborators."""
        self.resolver = resolver
        self.compressor = compressor
        self.publisher = publisher
        self.config = config
        self.sink = sink
        self.target_package = target_package

    def run(self, references: Sequence[str], *, cancel: threading.Event | None = None) -> BatchReport:
        """Publish ``references``; share whatever was published."""
        report = publish_batch(
            references,
            resolver=self.resolver,
            compressor=self.compressor,
            publisher=self.publisher,
            config=self.config,
            cancel=cancel,
        )
        published = report.published
        if not published:
            logger.debug("Nothing published; share sink not invoked")
            return report
        self.sink.share(build_share_intent(published, target_package=self.target_package))
        return report
