"""Command-line entry point: publish files into shared storage and hand them off."""

from __future__ import annotations

import argparse
import json
import sys
from typing import TYPE_CHECKING

from pydantic import ValidationError

from mediapub.compress import PassthroughCompressor, PillowCompressor
from mediapub.config import MediapubSettings, PublishConfig, load_settings
from mediapub.errors import BatchSizeError, ConfigError
from mediapub.logging_config import setup_logging
from mediapub.pipeline import SharePipeline, publish_batch
from mediapub.publisher import SharedStoragePublisher
from mediapub.resolvers import FileReferenceResolver
from mediapub.share import ManifestShareSink
from mediapub.storage import open_shared_storage

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mediapub.types import BatchReport

EXIT_OK = 0
EXIT_PARTIAL = 1
EXIT_USAGE = 2


def _build_parser(settings: MediapubSettings) -> argparse.ArgumentParser:
    """Build the argument parser with defaults taken from settings."""
    parser = argparse.ArgumentParser(prog="mediapub", description=__doc__)
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO).")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    publish = subparsers.add_parser("publish", help="Compress and publish media files.")
    publish.add_argument("files", nargs="*", help="Files or file:// URIs to publish.")
    publish.add_argument("--root", default=settings.storage_root, help="Shared-storage root directory.")
    publish.add_argument("--backend", choices=("auto", "indexed", "direct"), default=settings.backend)
    publish.add_argument("--subfolder", default=settings.subfolder)
    publish.add_argument("--quality", type=int, default=settings.quality, help="Compression quality 0-100.")
    publish.add_argument("--max-batch", type=int, default=settings.max_batch_size)
    publish.add_argument("--workers", type=int, default=settings.max_workers)
    publish.add_argument("--timeout", type=float, default=settings.transfer_timeout, help="Per-item transfer timeout.")
    publish.add_argument("--no-compress", action="store_true", help="Publish the original bytes.")
    publish.add_argument("--share-manifest", help="Directory receiving a JSON share manifest.")
    publish.add_argument("--target-package", help="Preferred share target recorded in the manifest.")
    publish.add_argument("--json", action="store_true", help="Print the batch report as JSON.")

    purge = subparsers.add_parser("purge", help="Remove pending leftovers from crashed runs.")
    purge.add_argument("--root", default=settings.storage_root, help="Shared-storage root directory.")
    purge.add_argument("--backend", choices=("auto", "indexed", "direct"), default=settings.backend)
    return parser


def _report_to_dict(report: BatchReport) -> dict[str, object]:
    """Serialize a BatchReport for ``--json`` output."""
    return {
        "published": len(report.published),
        "failed": len(report.failures),
        "items": [
            {
                "reference": outcome.reference,
                "ok": outcome.ok,
                "location": outcome.published.location if outcome.published is not None else None,
                "error": str(outcome.error) if outcome.error is not None else None,
                "original_size": outcome.original_size,
                "compressed_size": outcome.compressed_size,
            }
            for outcome in report.outcomes
        ],
    }


def _print_report(report: BatchReport, *, as_json: bool) -> None:
    """Write the batch report to stdout."""
    if as_json:
        sys.stdout.write(json.dumps(_report_to_dict(report), indent=2) + "\n")
        return
    for published, original_size, compressed_size in report.comparisons:
        sys.stdout.write(f"{published.location}\t{original_size // 1024} KB -> {compressed_size // 1024} KB\n")
    for outcome in report.failures:
        sys.stdout.write(f"skipped {outcome.reference}: {outcome.error}\n")


def _run_publish(args: argparse.Namespace) -> int:
    """Handle the ``publish`` command."""
    if not args.root:
        sys.stderr.write("mediapub: --root (or MEDIAPUB_STORAGE_ROOT) is required\n")
        return EXIT_USAGE
    try:
        config = PublishConfig(
            subfolder=args.subfolder,
            quality=args.quality,
            max_batch_size=args.max_batch,
            max_workers=args.workers,
            transfer_timeout=args.timeout,
        )
    except ConfigError as exc:
        sys.stderr.write(f"mediapub: {exc}\n")
        return EXIT_USAGE

    storage = open_shared_storage(args.root, args.backend)
    publisher = SharedStoragePublisher(
        storage,
        chunk_size=config.chunk_size,
        transfer_timeout=config.transfer_timeout,
    )
    resolver = FileReferenceResolver()
    compressor = PassthroughCompressor() if args.no_compress else PillowCompressor()

    try:
        if args.share_manifest:
            pipeline = SharePipeline(
                resolver=resolver,
                compressor=compressor,
                publisher=publisher,
                config=config,
                sink=ManifestShareSink(args.share_manifest),
                target_package=args.target_package,
            )
            report = pipeline.run(args.files)
        else:
            report = publish_batch(
                args.files,
                resolver=resolver,
                compressor=compressor,
                publisher=publisher,
                config=config,
            )
    except BatchSizeError as exc:
        sys.stderr.write(f"mediapub: {exc}\n")
        return EXIT_USAGE

    _print_report(report, as_json=args.json)
    return EXIT_PARTIAL if report.failures else EXIT_OK


def _run_purge(args: argparse.Namespace) -> int:
    """Handle the ``purge`` command."""
    if not args.root:
        sys.stderr.write("mediapub: --root (or MEDIAPUB_STORAGE_ROOT) is required\n")
        return EXIT_USAGE
    purged = open_shared_storage(args.root, args.backend).purge_pending()
    sys.stdout.write(f"purged {purged} pending entries\n")
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    """Run the mediapub command line."""
    try:
        settings = load_settings()
    except ValidationError as exc:
        sys.stderr.write(f"mediapub: invalid MEDIAPUB_* settings: {exc}\n")
        return EXIT_USAGE

    parser = _build_parser(settings)
    args = parser.parse_args(argv)
    setup_logging(args.log_level, json_format=args.json_logs)

    if args.command == "purge":
        return _run_purge(args)
    return _run_publish(args)


if __name__ == "__main__":
    raise SystemExit(main())
