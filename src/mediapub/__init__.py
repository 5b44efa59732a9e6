"""mediapub: compress media and publish it atomically into shared storage."""

import importlib.metadata as importlib_metadata

from mediapub.compress import Compressor, PassthroughCompressor, PillowCompressor, clamp_quality
from mediapub.config import MediapubSettings, PublishConfig, load_settings
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
from mediapub.pipeline import SharePipeline, publish_all, publish_batch
from mediapub.publisher import SharedStoragePublisher
from mediapub.resolvers import FileReferenceResolver, InMemoryResolver, ReferenceResolver
from mediapub.share import (
    CollectingShareSink,
    ManifestShareSink,
    ShareIntent,
    ShareSink,
    build_share_intent,
    share_mime_hint,
)
from mediapub.storage import (
    DirectSharedStorage,
    IndexedSharedStorage,
    InMemorySharedStorage,
    SharedStorage,
    open_shared_storage,
)
from mediapub.types import (
    BatchReport,
    InputItem,
    ItemOutcome,
    MediaBlob,
    MediaCategory,
    PublishedMedia,
    PublishRecord,
    StorageEntry,
    classify_mime,
)


def _detect_version() -> str:
    """Return installed package version or a local fallback when metadata is unavailable."""
    try:
        return importlib_metadata.version("mediapub")
    except importlib_metadata.PackageNotFoundError:
        return "0.0.0+unknown"


__version__ = _detect_version()

__all__ = [
    "BatchCancelledError",
    "BatchReport",
    "BatchSizeError",
    "CollectingShareSink",
    "Compressor",
    "ConfigError",
    "DirectSharedStorage",
    "EntryCreationError",
    "EntryNotFoundError",
    "FileReferenceResolver",
    "InMemoryResolver",
    "InMemorySharedStorage",
    "IndexedSharedStorage",
    "InputItem",
    "ItemError",
    "ItemOutcome",
    "ManifestShareSink",
    "MediaBlob",
    "MediaCategory",
    "MediapubError",
    "MediapubSettings",
    "PassthroughCompressor",
    "PillowCompressor",
    "PublishConfig",
    "PublishRecord",
    "PublishedMedia",
    "ReferenceResolver",
    "ResolutionError",
    "ShareIntent",
    "SharePipeline",
    "ShareSink",
    "SharedStorage",
    "SharedStoragePublisher",
    "StorageEntry",
    "TransferError",
    "UnsupportedMediaKindError",
    "build_share_intent",
    "clamp_quality",
    "classify_mime",
    "load_settings",
    "open_shared_storage",
    "publish_all",
    "publish_batch",
    "share_mime_hint",
]
