"""Share boundary: hand published references to an external consumer."""

from __future__ import annotations

import json
import logging
import os
import stat
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from mediapub.storage._store import utc_now

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from mediapub.types import MediaCategory, PublishedMedia

logger = logging.getLogger(__name__)

MIXED_MIME_HINT = "image/* video/*"


def share_mime_hint(categories: Iterable[MediaCategory]) -> str:
    """Return the MIME hint for a set of categories."""
    present = set(categories)
    if present == {"image"}:
        return "image/*"
    if present == {"video"}:
        return "video/*"
    return MIXED_MIME_HINT


@dataclass(frozen=True, slots=True)
class ShareIntent:
    """A hand-off of published media to an external share target."""

    items: tuple[PublishedMedia, ...]
    mime_hint: str
    target_package: str | None = None
    grant_read: bool = True
    title: str = "Share media"

    def __post_init__(self) -> None:
        """Normalize items container to tuple."""
        object.__setattr__(self, "items", tuple(self.items))

    def to_dict(self) -> dict[str, object]:
        """Serialize the intent to a plain dictionary."""
        return {
            "title": self.title,
            "mime_hint": self.mime_hint,
            "target_package": self.target_package,
            "grant_read": self.grant_read,
            "items": [
                {
                    "id": item.id,
                    "display_name": item.display_name,
                    "mime_type": item.mime_type,
                    "location": item.location,
                    "size": item.size,
                    "sha256": item.sha256,
                }
                for item in self.items
            ],
        }


def build_share_intent(
    items: Sequence[PublishedMedia],
    *,
    target_package: str | None = None,
    title: str = "Share media",
) -> ShareIntent:
    """Build a ShareIntent for a non-empty list of published media."""
    if not items:
        msg = "Cannot share an empty list of media."
        raise ValueError(msg)
    return ShareIntent(
        items=tuple(items),
        mime_hint=share_mime_hint(item.category for item in items),
        target_package=target_package,
        title=title,
    )


@runtime_checkable
class ShareSink(Protocol):
    """Fire-and-forget consumer of share intents."""

    def share(self, intent: ShareIntent) -> None:
        """Hand the intent over. The return value is not consumed."""
        ...


class CollectingShareSink:
    """Share sink that records intents in memory."""

    def __init__(self) -> None:
        """Initialize with no recorded intents."""
        self.intents: list[ShareIntent] = []

    def share(self, intent: ShareIntent) -> None:
        """Record the intent."""
        self.intents.append(intent)


class ManifestShareSink:
    """Share sink that grants read access and drops a JSON manifest for a consumer to pick up."""

    def __init__(self, directory: str | Path) -> None:
        """Initialize with the hand-off directory, creating it if needed."""
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        """Return the hand-off directory."""
        return self._directory

    def _grant_read(self, location: str) -> None:
        """Add group and other read permission to a published file."""
        path = Path(location)
        if not path.is_file():
            return
        mode = path.stat().st_mode
        path.chmod(stat.S_IMODE(mode) | stat.S_IRUSR | stat.S_IRGRP | stat.S_IROTH)

    def share(self, intent: ShareIntent) -> None:
        """Grant read permission on each item, then write the manifest atomically."""
        if intent.grant_read:
            for item in intent.items:
                self._grant_read(item.location)

        payload = intent.to_dict()
        payload["created_at"] = utc_now().isoformat()
        manifest = self._directory / f"share-{uuid.uuid4().hex}.json"
        tmp_path = manifest.with_name(f".{manifest.name}.tmp")
        tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp_path, manifest)
        logger.info("Wrote share manifest %s with %d items", manifest, len(intent.items))
