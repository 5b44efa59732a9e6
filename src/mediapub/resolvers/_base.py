"""ReferenceResolver: protocol for turning opaque references into media."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mediapub.types import InputItem, MediaBlob

DEFAULT_MIME_TYPE = "application/octet-stream"


@runtime_checkable
class ReferenceResolver(Protocol):
    """Resolve opaque references to named, typed media bytes.

    Both methods raise ResolutionError when the reference cannot be read.
    """

    def resolve(self, reference: str) -> InputItem:
        """Return the display name and MIME type behind a reference."""
        ...

    def read(self, item: InputItem) -> MediaBlob:
        """Return the bytes of a resolved item."""
        ...
