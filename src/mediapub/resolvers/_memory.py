"""InMemoryResolver: references to bytes registered in-process."""

from __future__ import annotations

import uuid

from mediapub.errors import ResolutionError
from mediapub.types import InputItem, MediaBlob

_SCHEME = "memory://"


class InMemoryResolver:
    """Resolver over bytes added with ``add``, for development and testing."""

    def __init__(self) -> None:
        """Initialize with no registered media."""
        self._items: dict[str, tuple[InputItem, bytes]] = {}

    def add(self, data: bytes, *, display_name: str, mime_type: str) -> str:
        """Register bytes and return a ``memory://`` reference to them."""
        reference = f"{_SCHEME}{uuid.uuid4().hex}"
        item = InputItem(reference=reference, display_name=display_name, mime_type=mime_type)
        self._items[reference] = (item, bytes(data))
        return reference

    def remove(self, reference: str) -> bool:
        """Forget a reference. Return ``True`` when it was registered."""
        return self._items.pop(reference, None) is not None

    def resolve(self, reference: str) -> InputItem:
        """Return the registered item for a reference."""
        found = self._items.get(reference)
        if found is None:
            raise ResolutionError(reference, "unknown reference")
        return found[0]

    def read(self, item: InputItem) -> MediaBlob:
        """Return the registered bytes for an item."""
        found = self._items.get(item.reference)
        if found is None:
            raise ResolutionError(item.reference, "unknown reference")
        return MediaBlob(data=found[1], mime_type=item.mime_type)
