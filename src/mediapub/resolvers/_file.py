"""FileReferenceResolver: filesystem paths and ``file://`` URIs."""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from urllib.parse import unquote, urlparse

from PIL import Image, UnidentifiedImageError

from mediapub.errors import ResolutionError
from mediapub.resolvers._base import DEFAULT_MIME_TYPE
from mediapub.storage._store import DEFAULT_DISPLAY_NAME
from mediapub.types import InputItem, MediaBlob

logger = logging.getLogger(__name__)


def _sniff_image_mime(path: Path) -> str | None:
    """Return the MIME type Pillow detects from the file header, if any."""
    try:
        with Image.open(path) as img:
            fmt = img.format
    except (OSError, UnidentifiedImageError, Image.DecompressionBombError):
        return None
    if fmt is None:
        return None
    return Image.MIME.get(fmt)


class FileReferenceResolver:
    """Resolve local files given as paths or ``file://`` URIs."""

    def __init__(self, base_dir: str | Path | None = None) -> None:
        """Initialize with an optional directory for relative references."""
        self._base_dir = Path(base_dir) if base_dir is not None else None

    def _path_for(self, reference: str) -> Path:
        """Map a reference string to a filesystem path."""
        if not reference:
            raise ResolutionError(reference, "empty reference")
        parsed = urlparse(reference)
        if parsed.scheme == "file":
            if parsed.netloc not in ("", "localhost"):
                raise ResolutionError(reference, f"remote file host {parsed.netloc!r} is not supported")
            return Path(unquote(parsed.path))
        if parsed.scheme and len(parsed.scheme) > 1:
            raise ResolutionError(reference, f"unsupported scheme {parsed.scheme!r}")

        path = Path(reference).expanduser()
        if not path.is_absolute() and self._base_dir is not None:
            path = self._base_dir / path
        return path

    def resolve(self, reference: str) -> InputItem:
        """Return the file's name and MIME type."""
        path = self._path_for(reference)
        if not path.is_file():
            raise ResolutionError(reference, f"{path} is not a readable file")

        mime_type, _ = mimetypes.guess_type(path.name)
        if mime_type is None:
            mime_type = _sniff_image_mime(path)
        if mime_type is None:
            logger.debug("No MIME type for %s; using %s", path, DEFAULT_MIME_TYPE)
            mime_type = DEFAULT_MIME_TYPE

        return InputItem(
            reference=reference,
            display_name=path.name or DEFAULT_DISPLAY_NAME,
            mime_type=mime_type,
        )

    def read(self, item: InputItem) -> MediaBlob:
        """Read the file's bytes."""
        path = self._path_for(item.reference)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ResolutionError(item.reference, str(exc)) from exc
        return MediaBlob(data=data, mime_type=item.mime_type)
