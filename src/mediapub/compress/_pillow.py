"""PillowCompressor: quality-reduced image re-encoding with Pillow."""

from __future__ import annotations

import io
import logging

from PIL import Image, UnidentifiedImageError

from mediapub.compress._base import clamp_quality
from mediapub.types import MediaBlob

logger = logging.getLogger(__name__)

LOSSY_FORMATS = frozenset({"JPEG", "WEBP"})
LOSSLESS_FORMATS = frozenset({"PNG"})


def png_compress_level(quality: int) -> int:
    """Map quality onto zlib's 0-9 scale: lower quality, harder compression."""
    return 9 - round(quality * 9 / 100)


class PillowCompressor:
    """Re-encode images in their own format at a reduced quality.

    JPEG and WebP take the quality directly; PNG is re-encoded losslessly with
    a quality-derived compression level. Other image formats and all non-image
    media pass through unchanged. The result is never larger than the input
    and keeps the input's MIME type.
    """

    def compress(self, blob: MediaBlob, quality: float) -> MediaBlob:
        """Return a re-encoded copy of ``blob``, or ``blob`` itself when that is not smaller."""
        level = clamp_quality(quality)
        if blob.category != "image":
            logger.debug("No compressor for %s; passing %d bytes through", blob.mime_type, blob.size)
            return blob

        try:
            encoded = self._encode(blob, level)
        except (OSError, ValueError, UnidentifiedImageError, Image.DecompressionBombError) as exc:
            logger.warning("Image compression failed for %s: %s; using original", blob.mime_type, exc)
            return blob

        if encoded is None:
            return blob
        if len(encoded) >= blob.size:
            logger.debug("Re-encode at quality %d did not shrink %d bytes; keeping original", level, blob.size)
            return blob

        logger.debug("Compressed %s: %d -> %d bytes (quality %d)", blob.mime_type, blob.size, len(encoded), level)
        return MediaBlob(data=encoded, mime_type=blob.mime_type)

    def _encode(self, blob: MediaBlob, quality: int) -> bytes | None:
        """Encode the image at ``quality``; ``None`` when its format is not handled."""
        with Image.open(io.BytesIO(blob.data)) as img:
            fmt = (img.format or "").upper()
            if fmt not in LOSSY_FORMATS and fmt not in LOSSLESS_FORMATS:
                logger.debug("Image format %s is passed through", fmt or "<unknown>")
                return None

            save_kwargs: dict[str, object] = {"format": fmt}
            exif = img.info.get("exif")
            if exif:
                save_kwargs["exif"] = exif
            if fmt == "JPEG":
                save_kwargs["quality"] = max(1, quality)
                save_kwargs["optimize"] = True
            elif fmt == "WEBP":
                save_kwargs["quality"] = quality
                save_kwargs["method"] = 4
            else:
                # optimize=True would pin the level to 9
                save_kwargs["compress_level"] = png_compress_level(quality)

            img.load()
            buf = io.BytesIO()
            img.save(buf, **save_kwargs)
            return buf.getvalue()
