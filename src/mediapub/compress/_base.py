"""Compressor protocol and quality handling."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mediapub.types import MediaBlob

MIN_QUALITY = 0
MAX_QUALITY = 100
DEFAULT_QUALITY = 50


def clamp_quality(quality: float) -> int:
    """Round a quality value and clamp it to ``[0, 100]``.

    NaN falls back to the default quality. Booleans and non-numbers are rejected.
    """
    if isinstance(quality, bool) or not isinstance(quality, (int, float)):
        msg = f"quality must be a number; got {type(quality).__name__}."
        raise TypeError(msg)
    if isinstance(quality, float):
        if math.isnan(quality):
            return DEFAULT_QUALITY
        if math.isinf(quality):
            return MAX_QUALITY if quality > 0 else MIN_QUALITY
        quality = round(quality)
    return max(MIN_QUALITY, min(MAX_QUALITY, int(quality)))


@runtime_checkable
class Compressor(Protocol):
    """Transforms a blob into a smaller blob of the same media kind."""

    def compress(self, blob: MediaBlob, quality: float) -> MediaBlob:
        """Return a blob no larger than ``blob`` with the same MIME type."""
        ...


class PassthroughCompressor:
    """Compressor that returns its input unchanged."""

    def compress(self, blob: MediaBlob, quality: float) -> MediaBlob:
        """Validate ``quality`` and return ``blob``."""
        clamp_quality(quality)
        return blob
