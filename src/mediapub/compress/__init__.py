"""Compression stage: quality-driven re-encoding of media blobs."""

from mediapub.compress._base import DEFAULT_QUALITY, Compressor, PassthroughCompressor, clamp_quality
from mediapub.compress._pillow import PillowCompressor

__all__ = [
    "DEFAULT_QUALITY",
    "Compressor",
    "PassthroughCompressor",
    "PillowCompressor",
    "clamp_quality",
]
