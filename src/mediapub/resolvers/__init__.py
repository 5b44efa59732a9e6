"""Reference resolvers: opaque references to named, typed media bytes."""

from mediapub.resolvers._base import DEFAULT_MIME_TYPE, ReferenceResolver
from mediapub.resolvers._file import FileReferenceResolver
from mediapub.resolvers._memory import InMemoryResolver

__all__ = [
    "DEFAULT_MIME_TYPE",
    "FileReferenceResolver",
    "InMemoryResolver",
    "ReferenceResolver",
]
