"""PublishConfig and environment-backed settings."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from mediapub.compress import DEFAULT_QUALITY
from mediapub.errors import ConfigError
from mediapub.publisher import DEFAULT_CHUNK_SIZE
from mediapub.storage._store import validate_subfolder

DEFAULT_SUBFOLDER = "MediaPub"
DEFAULT_MAX_BATCH_SIZE = 5
DEFAULT_MAX_WORKERS = 4


def _require_int(value: object, *, field_name: str, minimum: int | None = None) -> int:
    """Validate an integer field (rejects booleans)."""
    if not isinstance(value, int) or isinstance(value, bool):
        msg = f"{field_name} must be an int."
        raise ConfigError(msg)
    if minimum is not None and value < minimum:
        msg = f"{field_name} must be >= {minimum}."
        raise ConfigError(msg)
    return value


@dataclass(frozen=True, slots=True)
class PublishConfig:
    """Tunables of one publish request.

    ``quality`` is stored as given; the compression stage clamps it to 0-100.
    """

    subfolder: str = DEFAULT_SUBFOLDER
    quality: int = DEFAULT_QUALITY
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    max_workers: int = DEFAULT_MAX_WORKERS
    transfer_timeout: float | None = None
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self) -> None:
        """Validate all fields."""
        try:
            object.__setattr__(self, "subfolder", validate_subfolder(self.subfolder))
        except (TypeError, ValueError) as exc:
            raise ConfigError(str(exc)) from exc
        _require_int(self.quality, field_name="PublishConfig.quality")
        _require_int(self.max_batch_size, field_name="PublishConfig.max_batch_size", minimum=1)
        _require_int(self.max_workers, field_name="PublishConfig.max_workers", minimum=1)
        _require_int(self.chunk_size, field_name="PublishConfig.chunk_size", minimum=1)
        timeout = self.transfer_timeout
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                msg = "PublishConfig.transfer_timeout must be a positive number or None."
                raise ConfigError(msg)
            object.__setattr__(self, "transfer_timeout", float(timeout))

    def to_dict(self) -> dict[str, object]:
        """Serialize PublishConfig to a plain dictionary."""
        return {
            "subfolder": self.subfolder,
            "quality": self.quality,
            "max_batch_size": self.max_batch_size,
            "max_workers": self.max_workers,
            "transfer_timeout": self.transfer_timeout,
            "chunk_size": self.chunk_size,
        }

    @classmethod
    def from_dict(cls, value: Mapping[str, object]) -> PublishConfig:
        """Deserialize PublishConfig from a plain dictionary; missing keys take defaults."""
        known = {"subfolder", "quality", "max_batch_size", "max_workers", "transfer_timeout", "chunk_size"}
        unknown = sorted(str(key) for key in value if key not in known)
        if unknown:
            msg = f"Unknown PublishConfig fields: {', '.join(unknown)}"
            raise ConfigError(msg)
        return cls(**{str(key): item for key, item in value.items()})  # type: ignore[arg-type]


class MediapubSettings(BaseSettings):
    """Settings loaded from ``MEDIAPUB_*`` environment variables or a ``.env`` file."""

    model_config = SettingsConfigDict(env_prefix="MEDIAPUB_", env_file=".env", extra="ignore")

    storage_root: str | None = None
    backend: Literal["auto", "indexed", "direct"] = "auto"
    subfolder: str = DEFAULT_SUBFOLDER
    quality: int = DEFAULT_QUALITY
    max_batch_size: int = Field(default=DEFAULT_MAX_BATCH_SIZE, ge=1)
    max_workers: int = Field(default=DEFAULT_MAX_WORKERS, ge=1)
    transfer_timeout: float | None = Field(default=None, gt=0)
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=1)

    def to_config(self) -> PublishConfig:
        """Build a PublishConfig from these settings."""
        return PublishConfig(
            subfolder=self.subfolder,
            quality=self.quality,
            max_batch_size=self.max_batch_size,
            max_workers=self.max_workers,
            transfer_timeout=self.transfer_timeout,
            chunk_size=self.chunk_size,
        )


def load_settings(**overrides: object) -> MediapubSettings:
    """Load settings from the environment, applying keyword overrides."""
    return MediapubSettings(**overrides)  # type: ignore[arg-type]
