"""Pipeline configuration: job state enum and the ChunkingLimits dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.config import Settings


class JobState(str, Enum):
    """States of a single transcription job."""

    START = "start"
    SIZE_CHECK = "size_check"
    DIRECT = "direct"
    PLANNING = "planning"
    SEGMENTING = "segmenting"
    VALIDATING = "validating"
    VALIDATED = "validated"
    TRANSCRIBING = "transcribing"
    STITCHING = "stitching"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ChunkingLimits:
    """Immutable snapshot of the limits governing one transcription job.

    Defaults mirror the provider's published 25 MiB ceiling and the
    application's 500 MiB upload ceiling.
    """

    app_max_file_size_bytes: int = 500 * 1024 * 1024
    provider_max_file_size_bytes: int = 25 * 1024 * 1024
    chunk_safety_ratio: float = 0.9
    min_chunk_seconds: int = 30
    max_split_attempts: int = 3
    max_duration_seconds: int = 5 * 60 * 60

    def __post_init__(self) -> None:
        if self.app_max_file_size_bytes <= 0 or self.provider_max_file_size_bytes <= 0:
            raise ValueError("File size limits must be positive")
        if not 0 < self.chunk_safety_ratio <= 1:
            raise ValueError(f"chunk_safety_ratio must be in (0, 1], got {self.chunk_safety_ratio}")
        if self.min_chunk_seconds <= 0:
            raise ValueError("min_chunk_seconds must be positive")
        if self.max_split_attempts <= 0:
            raise ValueError("max_split_attempts must be positive")
        if self.max_duration_seconds < 0:
            raise ValueError("max_duration_seconds must not be negative")

    @property
    def provider_budget_bytes(self) -> float:
        """Byte budget per chunk after applying the safety ratio."""
        return self.provider_max_file_size_bytes * self.chunk_safety_ratio

    @classmethod
    def from_settings(cls, settings: Settings) -> ChunkingLimits:
        return cls(
            app_max_file_size_bytes=settings.app_max_file_size_bytes,
            provider_max_file_size_bytes=settings.provider_max_file_size_bytes,
            chunk_safety_ratio=settings.chunk_safety_ratio,
            min_chunk_seconds=settings.min_chunk_seconds,
            max_split_attempts=settings.max_split_attempts,
            max_duration_seconds=settings.max_duration_seconds,
        )
