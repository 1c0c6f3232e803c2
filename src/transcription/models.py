"""Data models for the chunked transcription pipeline."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field


def estimate_transcription_cost(duration_seconds: float, cost_per_minute: float = 0.006) -> str:
    """Estimate provider cost, e.g. ``"~$0.24"`` for 40 minutes at $0.006/min."""
    cost = (duration_seconds / 60) * cost_per_minute
    return f"~${cost:.2f}"


@dataclass(frozen=True)
class AudioSource:
    """A caller-supplied local audio file. Never mutated by the pipeline."""

    path: str
    size_bytes: int
    duration_seconds: float = 0.0  # 0 means "not probed yet"

    @classmethod
    def from_path(cls, path: str, duration_seconds: float | None = None) -> AudioSource:
        """Build a source from a file on disk, reading its size with ``os.stat``."""
        return cls(
            path=path,
            size_bytes=os.stat(path).st_size,
            duration_seconds=duration_seconds or 0.0,
        )


@dataclass
class AcquiredAudio:
    """A locally materialised audio file handed over by the acquisition layer.

    The pipeline takes ownership of ``cleanup`` and calls it once the job ends.
    """

    path: str
    duration_hint_seconds: float | None = None
    cleanup: Callable[[], None] | None = None


@dataclass(frozen=True)
class ChunkPlan:
    """Proposed split duration. Each refinement attempt produces a new plan."""

    segment_seconds: int
    attempt: int = 1


@dataclass(frozen=True)
class AudioChunk:
    """One split file. ``ordinal`` equals temporal order (0..N-1)."""

    path: str
    ordinal: int
    size_bytes: int


@dataclass(frozen=True)
class RawSegment:
    """A transcribed span with timestamps relative to its chunk's start."""

    text: str
    start_seconds: float
    end_seconds: float


@dataclass
class ProviderTranscript:
    """Normalised provider response for one file."""

    text: str
    segments: list[RawSegment] = field(default_factory=list)


@dataclass
class TranscribedChunk:
    """Segments for one chunk plus the chunk's independently measured duration."""

    ordinal: int
    segments: list[RawSegment]
    measured_duration_seconds: float


@dataclass(frozen=True)
class TranscriptSegment:
    """Final output unit with an absolute, offset-adjusted start."""

    text: str
    start_seconds: float
    duration_seconds: float

    @property
    def end_seconds(self) -> float:
        return self.start_seconds + self.duration_seconds

    def to_dict(self) -> dict[str, float | str]:
        """Serialise to the ``{text, start, duration}`` shape used downstream."""
        return {
            "text": self.text,
            "start": self.start_seconds,
            "duration": self.duration_seconds,
        }


@dataclass
class TranscriptionResult:
    """Ordered segments spanning the whole source."""

    segments: list[TranscriptSegment]
    duration_seconds: float
    chunk_count: int = 1
    cost_per_minute: float = 0.006

    @property
    def estimated_cost(self) -> str:
        return estimate_transcription_cost(self.duration_seconds, self.cost_per_minute)

    def to_dicts(self) -> list[dict[str, float | str]]:
        return [s.to_dict() for s in self.segments]


@dataclass
class FileSizeCheck:
    """Non-raising result of a pre-flight file size check."""

    valid: bool
    size_mb: float
    error: str | None = None
