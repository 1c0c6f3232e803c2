"""Timeline stitching: turn per-chunk relative timestamps into one timeline."""

from __future__ import annotations

import math

from src.transcription.models import TranscribedChunk, TranscriptionResult, TranscriptSegment


class TimelineStitcher:
    """Accumulates chunks in ordinal order, offsetting each by the measured
    duration of every chunk before it.

    Offsets advance by the chunk's probed duration rather than the planned
    split length, which absorbs rounding at lossless cut boundaries.
    """

    def __init__(self) -> None:
        self.offset_seconds = 0.0
        self._segments: list[TranscriptSegment] = []
        self._next_ordinal = 0

    @property
    def chunk_count(self) -> int:
        return self._next_ordinal

    def add(self, chunk: TranscribedChunk) -> list[TranscriptSegment]:
        """Stitch *chunk* onto the timeline and return its absolute segments.

        Raises:
            ValueError: *chunk* is not the next ordinal in sequence.
        """
        if chunk.ordinal != self._next_ordinal:
            raise ValueError(
                f"Chunks must be stitched in order: expected {self._next_ordinal}, got {chunk.ordinal}"
            )

        stitched = [
            TranscriptSegment(
                text=seg.text,
                start_seconds=self.offset_seconds + seg.start_seconds,
                duration_seconds=seg.end_seconds - seg.start_seconds,
            )
            for seg in chunk.segments
        ]
        self._segments.extend(stitched)
        self.offset_seconds += chunk.measured_duration_seconds
        self._next_ordinal += 1
        return stitched

    def result(self, cost_per_minute: float = 0.006) -> TranscriptionResult:
        return TranscriptionResult(
            segments=list(self._segments),
            duration_seconds=self.offset_seconds,
            chunk_count=self._next_ordinal,
            cost_per_minute=cost_per_minute,
        )


def format_timestamp(seconds: float) -> str:
    """Format seconds as ``m:ss`` or ``h:mm:ss``."""
    total = max(0, math.floor(seconds))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
