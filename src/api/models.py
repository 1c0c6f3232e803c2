"""Pydantic request/response schemas for the Transcription API."""

from __future__ import annotations

from pydantic import BaseModel

from src.transcription.models import TranscriptionResult


class TranscriptSegmentOut(BaseModel):
    """A single transcript segment on the absolute timeline (seconds)."""

    text: str
    start: float
    duration: float


class TranscribeResponse(BaseModel):
    """Response body for the /api/transcribe endpoint."""

    segments: list[TranscriptSegmentOut]
    segment_count: int
    chunk_count: int
    duration_seconds: float
    estimated_cost: str

    @classmethod
    def from_result(cls, result: TranscriptionResult) -> TranscribeResponse:
        return cls(
            segments=[
                TranscriptSegmentOut(
                    text=s.text, start=s.start_seconds, duration=s.duration_seconds
                )
                for s in result.segments
            ],
            segment_count=len(result.segments),
            chunk_count=result.chunk_count,
            duration_seconds=result.duration_seconds,
            estimated_cost=result.estimated_cost,
        )


class CostEstimateResponse(BaseModel):
    """Response body for the /api/transcribe/estimate endpoint."""

    duration_seconds: float
    estimated_cost: str


class ErrorDetail(BaseModel):
    """Structured ``detail`` payload for pipeline failures."""

    error: str
    suggestion: str | None = None
    retryable: bool = False
