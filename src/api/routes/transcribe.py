"""Transcribe endpoint: upload audio of any length and get a stitched transcript."""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from typing import Annotated, BinaryIO

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile

from src.api.models import CostEstimateResponse, ErrorDetail, TranscribeResponse
from src.config import settings
from src.transcription.errors import (
    AuthenticationError,
    BitrateUnavailable,
    DurationTooLong,
    DurationUnavailable,
    FileTooLarge,
    ProviderError,
    ProviderRateLimited,
    RefinementExhausted,
    RefinementStalled,
    SplitFailed,
    SplitProducedNoOutput,
    SplitToolMissing,
    TranscriptionCancelled,
    TranscriptionError,
)
from src.transcription.models import AcquiredAudio, estimate_transcription_cost
from src.transcription.pipeline import transcribe_audio_async
from src.transcription.resources import file_handle

logger = logging.getLogger(__name__)

router = APIRouter()

COPY_BUFFER_BYTES = 1024 * 1024

# First match wins, so subclasses must precede their bases
ERROR_RESPONSES: list[tuple[type[TranscriptionError], int, str | None]] = [
    (FileTooLarge, 413, "Try a shorter video or lower-quality audio"),
    (DurationTooLong, 400, "Try a shorter video"),
    (AuthenticationError, 500, "Check that OPENAI_API_KEY is set correctly in .env"),
    (ProviderRateLimited, 429, "The transcription provider is rate limiting requests; retry later"),
    (ProviderError, 502, None),
    (TranscriptionCancelled, 504, "Transcription did not finish in time"),
    (SplitToolMissing, 500, "Install ffmpeg to enable large-audio chunking"),
    (DurationUnavailable, 500, "Install ffmpeg (ffprobe) to enable large-audio chunking"),
    (BitrateUnavailable, 500, None),
    (SplitFailed, 500, None),
    (SplitProducedNoOutput, 500, None),
    (RefinementStalled, 500, "Try re-encoding the audio at a lower bitrate"),
    (RefinementExhausted, 500, "Try re-encoding the audio at a lower bitrate"),
]


def to_http_exception(exc: TranscriptionError) -> HTTPException:
    """Map a pipeline error to an HTTP status with a user-facing suggestion."""
    status_code, suggestion = 500, None
    for error_type, code, hint in ERROR_RESPONSES:
        if isinstance(exc, error_type):
            status_code, suggestion = code, hint
            break
    # Provider auth messages can echo part of the key
    message = "Transcription provider API key issue" if isinstance(exc, AuthenticationError) else str(exc)
    detail = ErrorDetail(error=message, suggestion=suggestion, retryable=exc.retryable)
    return HTTPException(status_code=status_code, detail=detail.model_dump())


def spool_upload(upload: BinaryIO, filename: str, limit_bytes: int) -> str:
    """Copy an upload stream into a temp file, enforcing the app size ceiling.

    Returns the temp file path; the caller owns its deletion.

    Raises:
        FileTooLarge: More than *limit_bytes* were received.
    """
    suffix = os.path.splitext(filename)[1] or ".mp3"
    fd, path = tempfile.mkstemp(prefix="upload-", suffix=suffix, dir=settings.temp_dir or None)
    written = 0
    try:
        with os.fdopen(fd, "wb") as out:
            while block := upload.read(COPY_BUFFER_BYTES):
                written += len(block)
                if written > limit_bytes:
                    raise FileTooLarge(written, limit_bytes)
                out.write(block)
    except BaseException:
        os.unlink(path)
        raise
    return path


@router.post("/api/transcribe", response_model=TranscribeResponse)
async def transcribe(
    file: Annotated[UploadFile, File(...)],
    duration_seconds: Annotated[float | None, Form(ge=0)] = None,
) -> TranscribeResponse:
    """Upload an audio file and transcribe it, splitting as needed.

    The upload is written to a temp file that the pipeline deletes when the
    job ends, on success and on every failure path.
    """
    try:
        path = await asyncio.to_thread(
            spool_upload,
            file.file,
            file.filename or "",
            settings.app_max_file_size_bytes,
        )
        upload_handle = file_handle(path)
        acquired = AcquiredAudio(
            path=path,
            duration_hint_seconds=duration_seconds,
            cleanup=upload_handle.release,
        )
        logger.info("Starting transcription for upload %r", file.filename)
        try:
            result = await transcribe_audio_async(
                acquired,
                timeout=settings.transcribe_timeout_seconds or None,
                config=settings,
            )
        finally:
            # No-op once the job has released it
            upload_handle.release()
    except TranscriptionError as exc:
        logger.warning("Transcription failed: %s", exc)
        raise to_http_exception(exc) from exc

    return TranscribeResponse.from_result(result)


@router.get("/api/transcribe/estimate", response_model=CostEstimateResponse)
async def estimate(
    duration_seconds: Annotated[float, Query(ge=0)],
) -> CostEstimateResponse:
    """Estimate the provider cost of transcribing *duration_seconds* of audio."""
    return CostEstimateResponse(
        duration_seconds=duration_seconds,
        estimated_cost=estimate_transcription_cost(
            duration_seconds, settings.transcription_cost_per_minute
        ),
    )
