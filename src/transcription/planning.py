"""Size gatekeeping, chunk planning and the split refinement loop."""

from __future__ import annotations

import logging
import math
import os
from collections.abc import Callable

from src.pipeline_config import ChunkingLimits
from src.transcription.errors import (
    BitrateUnavailable,
    DurationTooLong,
    FileTooLarge,
    RefinementExhausted,
    RefinementStalled,
)
from src.transcription.media import SplitResult
from src.transcription.models import AudioSource, ChunkPlan, FileSizeCheck
from src.transcription.resources import ResourceStack

logger = logging.getLogger(__name__)

# Absorbs float noise such as 749.9999999999999 when flooring planned seconds
_FLOOR_EPSILON = 1e-9

Segmenter = Callable[[str, int], SplitResult]


def _floor_seconds(value: float) -> int:
    """``floor(value)``, except values within 1e-9 below an integer round up to it."""
    return math.floor(value + _FLOOR_EPSILON)


# ---------------------------------------------------------------------------
# Gatekeeping
# ---------------------------------------------------------------------------


def check_file_size(size_bytes: int, limits: ChunkingLimits) -> int:
    """Raise :class:`FileTooLarge` if *size_bytes* exceeds the app ceiling."""
    if size_bytes > limits.app_max_file_size_bytes:
        raise FileTooLarge(size_bytes, limits.app_max_file_size_bytes)
    return size_bytes


def check_duration(duration_seconds: float, limits: ChunkingLimits) -> float:
    """Raise :class:`DurationTooLong` if the source exceeds the duration ceiling."""
    if limits.max_duration_seconds and duration_seconds > limits.max_duration_seconds:
        raise DurationTooLong(duration_seconds, limits.max_duration_seconds)
    return duration_seconds


def check_audio_file_size(path: str, limits: ChunkingLimits) -> FileSizeCheck:
    """Pre-flight size check that reports instead of raising."""
    try:
        size_bytes = os.stat(path).st_size
    except OSError:
        return FileSizeCheck(valid=False, size_mb=0.0, error="Could not read file")

    size_mb = size_bytes / 1024 / 1024
    if size_bytes > limits.app_max_file_size_bytes:
        limit_mb = limits.app_max_file_size_bytes // (1024 * 1024)
        return FileSizeCheck(
            valid=False,
            size_mb=size_mb,
            error=f"File size ({size_mb:.1f}MB) exceeds {limit_mb}MB limit",
        )
    return FileSizeCheck(valid=True, size_mb=size_mb)


def needs_split(source: AudioSource, limits: ChunkingLimits) -> bool:
    return source.size_bytes > limits.provider_max_file_size_bytes


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


def plan_chunks(file_size_bytes: int, duration_seconds: float, limits: ChunkingLimits) -> ChunkPlan:
    """Estimate how many seconds of audio fit in one provider-sized chunk.

    Pure function: ``floor(limit * safety_ratio / bytes_per_second)`` clamped
    to ``limits.min_chunk_seconds``.

    Raises:
        BitrateUnavailable: The observed bytes-per-second is not positive.
    """
    if duration_seconds <= 0 or not math.isfinite(duration_seconds):
        raise BitrateUnavailable(file_size_bytes, duration_seconds)
    bytes_per_second = file_size_bytes / duration_seconds
    if bytes_per_second <= 0:
        raise BitrateUnavailable(file_size_bytes, duration_seconds)

    segment_seconds = _floor_seconds(limits.provider_budget_bytes / bytes_per_second)
    return ChunkPlan(segment_seconds=max(segment_seconds, limits.min_chunk_seconds), attempt=1)


def next_plan(plan: ChunkPlan, max_chunk_bytes: int, limits: ChunkingLimits) -> ChunkPlan | None:
    """Validate one split attempt and decide the next transition.

    Returns ``None`` when every chunk fits under the provider limit (accept),
    otherwise a smaller plan scaled by how far the largest chunk overshot.

    Raises:
        RefinementStalled: The scaled plan would be no shorter than *plan*.
    """
    if max_chunk_bytes <= limits.provider_max_file_size_bytes:
        return None

    scaled = _floor_seconds(plan.segment_seconds * limits.provider_budget_bytes / max_chunk_bytes)
    next_seconds = max(limits.min_chunk_seconds, scaled)
    if next_seconds >= plan.segment_seconds:
        raise RefinementStalled(
            plan.segment_seconds, max_chunk_bytes, limits.provider_max_file_size_bytes
        )
    return ChunkPlan(segment_seconds=next_seconds, attempt=plan.attempt + 1)


def refine_split(
    source: AudioSource,
    plan: ChunkPlan,
    limits: ChunkingLimits,
    segmenter: Segmenter,
    resources: ResourceStack,
) -> tuple[ChunkPlan, SplitResult]:
    """Split *source* until every chunk fits under the provider limit.

    Each attempt's directory is pushed onto *resources* as soon as it exists;
    rejected attempts are released before the next split starts.

    Returns:
        The accepted plan and its split result (still held by *resources*).

    Raises:
        RefinementStalled: Shrinking made no forward progress.
        RefinementExhausted: ``limits.max_split_attempts`` attempts all failed.
    """
    while True:
        logger.info(
            "Split attempt %d/%d with %ds chunks",
            plan.attempt,
            limits.max_split_attempts,
            plan.segment_seconds,
        )
        split = segmenter(source.path, plan.segment_seconds)
        resources.push(split.handle)
        max_chunk_bytes = split.max_chunk_bytes

        try:
            candidate = next_plan(plan, max_chunk_bytes, limits)
        except RefinementStalled:
            split.handle.release()
            raise

        if candidate is None:
            return plan, split

        split.handle.release()
        logger.warning(
            "Largest chunk is %d bytes (limit %d); shrinking %ds -> %ds",
            max_chunk_bytes,
            limits.provider_max_file_size_bytes,
            plan.segment_seconds,
            candidate.segment_seconds,
        )
        if plan.attempt >= limits.max_split_attempts:
            raise RefinementExhausted(
                plan.attempt, max_chunk_bytes, limits.provider_max_file_size_bytes
            )
        plan = candidate
