"""End-to-end transcription job: gate -> plan -> split -> transcribe -> stitch.

A job owns a :class:`ResourceStack`; every temp directory it creates (and the
acquired source file, when one is handed over) is released before the job's
result or error reaches the caller.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from dataclasses import replace

from src.config import Settings, settings
from src.pipeline_config import ChunkingLimits, JobState
from src.transcription.errors import TranscriptionCancelled
from src.transcription.media import SplitResult, probe_duration, split_audio
from src.transcription.models import (
    AcquiredAudio,
    AudioChunk,
    AudioSource,
    ProviderTranscript,
    TranscribedChunk,
    TranscriptionResult,
)
from src.transcription.planning import (
    check_duration,
    check_file_size,
    needs_split,
    plan_chunks,
    refine_split,
)
from src.transcription.provider import Transcriber, WhisperTranscriber, to_raw_segments
from src.transcription.resources import ResourceStack
from src.transcription.stitching import TimelineStitcher

logger = logging.getLogger(__name__)


class TranscriptionJob:
    """A single transcription run. Not reusable across sources."""

    def __init__(
        self,
        transcriber: Transcriber,
        limits: ChunkingLimits | None = None,
        ffmpeg: str = "ffmpeg",
        ffprobe: str = "ffprobe",
        temp_root: str | None = None,
        cost_per_minute: float = 0.006,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.transcriber = transcriber
        self.limits = limits or ChunkingLimits()
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe
        self.temp_root = temp_root
        self.cost_per_minute = cost_per_minute
        self.cancel_event = cancel_event or threading.Event()
        self.state = JobState.START

    # -- helpers -----------------------------------------------------------

    def _transition(self, state: JobState) -> None:
        logger.debug("Job state %s -> %s", self.state, state)
        self.state = state

    def _check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise TranscriptionCancelled("Transcription job was cancelled")

    def _probe(self, path: str) -> float:
        return probe_duration(path, ffprobe=self.ffprobe, cancel_event=self.cancel_event)

    def _segment(self, path: str, segment_seconds: int) -> SplitResult:
        self._check_cancelled()
        self._transition(JobState.SEGMENTING)
        split = split_audio(
            path,
            segment_seconds,
            ffmpeg=self.ffmpeg,
            temp_root=self.temp_root,
            cancel_event=self.cancel_event,
        )
        self._transition(JobState.VALIDATING)
        return split

    # -- job ---------------------------------------------------------------

    def run(
        self,
        path: str,
        duration_hint: float | None = None,
        cleanup: Callable[[], None] | None = None,
    ) -> TranscriptionResult:
        """Transcribe *path* and return the stitched timeline.

        Args:
            path: Local audio file.
            duration_hint: Known duration in seconds; probed when missing or 0.
            cleanup: Release callback for *path* itself, owned by the job from
                here on and called after every other resource.
        """
        with ResourceStack() as resources:
            if cleanup is not None:
                resources.callback(cleanup, f"acquired audio {path}")
            try:
                result = self._run(path, duration_hint or 0.0, resources)
            except BaseException:
                self._transition(JobState.FAILED)
                raise
            self._transition(JobState.DONE)
        return result

    def _run(self, path: str, duration_hint: float, resources: ResourceStack) -> TranscriptionResult:
        self._check_cancelled()
        self._transition(JobState.SIZE_CHECK)
        source = AudioSource.from_path(path, duration_hint)
        check_file_size(source.size_bytes, self.limits)
        if source.duration_seconds > 0:
            check_duration(source.duration_seconds, self.limits)

        direct = not needs_split(source, self.limits)
        if direct:
            self._transition(JobState.DIRECT)
            logger.info("Transcribing %s directly (%d bytes)", path, source.size_bytes)
            chunks = [AudioChunk(path=path, ordinal=0, size_bytes=source.size_bytes)]
        else:
            self._transition(JobState.PLANNING)
            if source.duration_seconds <= 0:
                source = replace(source, duration_seconds=self._probe(path))
                check_duration(source.duration_seconds, self.limits)
            plan = plan_chunks(source.size_bytes, source.duration_seconds, self.limits)

            plan, split = refine_split(source, plan, self.limits, self._segment, resources)
            self._transition(JobState.VALIDATED)
            logger.info(
                "Accepted %ds chunks on attempt %d (%d chunks)",
                plan.segment_seconds,
                plan.attempt,
                len(split.chunks),
            )
            chunks = split.chunks

        self._transition(JobState.TRANSCRIBING)
        stitcher = TimelineStitcher()
        for chunk in chunks:
            self._check_cancelled()
            transcript = self.transcriber.transcribe_file(chunk.path)
            self._check_cancelled()

            duration = self._measure(chunk, transcript, source, direct=direct)
            stitcher.add(
                TranscribedChunk(
                    ordinal=chunk.ordinal,
                    segments=to_raw_segments(transcript, duration),
                    measured_duration_seconds=duration,
                )
            )
            logger.info(
                "Transcribed chunk %d/%d (%d segments)",
                chunk.ordinal + 1,
                len(chunks),
                len(transcript.segments),
            )

        self._transition(JobState.STITCHING)
        result = stitcher.result(cost_per_minute=self.cost_per_minute)
        logger.info(
            "Transcription complete: %d segments over %.1fs",
            len(result.segments),
            result.duration_seconds,
        )
        return result

    def _measure(
        self,
        chunk: AudioChunk,
        transcript: ProviderTranscript,
        source: AudioSource,
        direct: bool,
    ) -> float:
        """Duration used to advance the timeline past *chunk*.

        Split chunks are always probed. An unsplit source reuses its known
        duration, and is only probed when the provider returned bare text that
        needs a synthesized segment spanning the whole file.
        """
        if not direct:
            return self._probe(chunk.path)
        if source.duration_seconds > 0:
            return source.duration_seconds
        if transcript.segments:
            return max(seg.end_seconds for seg in transcript.segments)
        if transcript.text.strip():
            return self._probe(chunk.path)
        return 0.0


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def build_job(
    transcriber: Transcriber | None = None,
    config: Settings | None = None,
    cancel_event: threading.Event | None = None,
) -> TranscriptionJob:
    """Create a job wired from application settings."""
    cfg = config or settings
    return TranscriptionJob(
        transcriber=transcriber
        or WhisperTranscriber(api_key=cfg.openai_api_key or None, model=cfg.transcription_model),
        limits=ChunkingLimits.from_settings(cfg),
        ffmpeg=cfg.ffmpeg_binary,
        ffprobe=cfg.ffprobe_binary,
        temp_root=cfg.temp_dir or None,
        cost_per_minute=cfg.transcription_cost_per_minute,
        cancel_event=cancel_event,
    )


def transcribe_audio(
    path: str,
    duration_hint: float | None = None,
    transcriber: Transcriber | None = None,
    config: Settings | None = None,
    cancel_event: threading.Event | None = None,
) -> TranscriptionResult:
    """Transcribe a local audio file of any length."""
    job = build_job(transcriber=transcriber, config=config, cancel_event=cancel_event)
    return job.run(path, duration_hint)


def transcribe_acquired(
    acquired: AcquiredAudio,
    transcriber: Transcriber | None = None,
    config: Settings | None = None,
    cancel_event: threading.Event | None = None,
) -> TranscriptionResult:
    """Transcribe audio handed over by the acquisition layer and release it afterwards."""
    job = build_job(transcriber=transcriber, config=config, cancel_event=cancel_event)
    return job.run(acquired.path, acquired.duration_hint_seconds, cleanup=acquired.cleanup)


async def _wait_for_worker(worker: asyncio.Future[TranscriptionResult]) -> None:
    """Wait for a cancelled worker to finish releasing its resources."""
    try:
        await worker
    except TranscriptionCancelled:
        pass
    except Exception:
        logger.warning("Transcription worker failed while cancelling", exc_info=True)


async def transcribe_audio_async(
    acquired: AcquiredAudio,
    timeout: float | None = None,
    transcriber: Transcriber | None = None,
    config: Settings | None = None,
) -> TranscriptionResult:
    """Run a job in a worker thread with an optional caller-side timeout.

    On timeout or cancellation the job is signalled to stop, and this
    coroutine waits until the worker has released every temp file before
    raising :class:`TranscriptionCancelled` (timeout) or re-raising
    :class:`asyncio.CancelledError`.
    """
    cancel_event = threading.Event()
    job = build_job(transcriber=transcriber, config=config, cancel_event=cancel_event)
    worker = asyncio.ensure_future(
        asyncio.to_thread(
            job.run, acquired.path, acquired.duration_hint_seconds, acquired.cleanup
        )
    )
    try:
        return await asyncio.wait_for(asyncio.shield(worker), timeout)
    except asyncio.TimeoutError:
        cancel_event.set()
        await _wait_for_worker(worker)
        raise TranscriptionCancelled(f"Transcription timed out after {timeout}s") from None
    except asyncio.CancelledError:
        cancel_event.set()
        await _wait_for_worker(worker)
        raise
