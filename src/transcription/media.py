"""ffmpeg/ffprobe wrappers: process invocation, duration probe and lossless split."""

from __future__ import annotations

import logging
import math
import os
import re
import shlex
import subprocess
import tempfile
import threading
from dataclasses import dataclass

from src.transcription.errors import (
    DurationUnavailable,
    SplitFailed,
    SplitProducedNoOutput,
    SplitToolMissing,
    TranscriptionCancelled,
)
from src.transcription.models import AudioChunk
from src.transcription.resources import ReleaseHandle, directory_handle

logger = logging.getLogger(__name__)

CHUNK_PREFIX = "chunk-"
CHUNK_DIR_PREFIX = "audio-chunks-"
_CHUNK_INDEX_RE = re.compile(rf"^{re.escape(CHUNK_PREFIX)}(\d+)")

# How often a running tool is checked for cancellation
POLL_INTERVAL_SECONDS = 0.2


# ---------------------------------------------------------------------------
# Process invocation
# ---------------------------------------------------------------------------


class ToolError(Exception):
    """Base for typed failures of an external tool invocation."""

    def __init__(self, tool: str, message: str) -> None:
        self.tool = tool
        super().__init__(message)


class ToolNotFoundError(ToolError):
    """The executable could not be found on PATH."""

    def __init__(self, tool: str) -> None:
        super().__init__(tool, f"{tool} not found")


class ToolFailedError(ToolError):
    """The executable ran and exited non-zero (or could not be started)."""

    def __init__(self, tool: str, returncode: int, stderr: str) -> None:
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(tool, f"{tool} exited with status {returncode}")


def run_tool(args: list[str], cancel_event: threading.Event | None = None) -> str:
    """Run an external tool to completion and return its stdout.

    The process is polled so that setting *cancel_event* kills it promptly.

    Raises:
        ToolNotFoundError: The executable does not exist.
        ToolFailedError: Non-zero exit status or the process could not start.
        TranscriptionCancelled: *cancel_event* was set while the tool was running.
    """
    tool = args[0]
    logger.debug("Running %s", shlex.join(args))
    try:
        proc = subprocess.Popen(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except FileNotFoundError as exc:
        raise ToolNotFoundError(tool) from exc
    except OSError as exc:
        raise ToolFailedError(tool, -1, str(exc)) from exc

    with proc:
        while True:
            try:
                stdout, stderr = proc.communicate(timeout=POLL_INTERVAL_SECONDS)
                break
            except subprocess.TimeoutExpired:
                if cancel_event is not None and cancel_event.is_set():
                    proc.kill()
                    proc.communicate()
                    raise TranscriptionCancelled(f"{tool} was cancelled") from None

    if proc.returncode != 0:
        raise ToolFailedError(tool, proc.returncode, stderr or "")
    return stdout or ""


# ---------------------------------------------------------------------------
# Duration probe
# ---------------------------------------------------------------------------


def probe_duration(
    path: str,
    ffprobe: str = "ffprobe",
    cancel_event: threading.Event | None = None,
) -> float:
    """Return the duration of *path* in seconds using ffprobe.

    Raises:
        DurationUnavailable: ffprobe is missing, fails, or prints something
            other than a finite positive number.
    """
    args = [
        ffprobe,
        "-v",
        "error",
        "-show_entries",
        "format=duration",
        "-of",
        "default=noprint_wrappers=1:nokey=1",
        path,
    ]
    try:
        output = run_tool(args, cancel_event=cancel_event).strip()
    except ToolNotFoundError as exc:
        raise DurationUnavailable(path, f"{ffprobe} is not installed") from exc
    except ToolFailedError as exc:
        raise DurationUnavailable(path, f"{ffprobe} failed: {exc.stderr.strip()}") from exc

    try:
        duration = float(output)
    except ValueError as exc:
        raise DurationUnavailable(path, f"non-numeric probe output {output!r}") from exc

    if not math.isfinite(duration) or duration <= 0:
        raise DurationUnavailable(path, f"probe returned {duration}")
    return duration


# ---------------------------------------------------------------------------
# Segmenter
# ---------------------------------------------------------------------------


@dataclass
class SplitResult:
    """Chunks produced by one split run and the handle owning their directory."""

    directory: str
    chunks: list[AudioChunk]
    handle: ReleaseHandle

    @property
    def max_chunk_bytes(self) -> int:
        return max((c.size_bytes for c in self.chunks), default=0)


def _collect_chunks(directory: str) -> list[AudioChunk]:
    """List chunk files in *directory* ordered by their numeric index."""
    indexed: list[tuple[int, str]] = []
    for name in os.listdir(directory):
        match = _CHUNK_INDEX_RE.match(name)
        if match:
            indexed.append((int(match.group(1)), name))
    indexed.sort()

    chunks: list[AudioChunk] = []
    for ordinal, (_, name) in enumerate(indexed):
        chunk_path = os.path.join(directory, name)
        chunks.append(
            AudioChunk(path=chunk_path, ordinal=ordinal, size_bytes=os.path.getsize(chunk_path))
        )
    return chunks


def split_audio(
    path: str,
    segment_seconds: int,
    ffmpeg: str = "ffmpeg",
    temp_root: str | None = None,
    cancel_event: threading.Event | None = None,
) -> SplitResult:
    """Losslessly split *path* into ``segment_seconds``-long chunks.

    Uses ffmpeg's segment muxer with stream copy, so no audio is re-encoded and
    each chunk's timestamps restart at zero. Chunks are written to a fresh
    uniquely named temp directory; the returned handle removes it.

    On any failure the directory is removed before the error propagates.

    Raises:
        SplitToolMissing: ffmpeg is not installed.
        SplitFailed: ffmpeg exited non-zero.
        SplitProducedNoOutput: ffmpeg succeeded but wrote no chunk files.
    """
    directory = tempfile.mkdtemp(prefix=CHUNK_DIR_PREFIX, dir=temp_root or None)
    handle = directory_handle(directory)
    extension = os.path.splitext(path)[1] or ".mp3"
    output_pattern = os.path.join(directory, f"{CHUNK_PREFIX}%03d{extension}")

    args = [
        ffmpeg,
        "-v",
        "error",
        "-nostdin",
        "-i",
        path,
        "-f",
        "segment",
        "-segment_time",
        str(segment_seconds),
        "-reset_timestamps",
        "1",
        "-c",
        "copy",
        output_pattern,
    ]

    try:
        run_tool(args, cancel_event=cancel_event)
        chunks = _collect_chunks(directory)
        if not chunks:
            raise SplitProducedNoOutput(path)
    except ToolNotFoundError as exc:
        handle.release()
        raise SplitToolMissing(ffmpeg) from exc
    except ToolFailedError as exc:
        handle.release()
        raise SplitFailed(ffmpeg, exc.returncode, exc.stderr) from exc
    except BaseException:
        handle.release()
        raise

    logger.info(
        "Split %s into %d chunks of %ds (largest %d bytes)",
        path,
        len(chunks),
        segment_seconds,
        max(c.size_bytes for c in chunks),
    )
    return SplitResult(directory=directory, chunks=chunks, handle=handle)
