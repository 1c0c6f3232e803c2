"""Error taxonomy for the chunked transcription pipeline.

Every error a job can surface derives from :class:`TranscriptionError`.
Classification is by type only; callers never inspect message text.
"""

from __future__ import annotations


def _mb(num_bytes: float) -> float:
    return num_bytes / 1024 / 1024


class TranscriptionError(Exception):
    """Base class for all pipeline failures."""

    retryable: bool = False


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class FileTooLarge(TranscriptionError):
    """Source exceeds the application-level file size ceiling."""

    def __init__(self, size_bytes: int, limit_bytes: int) -> None:
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes
        super().__init__(
            f"Audio file is too large ({round(_mb(size_bytes))}MB). "
            f"Maximum size is {round(_mb(limit_bytes))}MB. Try a shorter video."
        )


class DurationTooLong(TranscriptionError):
    """Source duration exceeds the configured ceiling."""

    def __init__(self, duration_seconds: float, limit_seconds: float) -> None:
        self.duration_seconds = duration_seconds
        self.limit_seconds = limit_seconds
        super().__init__(
            f"Audio is {duration_seconds / 3600:.1f} hours long; "
            f"maximum is {limit_seconds / 3600:g} hours"
        )


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


class DurationUnavailable(TranscriptionError):
    """Duration probe failed or returned a non-positive / non-numeric value."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Could not determine audio duration for {path}: {reason}")


class BitrateUnavailable(TranscriptionError):
    """Observed bitrate is not positive, so no split duration can be planned."""

    def __init__(self, size_bytes: int, duration_seconds: float) -> None:
        self.size_bytes = size_bytes
        self.duration_seconds = duration_seconds
        super().__init__(
            f"Could not estimate audio bitrate for chunking "
            f"(size={size_bytes} bytes, duration={duration_seconds}s)"
        )


# ---------------------------------------------------------------------------
# Splitting
# ---------------------------------------------------------------------------


class SplitToolMissing(TranscriptionError):
    """The lossless splitting tool is not installed."""

    def __init__(self, tool: str) -> None:
        self.tool = tool
        super().__init__(f"{tool} is required to split large audio files")


class SplitFailed(TranscriptionError):
    """The splitting tool ran but exited with an error."""

    def __init__(self, tool: str, returncode: int, stderr: str) -> None:
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"{tool} exited with status {returncode}: {stderr.strip()[:500]}")


class SplitProducedNoOutput(TranscriptionError):
    """The splitting tool succeeded but wrote no chunk files."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Audio chunking produced no output for {path}")


class RefinementStalled(TranscriptionError):
    """Shrinking the plan would not reduce the split duration any further."""

    def __init__(self, segment_seconds: int, max_chunk_bytes: int, limit_bytes: int) -> None:
        self.segment_seconds = segment_seconds
        self.max_chunk_bytes = max_chunk_bytes
        self.limit_bytes = limit_bytes
        super().__init__(
            f"Unable to split audio into {round(_mb(limit_bytes))}MB chunks: "
            f"{segment_seconds}s chunks still measure {_mb(max_chunk_bytes):.1f}MB"
        )


class RefinementExhausted(TranscriptionError):
    """All split attempts produced at least one oversized chunk."""

    def __init__(self, attempts: int, max_chunk_bytes: int, limit_bytes: int) -> None:
        self.attempts = attempts
        self.max_chunk_bytes = max_chunk_bytes
        self.limit_bytes = limit_bytes
        super().__init__(
            f"Failed to split audio under {round(_mb(limit_bytes))}MB after {attempts} attempts "
            f"(largest chunk {_mb(max_chunk_bytes):.1f}MB)"
        )


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------


class AuthenticationError(TranscriptionError):
    """Provider credential is missing or rejected."""


class ProviderRateLimited(TranscriptionError):
    """Provider throttled the request; the caller may retry later."""

    retryable = True


class ProviderError(TranscriptionError):
    """Any other provider failure (bad request, outage, network)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


# ---------------------------------------------------------------------------
# Job control
# ---------------------------------------------------------------------------


class TranscriptionCancelled(TranscriptionError):
    """The job was cancelled (e.g. caller timeout) after releasing its resources."""

    retryable = True
