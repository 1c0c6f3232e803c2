"""Fakes for ffmpeg/ffprobe and the speech-to-text provider, shared by the tests."""

from __future__ import annotations

import os
import threading
from collections.abc import Callable
from pathlib import Path

from src.transcription.models import ProviderTranscript, RawSegment


def make_audio_file(path: Path, size_bytes: int) -> str:
    """Create a sparse file of *size_bytes* standing in for real audio."""
    with open(path, "wb") as fh:
        fh.truncate(size_bytes)
    return str(path)


def list_chunk_dirs(root: Path) -> list[str]:
    return [name for name in os.listdir(root) if name.startswith("audio-chunks-")]


class FakeMedia:
    """Replacement for ``media.run_tool`` that imitates ffprobe and ffmpeg.

    ffmpeg "splits" the source into sparse chunk files whose size is
    ``seconds * chunk_bytes_per_second + chunk_overhead_bytes``; ffprobe
    reports the registered duration of any path, plus ``probe_jitter`` for
    chunks to mimic lossless-cut rounding.
    """

    def __init__(
        self,
        source_duration: float,
        chunk_bytes_per_second: float,
        chunk_overhead_bytes: int = 0,
        probe_jitter: float = 0.0,
    ) -> None:
        self.source_duration = source_duration
        self.chunk_bytes_per_second = chunk_bytes_per_second
        self.chunk_overhead_bytes = chunk_overhead_bytes
        self.probe_jitter = probe_jitter
        self.durations: dict[str, float] = {}
        self.calls: list[list[str]] = []
        self.split_dirs: list[str] = []
        self.segment_times: list[int] = []
        # For each split, the earlier split dirs that still existed when it started
        self.live_dirs_at_split: list[list[str]] = []

    def register(self, path: str, duration: float) -> None:
        self.durations[path] = duration

    def tool_calls(self, tool: str) -> list[list[str]]:
        return [c for c in self.calls if os.path.basename(c[0]) == tool]

    def __call__(self, args: list[str], cancel_event: threading.Event | None = None) -> str:
        self.calls.append(list(args))
        tool = os.path.basename(args[0])
        if tool == "ffprobe":
            return f"{self.durations[args[-1]]}\n"
        if tool == "ffmpeg":
            return self._split(args)
        raise AssertionError(f"unexpected tool {tool}")

    def _split(self, args: list[str]) -> str:
        seconds = int(args[args.index("-segment_time") + 1])
        pattern = args[-1]
        self.live_dirs_at_split.append([d for d in self.split_dirs if os.path.exists(d)])
        self.split_dirs.append(os.path.dirname(pattern))
        self.segment_times.append(seconds)

        remaining = self.source_duration
        index = 0
        while remaining > 0:
            duration = min(seconds, remaining)
            chunk_path = pattern % index
            with open(chunk_path, "wb") as fh:
                fh.truncate(int(duration * self.chunk_bytes_per_second) + self.chunk_overhead_bytes)
            self.durations[chunk_path] = duration + self.probe_jitter
            remaining -= duration
            index += 1
        return ""


class FakeTranscriber:
    """Provider stand-in returning canned transcripts, recording every call."""

    def __init__(
        self,
        respond: Callable[[int, str], ProviderTranscript] | None = None,
    ) -> None:
        self.calls: list[str] = []
        self._respond = respond or self.two_segments

    @staticmethod
    def two_segments(index: int, path: str) -> ProviderTranscript:
        return ProviderTranscript(
            text=f"chunk {index}",
            segments=[
                RawSegment(text=f"chunk {index} a", start_seconds=0.0, end_seconds=10.0),
                RawSegment(text=f"chunk {index} b", start_seconds=10.0, end_seconds=20.0),
            ],
        )

    def transcribe_file(self, path: str) -> ProviderTranscript:
        index = len(self.calls)
        self.calls.append(path)
        return self._respond(index, path)
