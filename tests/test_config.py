"""Tests for Settings, ChunkingLimits and the job state enum."""

from __future__ import annotations

import json

import pytest

from src.config import Settings
from src.pipeline_config import ChunkingLimits, JobState

MIB = 1024 * 1024


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("PROVIDER_MAX_FILE_SIZE_BYTES", "MIN_CHUNK_SECONDS", "TRANSCRIPTION_MODEL"):
            monkeypatch.delenv(name, raising=False)
        cfg = Settings(_env_file=None)  # type: ignore[call-arg]
        assert cfg.provider_max_file_size_bytes == 25 * MIB
        assert cfg.app_max_file_size_bytes == 500 * MIB
        assert cfg.chunk_safety_ratio == 0.9
        assert cfg.min_chunk_seconds == 30
        assert cfg.max_split_attempts == 3
        assert cfg.transcription_model == "whisper-1"

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MIN_CHUNK_SECONDS", "60")
        monkeypatch.setenv("FFMPEG_BINARY", "/usr/local/bin/ffmpeg")
        cfg = Settings(_env_file=None)  # type: ignore[call-arg]
        assert cfg.min_chunk_seconds == 60
        assert cfg.ffmpeg_binary == "/usr/local/bin/ffmpeg"


# ---------------------------------------------------------------------------
# ChunkingLimits
# ---------------------------------------------------------------------------


class TestChunkingLimits:
    def test_budget_applies_safety_ratio(self) -> None:
        limits = ChunkingLimits(provider_max_file_size_bytes=25_000_000, chunk_safety_ratio=0.9)
        assert limits.provider_budget_bytes == pytest.approx(22_500_000)

    def test_from_settings(self) -> None:
        cfg = Settings(  # type: ignore[call-arg]
            _env_file=None, min_chunk_seconds=45, max_split_attempts=5, max_duration_seconds=0
        )
        limits = ChunkingLimits.from_settings(cfg)
        assert limits.min_chunk_seconds == 45
        assert limits.max_split_attempts == 5
        assert limits.max_duration_seconds == 0

    def test_immutable(self) -> None:
        limits = ChunkingLimits()
        with pytest.raises(AttributeError):
            limits.min_chunk_seconds = 1  # type: ignore[misc]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"chunk_safety_ratio": 0},
            {"chunk_safety_ratio": 1.5},
            {"min_chunk_seconds": 0},
            {"max_split_attempts": 0},
            {"provider_max_file_size_bytes": 0},
            {"max_duration_seconds": -1},
        ],
    )
    def test_rejects_invalid_values(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            ChunkingLimits(**kwargs)


# ---------------------------------------------------------------------------
# JobState
# ---------------------------------------------------------------------------


class TestJobState:
    def test_is_str_subclass(self) -> None:
        """Enum values behave as plain strings for JSON serialization."""
        assert isinstance(JobState.DONE, str)
        assert JobState("transcribing") is JobState.TRANSCRIBING

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError):
            JobState("unknown")

    def test_serializes_as_value(self) -> None:
        assert JobState.DONE.value == "done"
        assert json.dumps({"state": JobState.FAILED}) == '{"state": "failed"}'
