"""Shared fixtures: an isolated temp root and test settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.config import Settings


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    """Directory that receives every temp chunk directory created by a job."""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def config(work_dir: Path) -> Settings:
    return Settings(  # type: ignore[call-arg]
        _env_file=None,
        openai_api_key="test-key",
        temp_dir=str(work_dir),
        ffmpeg_binary="ffmpeg",
        ffprobe_binary="ffprobe",
    )
