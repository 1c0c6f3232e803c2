from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings

MIB = 1024 * 1024


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    openai_api_key: str = ""

    # Speech-to-text provider
    transcription_model: str = "whisper-1"
    transcription_cost_per_minute: float = 0.006

    # Chunking limits
    app_max_file_size_bytes: int = 500 * MIB
    provider_max_file_size_bytes: int = 25 * MIB
    chunk_safety_ratio: float = 0.9
    min_chunk_seconds: int = 30
    max_split_attempts: int = 3
    max_duration_seconds: int = 5 * 60 * 60  # 0 disables the ceiling

    # External tools
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"
    temp_dir: str = ""  # empty -> system temp dir

    # App config
    transcribe_timeout_seconds: float = 3600.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
