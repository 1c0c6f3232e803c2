"""Speech-to-text client for the OpenAI Whisper API."""

from __future__ import annotations

from typing import Any, Protocol

import openai
from openai import OpenAI

from src.transcription.errors import AuthenticationError, ProviderError, ProviderRateLimited
from src.transcription.models import ProviderTranscript, RawSegment


class Transcriber(Protocol):
    """Anything that can turn one audio file into a :class:`ProviderTranscript`."""

    def transcribe_file(self, path: str) -> ProviderTranscript: ...


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read *name* from an SDK model or a plain dict."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def parse_transcription_response(response: Any) -> ProviderTranscript:
    """Normalise a ``verbose_json`` (or plain) transcription response.

    Segment timestamps are kept verbatim; they are relative to the start of
    the submitted file.
    """
    if isinstance(response, str):
        return ProviderTranscript(text=response)

    segments: list[RawSegment] = []
    for seg in _field(response, "segments") or []:
        segments.append(
            RawSegment(
                text=str(_field(seg, "text", "")).strip(),
                start_seconds=float(_field(seg, "start", 0.0)),
                end_seconds=float(_field(seg, "end", 0.0)),
            )
        )
    return ProviderTranscript(text=_field(response, "text") or "", segments=segments)


def to_raw_segments(transcript: ProviderTranscript, chunk_duration_seconds: float) -> list[RawSegment]:
    """Return the provider's segments, or one synthesized segment covering the chunk.

    A response with no segments and no text yields no segments.
    """
    if transcript.segments:
        return list(transcript.segments)
    text = transcript.text.strip()
    if not text:
        return []
    return [RawSegment(text=text, start_seconds=0.0, end_seconds=chunk_duration_seconds)]


class WhisperTranscriber:
    """Submits audio files to ``audio.transcriptions`` with segment timestamps.

    Provider errors are translated into the pipeline's error types and never
    retried here; retry policy belongs to the caller.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "whisper-1",
        client: OpenAI | None = None,
    ) -> None:
        self.model = model
        self._api_key = api_key
        self._client = client

    def _get_client(self) -> OpenAI:
        # Lazily created so a missing key only fails when a request is made
        if self._client is None:
            if not self._api_key:
                raise AuthenticationError("OPENAI_API_KEY environment variable is not set")
            self._client = OpenAI(api_key=self._api_key)
        return self._client

    def transcribe_file(self, path: str) -> ProviderTranscript:
        client = self._get_client()
        try:
            with open(path, "rb") as audio_file:
                response = client.audio.transcriptions.create(
                    file=audio_file,
                    model=self.model,
                    response_format="verbose_json",
                    timestamp_granularities=["segment"],
                )
        except openai.AuthenticationError as exc:
            raise AuthenticationError(f"Provider rejected the API key: {exc}") from exc
        except openai.RateLimitError as exc:
            raise ProviderRateLimited(f"Provider rate limit hit: {exc}") from exc
        except openai.APIStatusError as exc:
            raise ProviderError(f"Transcription request failed: {exc}", exc.status_code) from exc
        except openai.APIError as exc:
            # Connection errors and timeouts carry no status code
            raise ProviderError(f"Transcription service unavailable: {exc}") from exc

        return parse_transcription_response(response)
