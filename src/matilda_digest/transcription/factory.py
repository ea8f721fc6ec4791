"""Transcriber registry.

Keep backend selection centralized here; the pipeline only sees the
``Transcriber`` protocol. Credentials are read from configuration when a
transcriber is built, never from inside a session.
"""

from typing import Literal, Protocol, runtime_checkable

from ..audio.resample import resample
from ..audio.types import AudioBuffer
from ..audio.wav import encode_wav
from ..core.config import ConfigLoader, get_config, setup_logging
from ..core.exceptions import ConfigurationError
from .batch import WhisperTranscriber
from .streaming.config import StreamingConfig
from .streaming.session import LiveTranscriptionSession
from .streaming.transport import GeminiLiveTransport
from .types import ProgressCallback, TranscriptionResult, TranscriptionUpdateCallback

logger = setup_logging(__name__)

TranscriberKind = Literal["streaming", "single_shot"]


@runtime_checkable
class Transcriber(Protocol):
    """Turns a decoded AudioBuffer into a transcript.

    ``transcribe_buffer`` receives the buffer at its source rate; each
    transcriber prepares it for its own wire format.
    """

    name: str
    kind: TranscriberKind

    async def transcribe_buffer(
        self,
        buffer: AudioBuffer,
        on_update: TranscriptionUpdateCallback | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> TranscriptionResult: ...


class GeminiLiveTranscriber:
    """Streaming transcriber backed by a fresh Gemini Live session per call."""

    name = "gemini_live"
    kind: TranscriberKind = "streaming"

    def __init__(self, api_key: str, config: StreamingConfig):
        self.api_key = api_key
        self.config = config

    def _create_transport(self) -> GeminiLiveTransport:
        return GeminiLiveTransport(
            api_key=self.api_key,
            model=self.config.model,
            endpoint=self.config.endpoint,
            voice_name=self.config.voice_name,
            open_timeout_s=self.config.connect_timeout_s,
        )

    async def transcribe_buffer(
        self,
        buffer: AudioBuffer,
        on_update: TranscriptionUpdateCallback | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> TranscriptionResult:
        prepared = resample(buffer, self.config.sample_rate)
        session = LiveTranscriptionSession(
            transport_factory=self._create_transport,
            config=self.config,
            on_transcription_update=on_update,
            on_progress_update=on_progress,
        )
        return await session.run(prepared.mono())


class WhisperBatchTranscriber:
    """Single-shot transcriber that uploads the buffer as a WAV file."""

    name = "openai_whisper"
    kind: TranscriberKind = "single_shot"

    def __init__(self, whisper: WhisperTranscriber):
        self.whisper = whisper

    async def transcribe_buffer(
        self,
        buffer: AudioBuffer,
        on_update: TranscriptionUpdateCallback | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> TranscriptionResult:
        wav_bytes = encode_wav(buffer)
        result = await self.whisper.transcribe(wav_bytes, on_update, on_progress)
        return TranscriptionResult(
            full_transcription=result.full_transcription,
            duration_seconds=buffer.duration_seconds,
        )


def _build_gemini_live(config: ConfigLoader) -> Transcriber:
    return GeminiLiveTranscriber(config.gemini_api_key, StreamingConfig.from_config(config))


def _build_openai_whisper(config: ConfigLoader) -> Transcriber:
    openai_cfg = config.get("openai", {})
    whisper = WhisperTranscriber(
        config.openai_api_key,
        model=openai_cfg.get("whisper_model", "whisper-1"),
        endpoint=openai_cfg.get("transcription_endpoint", "https://api.openai.com/v1/audio/transcriptions"),
        timeout_s=float(openai_cfg.get("request_timeout_s", 300.0)),
    )
    return WhisperBatchTranscriber(whisper)


_BUILDERS = {
    GeminiLiveTranscriber.name: _build_gemini_live,
    WhisperBatchTranscriber.name: _build_openai_whisper,
}


def get_available_backends() -> list[str]:
    """Return list of registered backend names."""
    return list(_BUILDERS)


def get_backend_info() -> dict[str, dict]:
    """Return detailed info about all backends."""
    return {
        "gemini_live": {
            "kind": "streaming",
            "description": "Gemini Live bidirectional session, paced 16 kHz PCM",
            "credentials": "gemini.api_key / GEMINI_API_KEY",
        },
        "openai_whisper": {
            "kind": "single_shot",
            "description": "OpenAI Whisper upload of the whole file as WAV",
            "credentials": "openai.api_key / OPENAI_API_KEY",
        },
    }


def create_transcriber(config: ConfigLoader | None = None, backend: str | None = None) -> Transcriber:
    """Build the transcriber for backend, or the configured default.

    Raises:
        ConfigurationError: If backend is not a registered name

    """
    config = config or get_config()
    backend_name = (backend or config.transcription_backend).lower()
    builder = _BUILDERS.get(backend_name)
    if builder is None:
        raise ConfigurationError(
            f"Unknown backend: '{backend_name}'\nAvailable backends: {', '.join(get_available_backends())}"
        )
    logger.info(f"Using transcription backend: {backend_name}")
    return builder(config)
