"""Streaming configuration from config.toml.

Provides StreamingConfig with the pacing and closure defaults of the live
transcription session.
"""

from dataclasses import dataclass

from ...core.config import ConfigLoader, get_config


@dataclass
class StreamingConfig:
    """Configuration for live transcription sessions.

    Loaded from config.toml ``[digest.streaming]`` and ``[digest.gemini]``.
    """

    # Audio packetization
    sample_rate: int = 16000
    chunk_size: int = 4096

    # Pacing and closure timing
    send_interval_ms: int = 200
    session_close_delay_ms: int = 5000
    connect_timeout_s: float = 30.0

    # Partial event handling ("concatenate" or "replace")
    accumulation: str = "concatenate"

    # Backend-specific
    model: str = "gemini-2.5-flash-native-audio-preview-09-2025"
    endpoint: str = (
        "wss://generativelanguage.googleapis.com/ws/"
        "google.ai.generativelanguage.v1beta.GenerativeService.BidiGenerateContent"
    )
    voice_name: str = "Zephyr"

    @classmethod
    def from_config(cls, config: ConfigLoader | None = None) -> "StreamingConfig":
        """Load streaming config from config.toml."""
        config = config or get_config()
        streaming_cfg = config.get("streaming", {})
        gemini_cfg = config.get("gemini", {})
        defaults = cls()

        return cls(
            sample_rate=config.target_sample_rate,
            chunk_size=int(streaming_cfg.get("chunk_size", defaults.chunk_size)),
            send_interval_ms=int(streaming_cfg.get("send_interval_ms", defaults.send_interval_ms)),
            session_close_delay_ms=int(
                streaming_cfg.get("session_close_delay_ms", defaults.session_close_delay_ms)
            ),
            connect_timeout_s=float(streaming_cfg.get("connect_timeout_s", defaults.connect_timeout_s)),
            accumulation=str(streaming_cfg.get("accumulation", defaults.accumulation)),
            model=str(gemini_cfg.get("live_model", defaults.model)),
            endpoint=str(gemini_cfg.get("live_endpoint", defaults.endpoint)),
            voice_name=str(gemini_cfg.get("voice_name", defaults.voice_name)),
        )

    @property
    def send_interval_seconds(self) -> float:
        return self.send_interval_ms / 1000

    @property
    def session_close_delay_seconds(self) -> float:
        return self.session_close_delay_ms / 1000
