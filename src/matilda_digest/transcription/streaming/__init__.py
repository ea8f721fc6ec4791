"""Live (bidirectional) transcription over a paced packet stream."""

from .config import StreamingConfig
from .session import LiveTranscriptionSession
from .strategies import (
    AccumulationStrategy,
    ConcatenateStrategy,
    ReplaceStrategy,
    get_accumulation_strategy,
    get_available_strategies,
)
from .transport import (
    GeminiLiveTransport,
    LiveServerEvent,
    LiveTransport,
    LiveTransportHandlers,
)

__all__ = [
    "AccumulationStrategy",
    "ConcatenateStrategy",
    "GeminiLiveTransport",
    "LiveServerEvent",
    "LiveTranscriptionSession",
    "LiveTransport",
    "LiveTransportHandlers",
    "ReplaceStrategy",
    "StreamingConfig",
    "get_accumulation_strategy",
    "get_available_strategies",
]
