"""Transcription backends for Matilda Digest."""

from .batch import PROGRESS_STARTED, WhisperTranscriber
from .factory import (
    GeminiLiveTranscriber,
    Transcriber,
    WhisperBatchTranscriber,
    create_transcriber,
    get_available_backends,
    get_backend_info,
)
from .types import (
    SessionOutcome,
    SessionState,
    TranscriptionResult,
    TranscriptionUpdate,
    TranscriptSegment,
)

__all__ = [
    "GeminiLiveTranscriber",
    "PROGRESS_STARTED",
    "SessionOutcome",
    "SessionState",
    "Transcriber",
    "TranscriptSegment",
    "TranscriptionResult",
    "TranscriptionUpdate",
    "WhisperBatchTranscriber",
    "WhisperTranscriber",
    "create_transcriber",
    "get_available_backends",
    "get_backend_info",
]
