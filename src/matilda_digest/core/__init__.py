"""Core package exports."""

from .config import ConfigLoader, get_config, reset_config
from .exceptions import (
    AuthOrTransportError,
    BackendError,
    ConfigurationError,
    DecodeError,
    DigestError,
    PipelineBusyError,
    PipelineError,
    SessionStateError,
    StreamingError,
    SummarizationError,
    TranscriptionConnectionError,
    TranscriptionError,
    TransmissionError,
)
from .logging import setup_logging

__all__ = [
    "ConfigLoader",
    "get_config",
    "reset_config",
    "setup_logging",
    "AuthOrTransportError",
    "BackendError",
    "ConfigurationError",
    "DecodeError",
    "DigestError",
    "PipelineBusyError",
    "PipelineError",
    "SessionStateError",
    "StreamingError",
    "SummarizationError",
    "TranscriptionConnectionError",
    "TranscriptionError",
    "TransmissionError",
]
