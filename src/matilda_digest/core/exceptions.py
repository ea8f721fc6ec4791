"""Exception hierarchy for Matilda Digest.

Every stage raises one of these; the pipeline wraps them in
``PipelineError`` so callers see a single terminal failure per run.
"""


class DigestError(Exception):
    """Base exception for all digest errors."""


class ConfigurationError(DigestError):
    """Raised when configuration is missing or invalid."""


class DecodeError(DigestError):
    """Raised when the input media cannot be decoded into PCM audio."""


class TranscriptionError(DigestError):
    """Base exception for transcription-related errors."""

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)


class StreamingError(TranscriptionError):
    """Exception for streaming session errors."""


class TranscriptionConnectionError(StreamingError):
    """Raised when the streaming handshake or transport setup fails."""


class TransmissionError(StreamingError):
    """Raised when sending an audio packet fails mid-stream."""


class BackendError(StreamingError):
    """Raised when a backend reports an explicit error event."""


class SessionStateError(StreamingError):
    """Raised on an illegal session state transition."""

    def __init__(self, from_state: object, to_state: object):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Illegal session transition: {from_state} -> {to_state}")


class AuthOrTransportError(TranscriptionError):
    """Raised when a single-shot backend answers with a non-success response."""

    def __init__(self, status: int | None, body: str, cause: Exception | None = None):
        self.status = status
        self.body = body
        if status is None:
            message = f"Transcription request failed: {body}"
        else:
            message = f"Transcription backend error: {status} - {body}"
        super().__init__(message, cause)


class SummarizationError(DigestError):
    """Raised when the summarization backend fails."""


class PipelineError(DigestError):
    """Raised when a pipeline stage fails.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, stage: str, message: str):
        self.stage = stage
        super().__init__(f"{stage} failed: {message}")


class PipelineBusyError(DigestError):
    """Raised when a pipeline is asked to run while a run is in progress."""


__all__ = [
    "DigestError",
    "ConfigurationError",
    "DecodeError",
    "TranscriptionError",
    "StreamingError",
    "TranscriptionConnectionError",
    "TransmissionError",
    "BackendError",
    "SessionStateError",
    "AuthOrTransportError",
    "SummarizationError",
    "PipelineError",
    "PipelineBusyError",
]
