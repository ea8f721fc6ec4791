"""Type definitions for transcription sessions.

Provides:
- TranscriptionUpdate: text pushed to the UI while a session runs
- TranscriptionResult: terminal result of a session
- TranscriptSegment: finalized fragments plus one pending fragment
- SessionState / SessionOutcome: streaming session lifecycle
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum


class SessionState(Enum):
    """State of a streaming transcription session."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    DRAINING = "draining"  # All input sent, awaiting backend completion
    CLOSING = "closing"
    CLOSED = "closed"


class SessionOutcome(Enum):
    """How a closed session ended."""

    RESOLVED = "resolved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class TranscriptionUpdate:
    """Transcript snapshot sent to the UI.

    ``text`` is the finalized text plus the pending fragment; ``is_final``
    is True only when this update crossed a turn boundary.
    """

    text: str
    is_final: bool = False


@dataclass(frozen=True)
class TranscriptionResult:
    """Final transcription of one session."""

    full_transcription: str
    duration_seconds: float | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "full_transcription": self.full_transcription,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class TranscriptSegment:
    """Ordered finalized fragments plus at most one pending fragment.

    Finalized fragments are append-only. The pending fragment is replaced
    or cleared on each update and is never merged into an already
    finalized fragment.
    """

    _finalized: list[str] = field(default_factory=list)
    pending: str = ""

    @property
    def finalized(self) -> tuple[str, ...]:
        return tuple(self._finalized)

    def set_pending(self, text: str) -> None:
        self.pending = text

    def commit(self) -> str | None:
        """Move the pending fragment into the finalized list.

        Returns:
            The committed fragment, or None if the pending text was blank

        """
        fragment = self.pending.strip()
        self.pending = ""
        if not fragment:
            return None
        self._finalized.append(fragment)
        return fragment

    @property
    def final_text(self) -> str:
        return " ".join(self._finalized).strip()

    @property
    def text(self) -> str:
        """Finalized text followed by the pending fragment."""
        parts = list(self._finalized)
        if self.pending:
            parts.append(self.pending)
        return " ".join(parts).strip()


TranscriptionUpdateCallback = Callable[[TranscriptionUpdate], None]
ProgressCallback = Callable[[float], None]
