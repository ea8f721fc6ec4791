"""Accumulation strategies for partial transcription events.

Streaming backends disagree on what a partial event carries. Some send
deltas that must be appended to the pending fragment; others resend the
whole hypothesis for the current turn, which must replace it. The session
delegates that decision to a strategy so it can be matched to whichever
backend contract is in use.
"""

from typing import Protocol, runtime_checkable

from ...core.exceptions import ConfigurationError


@runtime_checkable
class AccumulationStrategy(Protocol):
    """Protocol for folding an inbound partial into the pending fragment."""

    name: str

    def fold(self, pending: str, incoming: str) -> str:
        """Return the new pending fragment.

        Args:
            pending: Current pending (non-final) text
            incoming: Text carried by the inbound event

        """
        ...


class ConcatenateStrategy:
    """Treat each partial as a delta appended to the pending text."""

    name = "concatenate"

    def fold(self, pending: str, incoming: str) -> str:
        return pending + incoming


class ReplaceStrategy:
    """Treat each partial as the full current hypothesis for the turn."""

    name = "replace"

    def fold(self, pending: str, incoming: str) -> str:
        return incoming


_STRATEGIES: dict[str, type] = {
    ConcatenateStrategy.name: ConcatenateStrategy,
    ReplaceStrategy.name: ReplaceStrategy,
}


def get_accumulation_strategy(name: str) -> AccumulationStrategy:
    """Create an accumulation strategy by name.

    Raises:
        ConfigurationError: If no strategy is registered under name

    """
    try:
        return _STRATEGIES[name.lower()]()
    except KeyError:
        available = ", ".join(sorted(_STRATEGIES))
        raise ConfigurationError(f"Unknown accumulation strategy '{name}'. Available: {available}") from None


def get_available_strategies() -> list[str]:
    return sorted(_STRATEGIES)
