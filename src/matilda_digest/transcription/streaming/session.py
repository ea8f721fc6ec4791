#!/usr/bin/env python3
"""Live transcription session.

Drives one bidirectional transcription session from handshake to final
transcript:

    CONNECTING -> OPEN -> DRAINING -> CLOSING -> CLOSED

Audio is paced onto the transport by a ``loop.call_later`` chain. Once all
input has been sent the session waits for the backend to finish the turn,
falling back to a forced close after ``session_close_delay_ms``. The
awaited result is resolved exactly once, when the transport acknowledges
the close.
"""

import asyncio
from collections.abc import Callable

import numpy as np

from ...audio.packetizer import PacketizedChunk, Packetizer
from ...core.config import setup_logging
from ...core.exceptions import (
    BackendError,
    SessionStateError,
    StreamingError,
    TranscriptionConnectionError,
    TransmissionError,
)
from ..types import (
    ProgressCallback,
    SessionOutcome,
    SessionState,
    TranscriptionResult,
    TranscriptionUpdate,
    TranscriptionUpdateCallback,
    TranscriptSegment,
)
from .config import StreamingConfig
from .strategies import AccumulationStrategy, get_accumulation_strategy
from .transport import LiveServerEvent, LiveTransport, LiveTransportHandlers

logger = setup_logging(__name__)

_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.CONNECTING}),
    SessionState.CONNECTING: frozenset({SessionState.OPEN, SessionState.CLOSED}),
    SessionState.OPEN: frozenset({SessionState.DRAINING, SessionState.CLOSING, SessionState.CLOSED}),
    SessionState.DRAINING: frozenset({SessionState.CLOSING, SessionState.CLOSED}),
    SessionState.CLOSING: frozenset({SessionState.CLOSED}),
    SessionState.CLOSED: frozenset(),
}


class LiveTranscriptionSession:
    """Single-use streaming transcription session.

    Example:
        session = LiveTranscriptionSession(
            transport_factory=lambda: GeminiLiveTransport(api_key, model, endpoint),
            config=StreamingConfig.from_config(),
            on_transcription_update=print,
        )
        result = await session.run(buffer.mono())

    """

    def __init__(
        self,
        transport_factory: Callable[[], LiveTransport],
        config: StreamingConfig | None = None,
        on_transcription_update: TranscriptionUpdateCallback | None = None,
        on_progress_update: ProgressCallback | None = None,
        accumulation: AccumulationStrategy | None = None,
    ):
        """Initialize the session.

        Args:
            transport_factory: Builds the transport used for this session
            config: Pacing, packetization and closure settings
            on_transcription_update: Called with each transcript snapshot
            on_progress_update: Called with the percentage of samples sent
            accumulation: Partial event strategy (defaults to config.accumulation)

        """
        self.config = config or StreamingConfig()
        self._transport_factory = transport_factory
        self._on_transcription_update = on_transcription_update
        self._on_progress_update = on_progress_update
        self._accumulation = accumulation or get_accumulation_strategy(self.config.accumulation)

        self._state = SessionState.IDLE
        self._outcome: SessionOutcome | None = None
        self._transcript = TranscriptSegment()

        self._loop: asyncio.AbstractEventLoop | None = None
        self._future: asyncio.Future | None = None
        self._transport: LiveTransport | None = None
        self._transport_connected = False
        self._packetizer: Packetizer | None = None

        self._ready_timer: asyncio.TimerHandle | None = None
        self._pacing_timer: asyncio.TimerHandle | None = None
        self._fallback_timer: asyncio.TimerHandle | None = None
        self._send_task: asyncio.Task | None = None
        self._background_tasks: set[asyncio.Task] = set()
        self._started = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def outcome(self) -> SessionOutcome | None:
        return self._outcome

    @property
    def transcript(self) -> TranscriptSegment:
        return self._transcript

    @property
    def sent_samples(self) -> int:
        return self._packetizer.sent_samples if self._packetizer else 0

    async def run(self, samples: np.ndarray) -> TranscriptionResult:
        """Stream samples to the backend and wait for the final transcript.

        Args:
            samples: Mono float samples at ``config.sample_rate``

        Returns:
            TranscriptionResult with the joined finalized segments

        Raises:
            TranscriptionConnectionError: If the handshake fails
            TransmissionError: If sending an audio packet fails
            BackendError: If the backend reports an error
            StreamingError: If the session was already run

        """
        if self._started:
            raise StreamingError("Session can only be run once")
        self._started = True

        self._loop = asyncio.get_running_loop()
        self._future = self._loop.create_future()
        self._packetizer = Packetizer(samples, self.config.sample_rate, self.config.chunk_size)
        self._transport = self._transport_factory()

        logger.info(
            f"Starting live session: {self._packetizer.total_samples} samples "
            f"in {self._packetizer.chunk_count} chunks at {self.config.sample_rate}Hz"
        )
        self._transition(SessionState.CONNECTING)
        self._emit_progress(0.0)
        self._ready_timer = self._loop.call_later(self.config.connect_timeout_s, self._on_ready_timeout)

        handlers = LiveTransportHandlers(
            on_open=self._handle_open,
            on_message=self._handle_message,
            on_error=self._handle_error,
            on_close=self._handle_close,
        )

        try:
            try:
                await self._transport.connect(handlers)
                self._transport_connected = True
                if self._state is SessionState.CLOSED:
                    # Rejected while the handshake was still pending
                    await self._close_quietly()
            except TranscriptionConnectionError as e:
                self._fail(e)
            except Exception as e:
                self._fail(TranscriptionConnectionError(f"Failed to open live session: {e}", e))

            return await self._future
        except asyncio.CancelledError:
            await self._abort()
            raise
        finally:
            self._cancel_timers()
            if self._background_tasks:
                await asyncio.gather(*self._background_tasks, return_exceptions=True)

    def request_close(self, reason: str = "requested") -> None:
        """Ask the backend to close the session.

        Only effective while OPEN or DRAINING; repeated calls are no-ops.
        """
        self._begin_close(reason)

    # State machine

    def _transition(self, new_state: SessionState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise SessionStateError(self._state, new_state)
        logger.debug(f"Session state: {self._state.value} -> {new_state.value}")
        self._state = new_state

    def _handle_open(self) -> None:
        if self._state is not SessionState.CONNECTING:
            logger.debug(f"Ignoring ready signal in state {self._state.value}")
            return
        self._transition(SessionState.OPEN)
        self._cancel_timer("_ready_timer")
        self._schedule_tick()

    def _on_ready_timeout(self) -> None:
        self._ready_timer = None
        if self._state is SessionState.CONNECTING:
            self._fail(
                TranscriptionConnectionError(
                    f"Live session was not ready after {self.config.connect_timeout_s}s"
                )
            )

    # Pacing

    def _schedule_tick(self) -> None:
        self._pacing_timer = self._loop.call_later(self.config.send_interval_seconds, self._on_tick)

    def _on_tick(self) -> None:
        self._pacing_timer = None
        if self._state is not SessionState.OPEN:
            return

        if self._packetizer.exhausted:
            logger.info("All audio sent, waiting for the backend to complete the turn")
            self._transition(SessionState.DRAINING)
            self._fallback_timer = self._loop.call_later(
                self.config.session_close_delay_seconds, self._on_fallback_timeout
            )
            return

        chunk = self._packetizer.peek_chunk()
        self._send_task = self._spawn(self._deliver(chunk))

    async def _deliver(self, chunk: PacketizedChunk) -> None:
        try:
            await self._transport.send_audio(chunk)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Failed to send audio packet at offset {chunk.offset}: {e}")
            if self._state is SessionState.OPEN:
                self._fail(TransmissionError(f"Failed to send audio: {e}", e))
            return

        if self._state is not SessionState.OPEN:
            return
        self._packetizer.advance(chunk)
        self._emit_progress(self._packetizer.progress)
        self._schedule_tick()

    def _on_fallback_timeout(self) -> None:
        self._fallback_timer = None
        if self._state is SessionState.DRAINING:
            logger.warning(
                f"No turn completion within {self.config.session_close_delay_ms}ms, closing session"
            )
            self._begin_close("fallback timeout")

    # Inbound events

    def _handle_message(self, event: LiveServerEvent) -> None:
        if self._state not in (SessionState.OPEN, SessionState.DRAINING, SessionState.CLOSING):
            logger.debug(f"Ignoring message in state {self._state.value}")
            return

        has_text = bool(event.input_transcription)
        if has_text:
            self._transcript.set_pending(
                self._accumulation.fold(self._transcript.pending, event.input_transcription)
            )

        if event.turn_complete:
            committed = self._transcript.commit()
            if committed:
                logger.info(f"Turn complete: '{committed[:50]}...'")

        if has_text or event.turn_complete:
            text = self._transcript.text
            if text or event.turn_complete:
                self._emit_update(TranscriptionUpdate(text=text, is_final=event.turn_complete))

        if event.turn_complete and self._state is SessionState.DRAINING:
            self._cancel_timer("_fallback_timer")
            self._begin_close("turn complete")

    def _handle_error(self, error: Exception) -> None:
        if self._state is SessionState.CLOSED:
            return
        if self._state is SessionState.CONNECTING:
            self._fail(TranscriptionConnectionError(f"Failed to open live session: {error}", error))
        else:
            self._fail(BackendError(f"Transcription failed: {error}", error))

    def _handle_close(self, reason: str | None = None) -> None:
        if self._state is SessionState.CLOSED:
            return
        if self._state is SessionState.CONNECTING:
            self._fail(TranscriptionConnectionError(f"Connection closed before the session was ready: {reason}"))
            return
        if self._state in (SessionState.OPEN, SessionState.DRAINING):
            logger.warning(
                f"Backend closed the session early ({reason or 'no reason'}) after "
                f"{self._packetizer.sent_samples}/{self._packetizer.total_samples} samples"
            )
        self._resolve()

    # Closing

    def _begin_close(self, reason: str) -> None:
        if self._state not in (SessionState.OPEN, SessionState.DRAINING):
            return
        logger.info(f"Closing live session: {reason}")
        self._cancel_timers()
        self._cancel_send_task()
        self._transition(SessionState.CLOSING)
        self._spawn(self._close_transport())

    async def _close_transport(self) -> None:
        try:
            await self._transport.close()
        except Exception as e:
            logger.warning(f"Error closing live transport: {e}")
        # Transport gave no acknowledgment
        if self._state is SessionState.CLOSING:
            self._resolve()

    def _resolve(self) -> None:
        self._cancel_timers()
        self._cancel_send_task()
        self._transition(SessionState.CLOSED)
        self._outcome = SessionOutcome.RESOLVED
        self._emit_progress(100.0)

        result = TranscriptionResult(
            full_transcription=self._transcript.final_text,
            duration_seconds=self._packetizer.total_samples / self.config.sample_rate,
        )
        logger.info(f"Live session resolved: {len(self._transcript.finalized)} segments")
        if not self._future.done():
            self._future.set_result(result)

    def _fail(self, error: Exception) -> None:
        if self._state is SessionState.CLOSED:
            return
        logger.error(f"Live session failed: {error}")
        self._cancel_timers()
        self._cancel_send_task()
        self._transition(SessionState.CLOSED)
        self._outcome = SessionOutcome.REJECTED

        if self._transport_connected:
            self._spawn(self._close_quietly())
        if not self._future.done():
            self._future.set_exception(error)

    async def _abort(self) -> None:
        """Tear down after the awaiting task was cancelled."""
        if self._state is SessionState.CLOSED:
            return
        logger.info("Live session cancelled")
        self._cancel_timers()
        self._cancel_send_task()
        self._transition(SessionState.CLOSED)
        self._outcome = SessionOutcome.REJECTED
        if self._transport_connected:
            await self._close_quietly()

    async def _close_quietly(self) -> None:
        try:
            await self._transport.close()
        except Exception as e:
            logger.warning(f"Error closing live transport: {e}")

    # Helpers

    def _spawn(self, coro) -> asyncio.Task:
        task = self._loop.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    def _cancel_timer(self, attr: str) -> None:
        timer = getattr(self, attr)
        if timer is not None:
            timer.cancel()
            setattr(self, attr, None)

    def _cancel_timers(self) -> None:
        for attr in ("_ready_timer", "_pacing_timer", "_fallback_timer"):
            self._cancel_timer(attr)

    def _cancel_send_task(self) -> None:
        task = self._send_task
        self._send_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _emit_update(self, update: TranscriptionUpdate) -> None:
        if self._on_transcription_update is None:
            return
        try:
            self._on_transcription_update(update)
        except Exception:
            logger.exception("Transcription update callback failed")

    def _emit_progress(self, progress: float) -> None:
        if self._on_progress_update is None:
            return
        try:
            self._on_progress_update(progress)
        except Exception:
            logger.exception("Progress callback failed")
