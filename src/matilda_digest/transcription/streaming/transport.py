#!/usr/bin/env python3
"""WebSocket transport for the Gemini Live bidirectional API.

The transport only performs the setup handshake, sends
audio packets, and reports inbound events to a set of handlers. All
session semantics (pacing, turn handling, resolution) live in
:class:`~matilda_digest.transcription.streaming.session.LiveTranscriptionSession`.
"""

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import urlencode

import websockets

from ...audio.packetizer import PacketizedChunk
from ...core.config import setup_logging
from ...core.exceptions import BackendError, TranscriptionConnectionError

logger = setup_logging(__name__)


@dataclass
class LiveServerEvent:
    """One decoded inbound message from the live backend."""

    setup_complete: bool = False
    input_transcription: str | None = None
    turn_complete: bool = False
    go_away: bool = False
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_message(cls, data: dict) -> "LiveServerEvent":
        """Create LiveServerEvent from a server message."""
        server_content = data.get("serverContent") or {}
        transcription = server_content.get("inputTranscription") or {}
        text = transcription.get("text")
        return cls(
            setup_complete="setupComplete" in data,
            input_transcription=text if isinstance(text, str) else None,
            turn_complete=bool(server_content.get("turnComplete", False)),
            go_away="goAway" in data,
            raw=data,
        )


@dataclass
class LiveTransportHandlers:
    """Callbacks a transport invokes as the connection progresses."""

    on_open: Callable[[], None]
    on_message: Callable[[LiveServerEvent], None]
    on_error: Callable[[Exception], None]
    on_close: Callable[[str | None], None]


class LiveTransport(Protocol):
    """Protocol for bidirectional live transcription transports.

    ``connect`` performs the handshake and returns once the request has been
    issued; readiness is reported later through ``handlers.on_open``.
    ``close`` asks the backend to close; the acknowledgment arrives through
    ``handlers.on_close`` exactly once.
    """

    async def connect(self, handlers: LiveTransportHandlers) -> None: ...

    async def send_audio(self, chunk: PacketizedChunk) -> None: ...

    async def close(self) -> None: ...


def build_setup_message(model: str, voice_name: str | None = None) -> dict[str, Any]:
    """Build the session setup message.

    Only input transcription matters to us, but the native audio models
    require an audio response modality.
    """
    generation_config: dict[str, Any] = {"responseModalities": ["AUDIO"]}
    if voice_name:
        generation_config["speechConfig"] = {"voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice_name}}}
    model_name = model if model.startswith("models/") else f"models/{model}"
    return {
        "setup": {
            "model": model_name,
            "generationConfig": generation_config,
            "inputAudioTranscription": {},
        }
    }


def build_audio_message(chunk: PacketizedChunk) -> dict[str, Any]:
    return {"realtimeInput": {"audio": {"data": chunk.to_base64(), "mimeType": chunk.mime_type}}}


class GeminiLiveTransport:
    """Gemini Live BidiGenerateContent over a WebSocket."""

    def __init__(
        self,
        api_key: str,
        model: str,
        endpoint: str,
        voice_name: str | None = None,
        open_timeout_s: float = 30.0,
    ):
        self.api_key = api_key
        self.model = model
        self.endpoint = endpoint
        self.voice_name = voice_name
        self.open_timeout_s = open_timeout_s
        self.websocket = None
        self._handlers: LiveTransportHandlers | None = None
        self._receive_task: asyncio.Task | None = None
        self._close_notified = False
        self._closing = False

    @property
    def url(self) -> str:
        return f"{self.endpoint}?{urlencode({'key': self.api_key})}"

    async def connect(self, handlers: LiveTransportHandlers) -> None:
        """Open the WebSocket and send the setup message."""
        if not self.api_key:
            raise TranscriptionConnectionError("Gemini API key is missing")

        self._handlers = handlers
        try:
            self.websocket = await websockets.connect(
                self.url,
                max_size=None,
                open_timeout=self.open_timeout_s,
            )
            await self.websocket.send(json.dumps(build_setup_message(self.model, self.voice_name)))
        except Exception as e:
            logger.error(f"Failed to connect to live backend: {e}")
            if self.websocket is not None:
                await self.websocket.close()
                self.websocket = None
            raise TranscriptionConnectionError(f"Failed to connect to live transcription backend: {e}", e) from e

        logger.info(f"Live session requested for model {self.model}")
        self._receive_task = asyncio.create_task(self._receive_loop())

    async def _receive_loop(self) -> None:
        """Dispatch inbound messages until the connection closes."""
        try:
            async for message in self.websocket:
                if isinstance(message, bytes):
                    message = message.decode("utf-8")
                try:
                    data = json.loads(message)
                except json.JSONDecodeError as e:
                    logger.warning(f"Invalid JSON received: {e}")
                    continue

                event = LiveServerEvent.from_message(data)
                if event.setup_complete:
                    logger.info("Live session opened")
                    self._handlers.on_open()
                elif event.go_away:
                    logger.warning(f"Backend announced disconnect: {data.get('goAway')}")
                else:
                    self._handlers.on_message(event)
        except websockets.exceptions.ConnectionClosedError as e:
            code = e.rcvd.code if e.rcvd else None
            reason = e.rcvd.reason if e.rcvd else ""
            if self._closing:
                # Our own close handshake did not finish cleanly
                logger.info(f"Live session closed locally with code {code}: {reason or 'no reason'}")
                self._notify_close(reason or None)
                return
            logger.error(f"Live session closed with error {code}: {reason}")
            self._handlers.on_error(BackendError(f"Connection closed with code {code}: {reason or 'no reason'}", e))
            self._notify_close(reason or None)
            return
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Live session receive loop failed: {e}")
            self._handlers.on_error(e)
            self._notify_close(str(e))
            return

        close_reason = getattr(self.websocket, "close_reason", None)
        logger.info(f"Live session closed: {close_reason or 'normal closure'}")
        self._notify_close(close_reason or None)

    def _notify_close(self, reason: str | None) -> None:
        if self._close_notified or self._handlers is None:
            return
        self._close_notified = True
        self._handlers.on_close(reason)

    async def send_audio(self, chunk: PacketizedChunk) -> None:
        if self.websocket is None:
            raise TranscriptionConnectionError("Not connected to live backend")
        await self.websocket.send(json.dumps(build_audio_message(chunk)))
        logger.debug(f"SENT audio packet: samples {chunk.offset}-{chunk.end}")

    async def close(self) -> None:
        """Close the WebSocket; the receive loop reports the acknowledgment."""
        self._closing = True
        if self.websocket is not None:
            await self.websocket.close()

        if self._receive_task is not None and self._receive_task is not asyncio.current_task():
            try:
                await asyncio.wait_for(asyncio.shield(self._receive_task), timeout=5.0)
            except asyncio.TimeoutError:
                self._receive_task.cancel()
                try:
                    await self._receive_task
                except asyncio.CancelledError:
                    pass

        # No receive loop ran (or it was cut short), acknowledge directly
        self._notify_close(None)
