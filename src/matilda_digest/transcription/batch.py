#!/usr/bin/env python3
"""Single-shot transcription through the OpenAI Whisper HTTP API.

The whole WAV container is uploaded in one multipart request and the
plain-text response body is the transcript. Progress is coarse: 0 before
the request, ``PROGRESS_STARTED`` once it is issued, 100 on success.
"""

import aiohttp

from ..core.config import setup_logging
from ..core.exceptions import AuthOrTransportError
from .types import ProgressCallback, TranscriptionResult, TranscriptionUpdate, TranscriptionUpdateCallback

logger = setup_logging(__name__)

PROGRESS_STARTED = 5.0

DEFAULT_WHISPER_MODEL = "whisper-1"
DEFAULT_TRANSCRIPTION_ENDPOINT = "https://api.openai.com/v1/audio/transcriptions"


class WhisperTranscriber:
    """Upload a WAV file to the Whisper transcription endpoint."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_WHISPER_MODEL,
        endpoint: str = DEFAULT_TRANSCRIPTION_ENDPOINT,
        timeout_s: float = 300.0,
        session: aiohttp.ClientSession | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.endpoint = endpoint
        self.timeout_s = timeout_s
        self._session = session

    def _build_form(self, wav_bytes: bytes) -> aiohttp.FormData:
        form = aiohttp.FormData()
        form.add_field("file", wav_bytes, filename="audio.wav", content_type="audio/wav")
        form.add_field("model", self.model)
        form.add_field("response_format", "text")
        return form

    async def _post(self, session: aiohttp.ClientSession, wav_bytes: bytes) -> str:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        async with session.post(self.endpoint, data=self._build_form(wav_bytes), headers=headers) as response:
            body = await response.text()
            if response.status < 200 or response.status >= 300:
                logger.error(f"Whisper request failed with status {response.status}: {body[:200]}")
                raise AuthOrTransportError(response.status, body)
            return body

    async def transcribe(
        self,
        wav_bytes: bytes,
        on_transcription_update: TranscriptionUpdateCallback | None = None,
        on_progress_update: ProgressCallback | None = None,
    ) -> TranscriptionResult:
        """Transcribe a complete WAV file.

        Args:
            wav_bytes: 44-byte header PCM16 WAV container
            on_transcription_update: Receives exactly one final update on success
            on_progress_update: Receives 0, PROGRESS_STARTED, then 100

        Returns:
            TranscriptionResult with the stripped response body

        Raises:
            AuthOrTransportError: On a missing key, non-2xx response or network failure

        """

        def report(progress: float) -> None:
            if on_progress_update is not None:
                on_progress_update(progress)

        report(0.0)
        if not self.api_key:
            raise AuthOrTransportError(None, "OpenAI API key is missing")

        logger.info(f"Uploading {len(wav_bytes)} bytes to {self.model}")
        report(PROGRESS_STARTED)
        try:
            if self._session is not None:
                body = await self._post(self._session, wav_bytes)
            else:
                timeout = aiohttp.ClientTimeout(total=self.timeout_s)
                async with aiohttp.ClientSession(timeout=timeout) as session:
                    body = await self._post(session, wav_bytes)
        except AuthOrTransportError:
            report(0.0)
            raise
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.error(f"Whisper request failed: {e}")
            report(0.0)
            raise AuthOrTransportError(None, str(e) or type(e).__name__, e) from e

        text = body.strip()
        logger.info(f"Whisper transcription complete: {len(text)} characters")
        if on_transcription_update is not None:
            on_transcription_update(TranscriptionUpdate(text=text, is_final=True))
        report(100.0)
        return TranscriptionResult(full_transcription=text)
