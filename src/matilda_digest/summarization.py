"""Transcript summarization.

One backend: Gemini ``generateContent`` over REST.
"""

from typing import Any, Protocol, runtime_checkable

import aiohttp

from .core.config import ConfigLoader, get_config, setup_logging
from .core.exceptions import SummarizationError

logger = setup_logging(__name__)

SUMMARY_PROMPT = (
    "Summarize the following text, which is a transcription of a video, concisely and descriptively. "
    "Focus on key topics and information presented.\n\n"
    'Text:\n"""\n{text}\n"""\n\n'
    "Summary:"
)


@runtime_checkable
class Summarizer(Protocol):
    async def summarize(self, text: str) -> str: ...


class GeminiSummarizer:
    """Summarize a transcript with a Gemini text model."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        *,
        endpoint: str = "https://generativelanguage.googleapis.com/v1beta",
        temperature: float = 0.7,
        top_p: float = 0.95,
        top_k: int = 64,
        max_output_tokens: int = 500,
        timeout_s: float = 120.0,
        session: aiohttp.ClientSession | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.endpoint = endpoint.rstrip("/")
        self.generation_config = {
            "temperature": temperature,
            "topP": top_p,
            "topK": top_k,
            "maxOutputTokens": max_output_tokens,
        }
        self.timeout_s = timeout_s
        self._session = session

    @classmethod
    def from_config(cls, config: ConfigLoader | None = None) -> "GeminiSummarizer":
        config = config or get_config()
        gemini_cfg = config.get("gemini", {})
        summary_cfg = config.get("summarization", {})
        return cls(
            config.gemini_api_key,
            gemini_cfg.get("summarizer_model", "gemini-2.5-flash"),
            endpoint=gemini_cfg.get("rest_endpoint", "https://generativelanguage.googleapis.com/v1beta"),
            temperature=float(summary_cfg.get("temperature", 0.7)),
            top_p=float(summary_cfg.get("top_p", 0.95)),
            top_k=int(summary_cfg.get("top_k", 64)),
            max_output_tokens=int(summary_cfg.get("max_output_tokens", 500)),
            timeout_s=float(summary_cfg.get("request_timeout_s", 120.0)),
        )

    @property
    def url(self) -> str:
        return f"{self.endpoint}/models/{self.model}:generateContent"

    def build_request(self, text: str) -> dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": SUMMARY_PROMPT.format(text=text)}]}],
            "generationConfig": self.generation_config,
        }

    @staticmethod
    def extract_text(payload: dict[str, Any]) -> str:
        """Pull the generated text out of a generateContent response."""
        candidates = payload.get("candidates") or []
        if not candidates:
            feedback = payload.get("promptFeedback", {})
            raise SummarizationError(f"Summarizer returned no candidates: {feedback or 'empty response'}")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts).strip()

    async def _post(self, session: aiohttp.ClientSession, text: str) -> dict[str, Any]:
        async with session.post(
            self.url,
            json=self.build_request(text),
            headers={"x-goog-api-key": self.api_key},
        ) as response:
            if response.status < 200 or response.status >= 300:
                body = await response.text()
                logger.error(f"Summarizer request failed with status {response.status}: {body[:200]}")
                raise SummarizationError(f"Summarization failed: {response.status} - {body}")
            return await response.json()

    async def summarize(self, text: str) -> str:
        """Summarize text.

        Raises:
            SummarizationError: On a missing key, HTTP failure or empty response

        """
        if not self.api_key:
            raise SummarizationError("Gemini API key is missing")

        logger.info(f"Summarizing {len(text)} characters with {self.model}")
        try:
            if self._session is not None:
                payload = await self._post(self._session, text)
            else:
                timeout = aiohttp.ClientTimeout(total=self.timeout_s)
                async with aiohttp.ClientSession(timeout=timeout) as session:
                    payload = await self._post(session, text)
        except SummarizationError:
            raise
        except (aiohttp.ClientError, TimeoutError, ValueError) as e:
            logger.error(f"Summarizer request failed: {e}")
            raise SummarizationError(f"Summarization failed: {e}") from e

        summary = self.extract_text(payload)
        if not summary:
            raise SummarizationError("Summarizer returned an empty summary")
        return summary
