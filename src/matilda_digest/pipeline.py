#!/usr/bin/env python3
"""Digest pipeline: media bytes in, transcript and summary out.

Stages run strictly in order:

    EXTRACTING -> TRANSCRIBING -> SUMMARIZING -> COMPLETED

A failure in any stage is raised as a ``PipelineError`` naming the stage,
with the original exception chained as ``__cause__``. Nothing is retried.
"""

import asyncio
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from .audio.extraction import FFmpegAudioExtractor, extract_audio
from .core.config import ConfigLoader, get_config, setup_logging
from .core.exceptions import PipelineBusyError, PipelineError
from .summarization import Summarizer
from .transcription.factory import Transcriber
from .transcription.types import ProgressCallback, TranscriptionUpdateCallback

logger = setup_logging(__name__)

T = TypeVar("T")


class PipelineStage(Enum):
    """Where a pipeline run currently is."""

    IDLE = "idle"
    EXTRACTING = "extracting"
    TRANSCRIBING = "transcribing"
    SUMMARIZING = "summarizing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class DigestResult:
    transcription: str
    summary: str
    duration_seconds: float
    backend: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "transcription": self.transcription,
            "summary": self.summary,
            "duration_seconds": self.duration_seconds,
            "backend": self.backend,
        }


class DigestPipeline:
    """Run extraction, transcription and summarization for one file at a time.

    Example:
        pipeline = DigestPipeline(create_transcriber(), GeminiSummarizer.from_config())
        result = await pipeline.run(Path("talk.mp4").read_bytes(), filename="talk.mp4")

    """

    def __init__(
        self,
        transcriber: Transcriber,
        summarizer: Summarizer | None = None,
        config: ConfigLoader | None = None,
        extractor: FFmpegAudioExtractor | None = None,
        on_progress_update: ProgressCallback | None = None,
        on_transcription_update: TranscriptionUpdateCallback | None = None,
        on_stage_change: Callable[[PipelineStage], None] | None = None,
        on_duration: Callable[[float], None] | None = None,
    ):
        self.config = config or get_config()
        self.transcriber = transcriber
        self.summarizer = summarizer
        self.extractor = extractor
        self.on_progress_update = on_progress_update
        self.on_transcription_update = on_transcription_update
        self.on_stage_change = on_stage_change
        self.on_duration = on_duration

        self._stage = PipelineStage.IDLE
        self._running = False

    @property
    def stage(self) -> PipelineStage:
        return self._stage

    @property
    def busy(self) -> bool:
        return self._running

    @property
    def summarization_enabled(self) -> bool:
        return self.summarizer is not None and self.config.summarization_enabled

    def _set_stage(self, stage: PipelineStage) -> None:
        if stage is self._stage:
            return
        logger.debug(f"Pipeline stage: {self._stage.value} -> {stage.value}")
        self._stage = stage
        if self.on_stage_change is not None:
            self.on_stage_change(stage)

    async def _run_stage(self, stage: PipelineStage, coro: Coroutine[Any, Any, T]) -> T:
        try:
            self._set_stage(stage)
        except Exception:
            coro.close()
            raise
        try:
            return await coro
        except Exception as e:
            logger.error(f"Pipeline stage {stage.value} failed: {e}")
            raise PipelineError(stage.value, str(e)) from e

    async def run(self, data: bytes, filename: str | None = None) -> DigestResult:
        """Produce a transcript and summary for a media file.

        Args:
            data: Raw bytes of the media file
            filename: Original filename, used as a container hint

        Returns:
            DigestResult for the file

        Raises:
            PipelineBusyError: If a run is already in progress
            PipelineError: If any stage fails

        """
        if self._running:
            raise PipelineBusyError("A digest is already in progress")
        self._running = True
        completed = False

        try:
            buffer = await self._run_stage(
                PipelineStage.EXTRACTING,
                extract_audio(data, filename_hint=filename, extractor=self.extractor),
            )
            duration = buffer.duration_seconds
            logger.info(f"Extracted {duration:.2f}s of audio from {filename or 'input'}")
            if self.on_duration is not None:
                self.on_duration(duration)

            result = await self._run_stage(
                PipelineStage.TRANSCRIBING,
                self.transcriber.transcribe_buffer(
                    buffer,
                    on_update=self.on_transcription_update,
                    on_progress=self.on_progress_update,
                ),
            )
            transcription = result.full_transcription

            summary = ""
            if not transcription:
                logger.info("Transcript is empty, skipping summarization")
            elif self.summarization_enabled:
                summary = await self._run_stage(PipelineStage.SUMMARIZING, self.summarizer.summarize(transcription))

            self._set_stage(PipelineStage.COMPLETED)
            completed = True
            return DigestResult(
                transcription=transcription,
                summary=summary,
                duration_seconds=duration,
                backend=self.transcriber.name,
            )
        except PipelineError:
            raise
        except asyncio.CancelledError:
            logger.info(f"Pipeline cancelled during {self._stage.value}")
            raise
        except Exception as e:
            logger.error(f"Pipeline failed during {self._stage.value}: {e}")
            raise PipelineError(self._stage.value, str(e)) from e
        finally:
            if not completed:
                self._reset_after_failure()
            self._running = False

    def _reset_after_failure(self) -> None:
        """Pass through ERROR and settle back in IDLE."""
        for stage in (PipelineStage.ERROR, PipelineStage.IDLE):
            try:
                self._set_stage(stage)
            except Exception:
                logger.exception(f"Stage callback failed while entering {stage.value}")
                self._stage = stage
