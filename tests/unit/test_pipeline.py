"""Unit tests for DigestPipeline."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import numpy as np
import pytest

from matilda_digest.audio.types import AudioBuffer
from matilda_digest.core.config import ConfigLoader
from matilda_digest.core.exceptions import (
    AuthOrTransportError,
    DecodeError,
    PipelineBusyError,
    PipelineError,
    SummarizationError,
)
from matilda_digest.pipeline import DigestPipeline, PipelineStage
from matilda_digest.transcription.types import TranscriptionResult

BUFFER = AudioBuffer(samples=np.zeros((2, 88200), dtype=np.float32), sample_rate=44100)


def make_transcriber(text="hello world", error=None):
    transcriber = MagicMock()
    transcriber.name = "fake_backend"
    transcriber.kind = "single_shot"
    if error is not None:
        transcriber.transcribe_buffer = AsyncMock(side_effect=error)
    else:
        transcriber.transcribe_buffer = AsyncMock(return_value=TranscriptionResult(text))
    return transcriber


def make_summarizer(summary="a summary", error=None):
    summarizer = MagicMock()
    summarizer.summarize = AsyncMock(return_value=summary, side_effect=error)
    return summarizer


@pytest.fixture
def config(tmp_path):
    return ConfigLoader(tmp_path / "missing.toml")


@pytest.fixture
def extracted():
    with patch("matilda_digest.pipeline.extract_audio", AsyncMock(return_value=BUFFER)) as mock:
        yield mock


class TestDigestPipeline:
    """Test stage sequencing and error wrapping."""

    @pytest.mark.asyncio
    async def test_full_run(self, config, extracted):
        stages, durations = [], []
        on_progress, on_update = MagicMock(), MagicMock()
        transcriber = make_transcriber()
        summarizer = make_summarizer()
        pipeline = DigestPipeline(
            transcriber,
            summarizer,
            config,
            on_progress_update=on_progress,
            on_transcription_update=on_update,
            on_stage_change=stages.append,
            on_duration=durations.append,
        )

        result = await pipeline.run(b"media", filename="talk.mp4")

        assert result.transcription == "hello world"
        assert result.summary == "a summary"
        assert result.duration_seconds == pytest.approx(2.0)
        assert result.backend == "fake_backend"
        assert durations == [pytest.approx(2.0)]
        assert stages == [
            PipelineStage.EXTRACTING,
            PipelineStage.TRANSCRIBING,
            PipelineStage.SUMMARIZING,
            PipelineStage.COMPLETED,
        ]
        assert extracted.await_args.kwargs["filename_hint"] == "talk.mp4"
        transcriber.transcribe_buffer.assert_awaited_once_with(BUFFER, on_update=on_update, on_progress=on_progress)
        summarizer.summarize.assert_awaited_once_with("hello world")
        assert pipeline.stage is PipelineStage.COMPLETED
        assert not pipeline.busy

    @pytest.mark.asyncio
    async def test_empty_transcript_skips_summarization(self, config, extracted):
        summarizer = make_summarizer()
        pipeline = DigestPipeline(make_transcriber(text=""), summarizer, config)

        result = await pipeline.run(b"media")

        assert result.summary == ""
        summarizer.summarize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_summarization_disabled(self, tmp_path, extracted):
        config = ConfigLoader(tmp_path / "missing.toml", overrides={"summarization": {"enabled": False}})
        summarizer = make_summarizer()

        result = await DigestPipeline(make_transcriber(), summarizer, config).run(b"media")

        assert result.summary == ""
        summarizer.summarize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_without_summarizer(self, config, extracted):
        result = await DigestPipeline(make_transcriber(), None, config).run(b"media")
        assert result.summary == ""

    @pytest.mark.asyncio
    async def test_decode_failure_is_wrapped(self, config):
        stages = []
        transcriber = make_transcriber()
        pipeline = DigestPipeline(transcriber, make_summarizer(), config, on_stage_change=stages.append)

        with patch("matilda_digest.pipeline.extract_audio", AsyncMock(side_effect=DecodeError("No data"))):
            with pytest.raises(PipelineError) as exc_info:
                await pipeline.run(b"")

        assert exc_info.value.stage == "extracting"
        assert str(exc_info.value) == "extracting failed: No data"
        assert isinstance(exc_info.value.__cause__, DecodeError)
        assert stages[-2:] == [PipelineStage.ERROR, PipelineStage.IDLE]
        transcriber.transcribe_buffer.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transcription_failure_is_wrapped(self, config, extracted):
        error = AuthOrTransportError(401, "bad key")
        summarizer = make_summarizer()
        pipeline = DigestPipeline(make_transcriber(error=error), summarizer, config)

        with pytest.raises(PipelineError) as exc_info:
            await pipeline.run(b"media")

        assert exc_info.value.stage == "transcribing"
        assert exc_info.value.__cause__ is error
        assert pipeline.stage is PipelineStage.IDLE
        summarizer.summarize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_summarization_failure_is_wrapped(self, config, extracted):
        pipeline = DigestPipeline(make_transcriber(), make_summarizer(error=SummarizationError("quota")), config)

        with pytest.raises(PipelineError, match="summarizing failed: quota"):
            await pipeline.run(b"media")

    @pytest.mark.asyncio
    async def test_concurrent_run_is_refused(self, config, extracted):
        release = asyncio.Event()

        async def slow_transcribe(buffer, on_update=None, on_progress=None):
            await release.wait()
            return TranscriptionResult("done")

        transcriber = make_transcriber()
        transcriber.transcribe_buffer = slow_transcribe
        pipeline = DigestPipeline(transcriber, None, config)

        first = asyncio.create_task(pipeline.run(b"media"))
        while pipeline.stage is not PipelineStage.TRANSCRIBING:
            await asyncio.sleep(0)

        with pytest.raises(PipelineBusyError):
            await pipeline.run(b"media")

        release.set()
        result = await first
        assert result.transcription == "done"

        second = await pipeline.run(b"media")
        assert second.transcription == "done"


class TestPipelineRecovery:
    """Test that every failure leaves the pipeline idle and reusable."""

    @pytest.mark.asyncio
    async def test_duration_callback_failure_is_wrapped(self, config, extracted):
        stages = []

        def broken_duration(seconds):
            raise RuntimeError("ui gone")

        transcriber = make_transcriber()
        pipeline = DigestPipeline(
            transcriber, None, config, on_stage_change=stages.append, on_duration=broken_duration
        )

        with pytest.raises(PipelineError) as exc_info:
            await pipeline.run(b"media")

        assert exc_info.value.stage == "extracting"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert stages[-2:] == [PipelineStage.ERROR, PipelineStage.IDLE]
        assert pipeline.stage is PipelineStage.IDLE
        assert not pipeline.busy
        transcriber.transcribe_buffer.assert_not_called()

    @pytest.mark.asyncio
    async def test_stage_callback_failure_is_wrapped(self, config, extracted):
        def on_stage_change(stage):
            if stage is PipelineStage.TRANSCRIBING:
                raise RuntimeError("render failed")

        pipeline = DigestPipeline(make_transcriber(), None, config, on_stage_change=on_stage_change)

        with pytest.raises(PipelineError) as exc_info:
            await pipeline.run(b"media")

        assert exc_info.value.stage == "transcribing"
        assert pipeline.stage is PipelineStage.IDLE

    @pytest.mark.asyncio
    async def test_cancelled_run_returns_to_idle(self, config, extracted):
        started = asyncio.Event()

        async def hanging_transcribe(buffer, on_update=None, on_progress=None):
            started.set()
            await asyncio.Event().wait()

        transcriber = make_transcriber()
        transcriber.transcribe_buffer = hanging_transcribe
        pipeline = DigestPipeline(transcriber, None, config)

        task = asyncio.create_task(pipeline.run(b"media"))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert pipeline.stage is PipelineStage.IDLE
        assert not pipeline.busy

    @pytest.mark.asyncio
    async def test_resample_failure_is_reported_as_transcribing(self, config, extracted):
        from matilda_digest.transcription.factory import GeminiLiveTranscriber
        from matilda_digest.transcription.streaming.config import StreamingConfig

        transcriber = GeminiLiveTranscriber("test-key", StreamingConfig())
        pipeline = DigestPipeline(transcriber, None, config)

        with patch(
            "matilda_digest.transcription.factory.resample",
            MagicMock(side_effect=ValueError("Invalid target sample rate: 0")),
        ):
            with pytest.raises(PipelineError) as exc_info:
                await pipeline.run(b"media")

        assert exc_info.value.stage == "transcribing"
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert pipeline.stage is PipelineStage.IDLE
