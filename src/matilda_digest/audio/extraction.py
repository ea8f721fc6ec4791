"""Audio track extraction from arbitrary media files.

Plain audio containers (WAV, FLAC, OGG) are decoded in-process with
``soundfile``. Anything else, video containers in particular, is handed to
``ffmpeg``: ``ffprobe`` reports the native sample rate and channel count of
the first audio stream, then ``ffmpeg`` decodes that stream to raw float32
PCM on stdout at the native rate.
"""

import asyncio
import io
import json
import os
import tempfile
from pathlib import Path

import numpy as np
import soundfile as sf

from ..core.config import ConfigLoader, get_config, setup_logging
from ..core.exceptions import DecodeError
from .types import AudioBuffer

logger = setup_logging(__name__)


def _decode_with_soundfile(data: bytes) -> AudioBuffer:
    samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
    return AudioBuffer(samples=samples.T, sample_rate=int(sample_rate))


class FFmpegAudioExtractor:
    """Decode the first audio stream of a media file through ffmpeg."""

    def __init__(
        self,
        ffmpeg_binary: str = "ffmpeg",
        ffprobe_binary: str = "ffprobe",
        timeout_s: float = 600.0,
    ):
        self.ffmpeg_binary = ffmpeg_binary
        self.ffprobe_binary = ffprobe_binary
        self.timeout_s = timeout_s

    @classmethod
    def from_config(cls, config: ConfigLoader | None = None) -> "FFmpegAudioExtractor":
        config = config or get_config()
        return cls(
            ffmpeg_binary=config.ffmpeg_binary,
            ffprobe_binary=config.ffprobe_binary,
            timeout_s=config.decode_timeout_s,
        )

    async def _run(self, *args: str) -> bytes:
        """Run a tool to completion and return its stdout.

        The process is killed if it outlives the timeout or the caller is
        cancelled.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise DecodeError(f"{args[0]} is not installed or not on PATH") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout_s)
        except asyncio.TimeoutError as e:
            raise DecodeError(f"Decoding timed out after {self.timeout_s:.0f}s") from e
        finally:
            if process.returncode is None:
                process.kill()
                await process.wait()

        if process.returncode != 0:
            for line in stderr.decode(errors="ignore").splitlines():
                logger.warning(f"{Path(args[0]).name} stderr: {line.strip()}")
            raise DecodeError("The file is not a supported media container or is corrupt")
        return stdout

    async def probe(self, path: str) -> tuple[int, int]:
        """Return (sample_rate, channels) of the first audio stream."""
        output = await self._run(
            self.ffprobe_binary,
            "-v",
            "error",
            "-select_streams",
            "a:0",
            "-show_entries",
            "stream=sample_rate,channels",
            "-print_format",
            "json",
            path,
        )
        try:
            streams = json.loads(output or b"{}").get("streams", [])
        except json.JSONDecodeError as e:
            raise DecodeError("Could not read media stream information") from e
        if not streams:
            raise DecodeError("The file has no audio track")
        try:
            sample_rate = int(streams[0]["sample_rate"])
            channels = int(streams[0]["channels"])
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError("The audio track does not declare a sample rate and channel count") from e
        if sample_rate <= 0 or channels <= 0:
            raise DecodeError("The audio track declares an invalid sample rate or channel count")
        return sample_rate, channels

    async def decode(self, path: str) -> AudioBuffer:
        sample_rate, channels = await self.probe(path)
        output = await self._run(
            self.ffmpeg_binary,
            "-nostdin",
            "-loglevel",
            "error",
            "-i",
            path,
            "-map",
            "0:a:0",
            "-vn",
            "-ac",
            str(channels),
            "-ar",
            str(sample_rate),
            "-f",
            "f32le",
            "-acodec",
            "pcm_f32le",
            "pipe:1",
        )
        if not output:
            raise DecodeError("The audio track is empty")
        # Ensure we only keep complete float32 samples
        usable = len(output) - len(output) % 4
        interleaved = np.frombuffer(output[:usable], dtype="<f4")
        buffer = AudioBuffer.from_interleaved(np.clip(interleaved, -1.0, 1.0), sample_rate, channels)
        logger.info(
            f"Decoded {buffer.duration_seconds:.2f}s of audio via ffmpeg "
            f"({buffer.channels} channel(s) @ {buffer.sample_rate}Hz)"
        )
        return buffer

    async def extract(self, data: bytes, filename_hint: str | None = None) -> AudioBuffer:
        suffix = Path(filename_hint).suffix if filename_hint else ""
        fd, tmp_path = tempfile.mkstemp(suffix=suffix, prefix="matilda-digest-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            return await self.decode(tmp_path)
        finally:
            try:
                os.remove(tmp_path)
            except OSError as e:
                logger.warning(f"Could not remove temporary media file {tmp_path}: {e}")


async def extract_audio(
    data: bytes,
    filename_hint: str | None = None,
    extractor: FFmpegAudioExtractor | None = None,
) -> AudioBuffer:
    """Decode the full audio track of a media file held in memory.

    Args:
        data: Raw file bytes in any container ffmpeg understands
        filename_hint: Original filename, used only for its extension
        extractor: ffmpeg extractor to fall back to (built from config if None)

    Returns:
        AudioBuffer with float32 samples at the native rate and channel count

    Raises:
        DecodeError: If the media is unsupported, corrupt or has no audio

    """
    if not data:
        raise DecodeError("No data: the file is empty")

    try:
        buffer = await asyncio.to_thread(_decode_with_soundfile, data)
    except (RuntimeError, TypeError, ValueError) as e:
        # libsndfile does not understand video containers; let ffmpeg try
        logger.debug(f"soundfile could not decode input, falling back to ffmpeg: {e}")
    else:
        if buffer.length > 0:
            logger.info(
                f"Decoded {buffer.duration_seconds:.2f}s of audio via soundfile "
                f"({buffer.channels} channel(s) @ {buffer.sample_rate}Hz)"
            )
            return buffer

    extractor = extractor or FFmpegAudioExtractor.from_config()
    return await extractor.extract(data, filename_hint)
