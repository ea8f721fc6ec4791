"""Audio resampling to the streaming backend's sample rate.

Uses band-limited (FFT) resampling: the spectrum of each channel is
truncated or zero-padded to the output length and transformed back. The
output length is always ``ceil(length * target_rate / source_rate)``.
"""

import numpy as np

from ..core.config import setup_logging
from .types import AudioBuffer

logger = setup_logging(__name__)


def resampled_length(length: int, source_rate: int, target_rate: int) -> int:
    """Exact output length for a resample, computed with integer arithmetic."""
    return -(-length * target_rate // source_rate)


def needs_resampling(buffer: AudioBuffer, target_rate: int) -> bool:
    """Check if the buffer must be resampled to reach target_rate."""
    return buffer.sample_rate != target_rate


def _resample_channel(samples: np.ndarray, output_length: int) -> np.ndarray:
    input_length = len(samples)
    spectrum = np.fft.rfft(samples.astype(np.float64))
    target_bins = output_length // 2 + 1
    resized = np.zeros(target_bins, dtype=np.complex128)
    keep = min(len(spectrum), target_bins)
    resized[:keep] = spectrum[:keep]
    resampled = np.fft.irfft(resized, n=output_length)
    resampled *= output_length / input_length
    return np.clip(resampled, -1.0, 1.0).astype(np.float32)


def resample(buffer: AudioBuffer, target_rate: int) -> AudioBuffer:
    """Resample an AudioBuffer to target_rate.

    Args:
        buffer: Source audio
        target_rate: Target sample rate in Hz

    Returns:
        A new AudioBuffer at target_rate with the same channel count, or the
        input buffer itself when it is already at target_rate.

    Raises:
        ValueError: If target_rate is not positive

    """
    if target_rate <= 0:
        raise ValueError(f"Invalid target sample rate: {target_rate}")

    if not needs_resampling(buffer, target_rate):
        return buffer

    output_length = resampled_length(buffer.length, buffer.sample_rate, target_rate)

    if buffer.length == 0:
        return AudioBuffer(samples=np.zeros((buffer.channels, 0), dtype=np.float32), sample_rate=target_rate)

    # One channel at a time keeps the FFT working set bounded for long videos
    channels = [_resample_channel(buffer.channel(i), output_length) for i in range(buffer.channels)]
    resampled = AudioBuffer(samples=np.stack(channels), sample_rate=target_rate)

    logger.debug(
        f"Resampled audio: {buffer.length} samples @ {buffer.sample_rate}Hz -> "
        f"{resampled.length} samples @ {target_rate}Hz ({buffer.channels} channel(s))"
    )

    return resampled
