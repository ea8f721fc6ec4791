"""Audio data types shared by extraction, resampling and encoding."""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, eq=False)
class AudioBuffer:
    """Decoded PCM audio, channel-separated.

    ``samples`` has shape ``(channels, frames)`` and dtype float32 with
    values in [-1.0, 1.0]. The array is marked read-only on construction;
    every transformation returns a new buffer.
    """

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        samples = np.asarray(self.samples, dtype=np.float32)
        if samples.ndim == 1:
            samples = samples.reshape(1, -1)
        if samples.ndim != 2 or samples.shape[0] < 1:
            raise ValueError(f"AudioBuffer expects (channels, frames) samples, got shape {samples.shape}")
        if self.sample_rate <= 0:
            raise ValueError(f"Invalid sample rate: {self.sample_rate}")
        if samples.base is not None or samples is self.samples:
            samples = samples.copy()
        samples.setflags(write=False)
        object.__setattr__(self, "samples", samples)

    @classmethod
    def from_interleaved(cls, interleaved: np.ndarray, sample_rate: int, channels: int) -> "AudioBuffer":
        """Build a buffer from frame-interleaved samples (L R L R ...)."""
        interleaved = np.asarray(interleaved, dtype=np.float32)
        frames = len(interleaved) // channels
        # Drop a trailing partial frame, if any
        planar = interleaved[: frames * channels].reshape(frames, channels).T
        return cls(samples=planar, sample_rate=sample_rate)

    @property
    def channels(self) -> int:
        return int(self.samples.shape[0])

    @property
    def length(self) -> int:
        """Number of frames (samples per channel)."""
        return int(self.samples.shape[1])

    @property
    def duration_seconds(self) -> float:
        return self.length / self.sample_rate

    def channel(self, index: int) -> np.ndarray:
        return self.samples[index]

    def mono(self) -> np.ndarray:
        """Return the first channel as a flat float32 array."""
        return self.samples[0]

    def interleaved(self) -> np.ndarray:
        """Return samples frame-interleaved, as stored in PCM containers."""
        return self.samples.T.reshape(-1)

    def __repr__(self) -> str:
        return (
            f"AudioBuffer(channels={self.channels}, length={self.length}, "
            f"sample_rate={self.sample_rate})"
        )
