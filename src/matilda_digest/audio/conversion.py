"""Audio conversion helpers for PCM scaling.

Two float -> int16 mappings are used on the wire:

- symmetric: ``round(clamp(s) * 32767)``, for streaming packets, so -1.0
  maps to -32767;
- asymmetric: negatives scaled by 0x8000 and non-negatives by 0x7FFF, for
  WAV containers, so -1.0 maps to -32768 without overflowing.
"""

import base64
from typing import cast

import numpy as np

INT16_POSITIVE_SCALE = 0x7FFF
INT16_NEGATIVE_SCALE = 0x8000


def float_to_pcm16_symmetric(audio: np.ndarray) -> np.ndarray:
    """Convert float PCM to int16 using a single 32767 scale."""
    audio_f64 = np.clip(np.asarray(audio, dtype=np.float64), -1.0, 1.0)
    return cast("np.ndarray", np.round(audio_f64 * INT16_POSITIVE_SCALE).astype(np.int16))


def float_to_pcm16_asymmetric(audio: np.ndarray) -> np.ndarray:
    """Convert float PCM to int16 scaling negatives by 0x8000 and the rest by 0x7FFF."""
    audio_f64 = np.clip(np.asarray(audio, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(audio_f64 < 0, audio_f64 * INT16_NEGATIVE_SCALE, audio_f64 * INT16_POSITIVE_SCALE)
    return cast("np.ndarray", np.round(scaled).astype(np.int16))


def pcm16_to_bytes(pcm: np.ndarray) -> bytes:
    """Serialize int16 samples as little-endian bytes."""
    return np.asarray(pcm, dtype="<i2").tobytes()


def encode_base64(data: bytes) -> str:
    """Lossless text-safe encoding used by JSON transports."""
    return base64.b64encode(data).decode("ascii")
