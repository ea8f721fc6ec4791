"""Canonical PCM WAVE container encoding for single-shot backends."""

import struct

import numpy as np

from .conversion import float_to_pcm16_asymmetric, pcm16_to_bytes
from .types import AudioBuffer

WAV_HEADER_SIZE = 44
WAV_FORMAT_PCM = 1
BITS_PER_SAMPLE = 16

# RIFF header, fmt chunk (16 bytes) and data chunk header
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


def build_wav_header(data_size: int, sample_rate: int, channels: int) -> bytes:
    """Build the 44-byte RIFF/WAVE header for 16-bit PCM data."""
    block_align = channels * 2
    byte_rate = sample_rate * block_align
    return _HEADER.pack(
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        WAV_FORMAT_PCM,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        data_size,
    )


def encode_wav(buffer: AudioBuffer) -> bytes:
    """Encode an AudioBuffer as an uncompressed 16-bit PCM WAV file.

    Samples are interleaved across channels and scaled asymmetrically
    (see :func:`float_to_pcm16_asymmetric`).
    """
    pcm = float_to_pcm16_asymmetric(buffer.interleaved())
    data = pcm16_to_bytes(pcm)
    return build_wav_header(len(data), buffer.sample_rate, buffer.channels) + data


def parse_wav_header(data: bytes) -> dict:
    """Read back the fields of a canonical 44-byte WAV header.

    Raises:
        ValueError: If data is not a canonical PCM WAV file

    """
    if len(data) < WAV_HEADER_SIZE:
        raise ValueError(f"WAV data too short: {len(data)} bytes")
    (
        riff,
        riff_size,
        wave,
        fmt,
        fmt_size,
        audio_format,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        data_tag,
        data_size,
    ) = _HEADER.unpack_from(data)
    if riff != b"RIFF" or wave != b"WAVE" or fmt != b"fmt " or data_tag != b"data":
        raise ValueError("Not a canonical RIFF/WAVE file")
    return {
        "riff_size": riff_size,
        "fmt_size": fmt_size,
        "audio_format": audio_format,
        "channels": channels,
        "sample_rate": sample_rate,
        "byte_rate": byte_rate,
        "block_align": block_align,
        "bits_per_sample": bits_per_sample,
        "data_size": data_size,
    }


def decode_wav_samples(data: bytes) -> np.ndarray:
    """Return the interleaved int16 samples of a canonical WAV file."""
    header = parse_wav_header(data)
    payload = data[WAV_HEADER_SIZE : WAV_HEADER_SIZE + header["data_size"]]
    return np.frombuffer(payload, dtype="<i2")
