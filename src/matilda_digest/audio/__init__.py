#!/usr/bin/env python3
"""Audio APIs for Matilda Digest.

Public surface is kept explicit to reduce accidental coupling to internals.
"""

from .conversion import (
    encode_base64,
    float_to_pcm16_asymmetric,
    float_to_pcm16_symmetric,
)
from .extraction import FFmpegAudioExtractor, extract_audio
from .packetizer import AUDIO_CHUNK_SIZE, PacketizedChunk, Packetizer, pcm_mime_type
from .resample import resample, resampled_length
from .types import AudioBuffer
from .wav import WAV_HEADER_SIZE, encode_wav, parse_wav_header

__all__ = [
    "AUDIO_CHUNK_SIZE",
    "AudioBuffer",
    "FFmpegAudioExtractor",
    "PacketizedChunk",
    "Packetizer",
    "WAV_HEADER_SIZE",
    "encode_base64",
    "encode_wav",
    "extract_audio",
    "float_to_pcm16_asymmetric",
    "float_to_pcm16_symmetric",
    "parse_wav_header",
    "pcm_mime_type",
    "resample",
    "resampled_length",
]
