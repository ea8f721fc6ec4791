"""Unit tests for WAV container encoding."""

import numpy as np
import pytest

from matilda_digest.audio.types import AudioBuffer
from matilda_digest.audio.wav import WAV_HEADER_SIZE, decode_wav_samples, encode_wav, parse_wav_header


class TestEncodeWav:
    """Test the canonical 44-byte header and payload."""

    def test_header_fields(self):
        buffer = AudioBuffer(samples=np.zeros((2, 100), dtype=np.float32), sample_rate=44100)
        wav = encode_wav(buffer)
        header = parse_wav_header(wav)

        assert wav[:4] == b"RIFF"
        assert wav[8:16] == b"WAVEfmt "
        assert len(wav) == WAV_HEADER_SIZE + 400
        assert header["riff_size"] == 36 + 400
        assert header["fmt_size"] == 16
        assert header["audio_format"] == 1
        assert header["channels"] == 2
        assert header["sample_rate"] == 44100
        assert header["byte_rate"] == 44100 * 2 * 2
        assert header["block_align"] == 4
        assert header["bits_per_sample"] == 16
        assert header["data_size"] == 400

    def test_samples_are_interleaved_with_asymmetric_scaling(self):
        samples = np.array([[1.0, 0.0], [-1.0, 0.5]], dtype=np.float32)
        wav = encode_wav(AudioBuffer(samples=samples, sample_rate=8000))

        assert decode_wav_samples(wav).tolist() == [32767, -32768, 0, 16384]

    def test_empty_buffer(self):
        wav = encode_wav(AudioBuffer(samples=np.zeros((1, 0), dtype=np.float32), sample_rate=16000))
        assert len(wav) == WAV_HEADER_SIZE
        assert parse_wav_header(wav)["data_size"] == 0


class TestParseWavHeader:
    def test_too_short(self):
        with pytest.raises(ValueError, match="too short"):
            parse_wav_header(b"RIFF")

    def test_not_riff(self):
        with pytest.raises(ValueError, match="RIFF/WAVE"):
            parse_wav_header(b"\x00" * WAV_HEADER_SIZE)
