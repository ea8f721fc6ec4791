"""Unit tests for PCM conversion helpers."""

import base64

import numpy as np

from matilda_digest.audio.conversion import (
    encode_base64,
    float_to_pcm16_asymmetric,
    float_to_pcm16_symmetric,
    pcm16_to_bytes,
)


class TestSymmetricConversion:
    """Test the 32767-scale mapping used for streaming packets."""

    def test_endpoints(self):
        pcm = float_to_pcm16_symmetric(np.array([-1.0, 0.0, 1.0], dtype=np.float32))
        assert pcm.tolist() == [-32767, 0, 32767]
        assert pcm.dtype == np.int16

    def test_out_of_range_is_clamped(self):
        pcm = float_to_pcm16_symmetric(np.array([-3.0, 2.5], dtype=np.float32))
        assert pcm.tolist() == [-32767, 32767]

    def test_rounds_to_nearest(self):
        pcm = float_to_pcm16_symmetric(np.array([0.5], dtype=np.float32))
        assert pcm[0] == round(0.5 * 32767)

    def test_monotonic(self):
        samples = np.linspace(-1.0, 1.0, 2001, dtype=np.float32)
        pcm = float_to_pcm16_symmetric(samples).astype(np.int32)
        assert np.all(np.diff(pcm) >= 0)


class TestAsymmetricConversion:
    """Test the WAV mapping that reaches -32768."""

    def test_endpoints(self):
        pcm = float_to_pcm16_asymmetric(np.array([-1.0, 0.0, 1.0], dtype=np.float32))
        assert pcm.tolist() == [-32768, 0, 32767]

    def test_negative_and_positive_scales_differ(self):
        pcm = float_to_pcm16_asymmetric(np.array([-0.5, 0.5], dtype=np.float32))
        assert pcm.tolist() == [-16384, 16384]

    def test_out_of_range_is_clamped(self):
        pcm = float_to_pcm16_asymmetric(np.array([-7.0, 7.0], dtype=np.float32))
        assert pcm.tolist() == [-32768, 32767]

    def test_monotonic(self):
        samples = np.linspace(-1.0, 1.0, 2001, dtype=np.float32)
        pcm = float_to_pcm16_asymmetric(samples).astype(np.int32)
        assert np.all(np.diff(pcm) >= 0)


class TestSerialization:
    def test_little_endian_bytes(self):
        data = pcm16_to_bytes(np.array([1, -2], dtype=np.int16))
        assert data == b"\x01\x00\xfe\xff"

    def test_base64_is_lossless(self):
        payload = bytes(range(256))
        assert base64.b64decode(encode_base64(payload)) == payload
