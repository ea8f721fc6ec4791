"""Slice mono float audio into fixed-size PCM16 packets for streaming.

Each packet carries little-endian int16 samples and a mime tag of the form
``audio/pcm;rate=<N>``. Packets are produced strictly in sample order.
"""

from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np

from .conversion import encode_base64, float_to_pcm16_symmetric, pcm16_to_bytes

AUDIO_CHUNK_SIZE = 4096


def pcm_mime_type(sample_rate: int) -> str:
    return f"audio/pcm;rate={sample_rate}"


@dataclass(frozen=True, eq=False)
class PacketizedChunk:
    """One bounded slice of the outbound sample stream."""

    samples: np.ndarray
    mime_type: str
    offset: int
    end: int

    @property
    def data(self) -> bytes:
        return pcm16_to_bytes(self.samples)

    @property
    def sample_count(self) -> int:
        return self.end - self.offset

    def to_base64(self) -> str:
        return encode_base64(self.data)


class Packetizer:
    """Sequential chunk source over a flat mono sample array.

    Example:
        packetizer = Packetizer(buffer.mono(), 16000)
        while (chunk := packetizer.next_chunk()) is not None:
            send(chunk)

    """

    def __init__(self, samples: np.ndarray, sample_rate: int, chunk_size: int = AUDIO_CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        flat = np.asarray(samples, dtype=np.float32)
        if flat.ndim != 1:
            raise ValueError(f"Packetizer expects mono samples, got shape {flat.shape}")
        self._samples = flat
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.mime_type = pcm_mime_type(sample_rate)
        self._offset = 0

    @property
    def total_samples(self) -> int:
        return len(self._samples)

    @property
    def sent_samples(self) -> int:
        return self._offset

    @property
    def exhausted(self) -> bool:
        return self._offset >= self.total_samples

    @property
    def chunk_count(self) -> int:
        return -(-self.total_samples // self.chunk_size)

    @property
    def progress(self) -> float:
        """Percentage of samples handed out so far."""
        if self.total_samples == 0:
            return 100.0
        return self._offset / self.total_samples * 100

    def peek_chunk(self) -> PacketizedChunk | None:
        """Build the next chunk without advancing the offset."""
        if self.exhausted:
            return None
        end = min(self._offset + self.chunk_size, self.total_samples)
        pcm = float_to_pcm16_symmetric(self._samples[self._offset : end])
        return PacketizedChunk(samples=pcm, mime_type=self.mime_type, offset=self._offset, end=end)

    def advance(self, chunk: PacketizedChunk) -> None:
        """Mark chunk as delivered."""
        if chunk.offset != self._offset:
            raise ValueError(f"Out of order chunk: expected offset {self._offset}, got {chunk.offset}")
        self._offset = chunk.end

    def next_chunk(self) -> PacketizedChunk | None:
        chunk = self.peek_chunk()
        if chunk is not None:
            self.advance(chunk)
        return chunk

    def __iter__(self) -> Iterator[PacketizedChunk]:
        while (chunk := self.next_chunk()) is not None:
            yield chunk
