"""Rotating segment buffer that assembles mono chunks into one FFT window."""

import logging
from typing import Iterator

import numpy as np

from . import config

logger = logging.getLogger(__name__)


class SegmentAccumulator:
    """Write ``buffer_size`` chunks into ``num_buffers`` consecutive segments.

    The complex buffer is allocated once and overwritten in place. ``push``
    returns True when the segment index wraps back to 0, i.e. every segment
    holds data from the current rotation and the window is ready for the
    transform.

    Chunks shorter than ``buffer_size`` follow ``short_chunk_policy``:
    ``"discard"`` drops them without advancing; ``"copy"`` writes what is
    there, zero-fills the rest of the segment and advances.
    """

    def __init__(
        self,
        buffer_size: int = config.BUFFER_SIZE,
        num_buffers: int = config.NUM_BUFFERS,
        short_chunk_policy: str = config.SHORT_CHUNK_POLICY,
    ) -> None:
        if buffer_size < 1 or num_buffers < 1:
            raise ValueError("buffer_size and num_buffers must be at least 1")
        if short_chunk_policy not in config.SHORT_CHUNK_POLICIES:
            raise ValueError(f"Unknown short chunk policy: {short_chunk_policy!r}")
        self.buffer_size: int = buffer_size
        self.num_buffers: int = num_buffers
        self.short_chunk_policy: str = short_chunk_policy
        self.buffer: np.ndarray = np.zeros(buffer_size * num_buffers, dtype=np.complex64)
        self.segment_index: int = 0
        self.rotations: int = 0
        self.discarded_chunks: int = 0

    def split(self, samples: np.ndarray) -> Iterator[np.ndarray]:
        """Yield consecutive ``buffer_size`` groups, then any short remainder."""
        for start in range(0, len(samples), self.buffer_size):
            yield samples[start : start + self.buffer_size]

    def push(self, chunk: np.ndarray) -> bool:
        """Store ``chunk`` in the current segment; True if a rotation completed."""
        n = len(chunk)
        if n > self.buffer_size:
            raise ValueError(
                f"Chunk of {n} samples exceeds segment size {self.buffer_size}"
            )
        if n < self.buffer_size and self.short_chunk_policy == "discard":
            self.discarded_chunks += 1
            logger.debug("Discarding short chunk (%d < %d samples)", n, self.buffer_size)
            return False

        start = self.segment_index * self.buffer_size
        segment = self.buffer[start : start + self.buffer_size]
        segment[:n] = chunk
        segment[n:] = 0

        self.segment_index = (self.segment_index + 1) % self.num_buffers
        if self.segment_index == 0:
            self.rotations += 1
            return True
        return False

    def reset(self) -> None:
        """Zero the buffer and counters; the next push starts a new rotation."""
        self.buffer[:] = 0
        self.segment_index = 0
        self.rotations = 0
        self.discarded_chunks = 0
