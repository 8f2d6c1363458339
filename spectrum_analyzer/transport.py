"""Non-blocking frame hand-off from the audio callback to the analysis worker."""

import logging
import queue
import threading
import time
from typing import Optional

import numpy as np

from . import config
from .errors import TransportClosedError

logger = logging.getLogger(__name__)

# How often a waiting consumer rechecks the closed flag, in seconds.
_POLL_INTERVAL: float = 0.05


class FrameTransport:
    """FIFO queue of sample frames with an explicit overflow policy.

    ``send`` never blocks, so it is safe to call from the audio callback.
    With ``maxsize > 0`` a full queue either drops the incoming frame
    (``"drop-newest"``) or evicts the oldest queued frame (``"drop-oldest"``).
    ``maxsize == 0`` gives an unbounded queue with no back-pressure.
    """

    def __init__(
        self,
        maxsize: int = config.QUEUE_MAXSIZE,
        overflow: str = config.OVERFLOW_POLICY,
    ) -> None:
        if overflow not in config.OVERFLOW_POLICIES:
            raise ValueError(f"Unknown overflow policy: {overflow!r}")
        self.maxsize: int = maxsize
        self.overflow: str = overflow
        self._queue: "queue.Queue[np.ndarray]" = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()
        self.sent: int = 0
        self.dropped: int = 0
        self._reported_drops: int = 0

    @property
    def closed(self) -> bool:
        """True once ``close`` has been called."""
        return self._closed.is_set()

    def send(self, frame: np.ndarray, strict: bool = False) -> bool:
        """Enqueue ``frame``; return False if it (or an older frame) was dropped."""
        if self._closed.is_set():
            if strict:
                raise TransportClosedError("Frame transport is closed")
            self._count_drop()
            return False
        try:
            self._queue.put_nowait(frame)
        except queue.Full:
            if self.overflow == "drop-newest":
                self._count_drop()
                return False
            self._evict_oldest()
            try:
                self._queue.put_nowait(frame)
            except queue.Full:
                self._count_drop()
                return False
            self.sent += 1
            return False
        self.sent += 1
        return True

    def receive(self, timeout: Optional[float] = None) -> Optional[np.ndarray]:
        """Next frame in send order, or None once closed and fully drained.

        Frames queued before ``close`` are still delivered. Raises
        ``queue.Empty`` if ``timeout`` expires with nothing queued.
        """
        self._report_drops()
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            if self._closed.is_set() and self._queue.empty():
                return None
            wait = _POLL_INTERVAL
            if deadline is not None:
                wait = min(wait, deadline - time.monotonic())
                if wait <= 0:
                    raise queue.Empty
            try:
                return self._queue.get(timeout=wait)
            except queue.Empty:
                continue

    def close(self) -> None:
        """Stop accepting frames; the consumer sees None after the backlog."""
        if self._closed.is_set():
            return
        self._closed.set()
        logger.debug("Transport closed (sent=%d, dropped=%d)", self.sent, self.dropped)

    def qsize(self) -> int:
        """Number of frames waiting for the consumer."""
        return self._queue.qsize()

    def _evict_oldest(self) -> None:
        try:
            self._queue.get_nowait()
        except queue.Empty:
            return
        self._count_drop()

    def _count_drop(self) -> None:
        # runs on the audio thread: count only, report from receive()
        self.dropped += 1

    def _report_drops(self) -> None:
        """Warn once for every further 25 frames dropped."""
        batches = self.dropped // 25
        if batches > self._reported_drops:
            self._reported_drops = batches
            logger.warning("Dropped %d audio frames (analysis is falling behind)", self.dropped)
