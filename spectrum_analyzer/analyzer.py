"""Analysis worker: downmix, accumulate, transform and hand the spectrum on."""

import logging
import threading
from typing import Callable, Optional

import numpy as np

from . import config
from .accumulator import SegmentAccumulator
from .dsp import SpectralTransform, downmix, frequency_table
from .errors import AnalyzerError
from .transport import FrameTransport

logger = logging.getLogger(__name__)


class SpectrumAnalyzer:
    """Consume interleaved frames in order and emit one spectrum per rotation.

    ``on_spectrum`` receives a view of the lower half of the transformed
    window; it must finish with it before the next frame is processed.
    """

    def __init__(
        self,
        settings: config.AnalyzerSettings,
        sample_rate: float,
        channel_count: int,
        on_spectrum: Callable[[np.ndarray], None],
        frequencies: Optional[np.ndarray] = None,
    ) -> None:
        if channel_count < 1:
            raise ValueError(f"channel_count must be >= 1, got {channel_count}")
        self.settings: config.AnalyzerSettings = settings
        self.sample_rate: float = sample_rate
        self.channel_count: int = channel_count
        self.on_spectrum: Callable[[np.ndarray], None] = on_spectrum
        self.accumulator: SegmentAccumulator = SegmentAccumulator(
            settings.buffer_size, settings.num_buffers, settings.short_chunk_policy
        )
        self.transform: SpectralTransform = SpectralTransform(settings.total_length)
        if frequencies is None:
            frequencies = frequency_table(sample_rate, settings.total_length)
        self.frequencies: np.ndarray = frequencies
        self.frames: int = 0
        self.failed_frames: int = 0
        self._thread: Optional[threading.Thread] = None

    def process_frame(self, samples: np.ndarray) -> int:
        """Run one driver frame through the pipeline; return rotations completed."""
        mono = downmix(samples, self.channel_count)
        completed = 0
        for chunk in self.accumulator.split(mono):
            if self.accumulator.push(chunk):
                self._transform_and_emit()
                completed += 1
        self.frames += 1
        return completed

    def _transform_and_emit(self) -> None:
        buffer = self.transform.forward(self.accumulator.buffer)
        self.on_spectrum(self.transform.spectrum_slice(buffer))

    def run(self, transport: FrameTransport) -> None:
        """Drain ``transport`` until it is closed."""
        logger.debug("Analysis worker started")
        while True:
            frame = transport.receive()
            if frame is None:
                break
            try:
                self.process_frame(frame)
            except (AnalyzerError, ValueError):
                self.failed_frames += 1
                logger.exception("Dropping frame %d", self.frames)
        logger.debug(
            "Analysis worker stopped after %d frames (%d rotations)",
            self.frames,
            self.accumulator.rotations,
        )

    def start(self, transport: FrameTransport) -> threading.Thread:
        """Run the worker loop on a daemon thread."""
        thread = threading.Thread(
            target=self.run, args=(transport,), name="SpectrumAnalyzer", daemon=True
        )
        thread.start()
        self._thread = thread
        return thread

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the worker thread started by ``start``, if any."""
        if self._thread is not None:
            self._thread.join(timeout=timeout)
