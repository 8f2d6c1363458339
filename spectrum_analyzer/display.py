"""Text output: dominant-frequency lines and a full-screen ASCII spectrum."""

import logging
import sys
from typing import List, Optional, TextIO

import numpy as np

from . import config
from .dsp import bin_spectrum, display_range, peak_of

logger = logging.getLogger(__name__)

# cursor home + clear screen
CLEAR_SCREEN: str = "\x1b[H\x1b[2J"


def format_peak(frequency: float, index: int, magnitude: float) -> str:
    """One-line dominant-frequency report."""
    return f"freq: {frequency}, max_index: {index}, max_norm: {magnitude}"


def render_frame(
    buckets: np.ndarray,
    height: int,
    scale: float = config.VERTICAL_SCALE,
    fill: str = config.FILL_CHAR,
) -> str:
    """Draw ``buckets`` as ``height`` text rows, tallest row first.

    Cell ``(i, j)`` is filled when ``i * scale < buckets[j]``; row ``height - 1``
    is printed at the top.
    """
    rows: List[str] = []
    for i in range(height - 1, -1, -1):
        filled = (i * scale) < buckets
        rows.append("".join(fill if f else " " for f in filled))
    return "\n".join(rows)


class _TextSink:
    """Shared stream handling: write, flush, and log-and-drop on failure."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream: Optional[TextIO] = stream
        self.write_errors: int = 0

    def _write(self, text: str) -> bool:
        stream = self.stream if self.stream is not None else sys.stdout
        try:
            stream.write(text)
            stream.flush()
        except (OSError, ValueError) as exc:
            self.write_errors += 1
            logger.error("Failed to write output, dropping frame: %s", exc)
            return False
        return True


class PeakPrinter(_TextSink):
    """Print one ``freq/max_index/max_norm`` line per rotation."""

    def __init__(self, frequencies: np.ndarray, stream: Optional[TextIO] = None) -> None:
        super().__init__(stream)
        self.frequencies: np.ndarray = frequencies

    def __call__(self, spectrum: np.ndarray) -> None:
        peak = peak_of(spectrum, self.frequencies)
        self._write(format_peak(peak.frequency, peak.index, peak.magnitude) + "\n")


class SpectrumDisplay(_TextSink):
    """Redraw the spectrum as a bar chart sized by ``render_mode``."""

    def __init__(
        self,
        frequencies: np.ndarray,
        render_mode: config.RenderMode = config.RenderMode(),
        scale: float = config.VERTICAL_SCALE,
        max_hz: Optional[float] = config.MAX_DISPLAY_HZ,
        stream: Optional[TextIO] = None,
    ) -> None:
        super().__init__(stream)
        self.render_mode: config.RenderMode = render_mode
        self.scale: float = scale
        self.n_bins: int = display_range(frequencies, max_hz)

    def __call__(self, spectrum: np.ndarray) -> None:
        width, height = self.render_mode.size()
        buckets = bin_spectrum(spectrum[: self.n_bins], width)
        self._write(CLEAR_SCREEN + render_frame(buckets, height, self.scale) + "\n")
