"""Spectral helpers: downmix, FFT plan, bin frequencies, peak search and binning."""

from typing import NamedTuple, Optional, Sequence, Tuple, Union

import librosa
import numpy as np

from .errors import TransformError

ArrayLike = Union[np.ndarray, Sequence[float]]


class Peak(NamedTuple):
    """Dominant bin of one rotation."""

    index: int
    magnitude: float
    frequency: float


def downmix(samples: ArrayLike, channel_count: int) -> np.ndarray:
    """Pick channel 0 out of interleaved ``[c0, c1, ..., c0, c1, ...]`` samples.

    Only complete frames are used, so the result has ``len(samples) // channel_count``
    entries; a trailing partial frame is ignored. No averaging across channels.
    """
    if channel_count < 1:
        raise ValueError(f"channel_count must be >= 1, got {channel_count}")
    data = np.asarray(samples, dtype=np.float32)
    n_frames = data.size // channel_count
    return data[: n_frames * channel_count : channel_count]


def frequency(bin_index: int, sample_rate: float, total_length: int) -> float:
    """Centre frequency in Hz of FFT bin ``bin_index``."""
    return sample_rate * bin_index / total_length


def frequency_table(sample_rate: float, total_length: int) -> np.ndarray:
    """Read-only float32 table of bin frequencies for the non-mirrored half."""
    freqs = librosa.fft_frequencies(sr=sample_rate, n_fft=total_length)
    table = np.ascontiguousarray(freqs[: total_length // 2], dtype=np.float32)
    table.setflags(write=False)
    return table


class SpectralTransform:
    """Forward/inverse DFT plan bound to a single buffer length.

    The plan holds no state derived from buffer contents, so one instance
    serves every rotation of a session.
    """

    def __init__(self, length: int) -> None:
        if length < 1:
            raise TransformError(f"Transform length must be positive, got {length}")
        self.length: int = length

    def _check(self, buffer: np.ndarray) -> None:
        """Reject buffers whose shape differs from the plan length."""
        if buffer.shape != (self.length,):
            raise TransformError(
                f"Expected buffer of shape ({self.length},), got {buffer.shape}"
            )

    def forward(self, buffer: np.ndarray) -> np.ndarray:
        """Replace ``buffer`` with its forward DFT and return it."""
        self._check(buffer)
        buffer[:] = np.fft.fft(buffer)
        return buffer

    def inverse(self, buffer: np.ndarray) -> np.ndarray:
        """Replace ``buffer`` with its inverse DFT (scaled by ``1/length``)."""
        self._check(buffer)
        buffer[:] = np.fft.ifft(buffer)
        return buffer

    def spectrum_slice(self, buffer: np.ndarray) -> np.ndarray:
        """View of the lower half; the upper half mirrors it for real input."""
        self._check(buffer)
        return buffer[: self.length // 2]


def find_peak(spectrum: np.ndarray) -> Tuple[int, float]:
    """Return ``(index, norm)`` of the largest-magnitude bin.

    Ties resolve to the lowest index (a running maximum replaced only on a
    strictly greater norm). NaN bins never win; an all-NaN spectrum gives
    index 0.
    """
    if len(spectrum) == 0:
        raise ValueError("Cannot find a peak in an empty spectrum")
    norms = np.abs(spectrum)
    if np.isnan(norms).all():
        return 0, float(norms[0])
    index = int(np.nanargmax(norms))
    return index, float(norms[index])


def peak_of(spectrum: np.ndarray, frequencies: np.ndarray) -> Peak:
    """``find_peak`` plus the frequency of the winning bin."""
    index, magnitude = find_peak(spectrum)
    return Peak(index=index, magnitude=magnitude, frequency=float(frequencies[index]))


def display_range(frequencies: np.ndarray, max_hz: Optional[float]) -> int:
    """Number of leading bins whose frequency does not exceed ``max_hz``."""
    if max_hz is None:
        return len(frequencies)
    return max(1, int(np.searchsorted(frequencies, max_hz, side="right")))


def bin_spectrum(spectrum: np.ndarray, width: int) -> np.ndarray:
    """Sum bin magnitudes into ``width`` contiguous buckets.

    Each bucket covers ``len(spectrum) // width`` bins; tail bins that do not
    fill a whole bucket are left out.
    """
    if width < 1:
        raise ValueError(f"width must be >= 1, got {width}")
    chunk = len(spectrum) // width
    magnitudes = np.abs(np.asarray(spectrum[: chunk * width]))
    return magnitudes.reshape(width, chunk).sum(axis=1).astype(np.float32)
