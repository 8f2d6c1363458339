"""Unit tests for the rotating segment accumulator."""

import numpy as np
import pytest

from spectrum_analyzer.accumulator import SegmentAccumulator


@pytest.fixture
def accumulator() -> SegmentAccumulator:
    return SegmentAccumulator(buffer_size=4, num_buffers=3)


def chunk(value: float, n: int = 4) -> np.ndarray:
    return np.full(n, value, dtype=np.float32)


class TestRotation:
    def test_no_signal_before_last_segment(self, accumulator):
        signals = [accumulator.push(chunk(i)) for i in range(2)]
        assert signals == [False, False]
        assert accumulator.segment_index == 2
        assert accumulator.rotations == 0

    def test_signal_fires_once_per_rotation(self, accumulator):
        signals = [accumulator.push(chunk(i)) for i in range(3)]
        assert signals == [False, False, True]
        assert accumulator.segment_index == 0
        assert accumulator.rotations == 1

    def test_segments_land_in_order(self, accumulator):
        for i in range(3):
            accumulator.push(chunk(i + 1))
        np.testing.assert_array_equal(
            accumulator.buffer.real, np.repeat([1.0, 2.0, 3.0], 4)
        )
        np.testing.assert_array_equal(accumulator.buffer.imag, np.zeros(12))

    def test_second_rotation_overwrites_transformed_data(self, accumulator):
        for i in range(3):
            accumulator.push(chunk(i))
        accumulator.buffer[:] = 7 + 7j  # stand-in for transform output
        signals = [accumulator.push(chunk(9)) for _ in range(3)]
        assert signals == [False, False, True]
        np.testing.assert_array_equal(accumulator.buffer, np.full(12, 9 + 0j))
        assert accumulator.rotations == 2

    def test_buffer_is_never_reallocated(self, accumulator):
        buffer = accumulator.buffer
        for i in range(7):
            accumulator.push(chunk(i))
        assert accumulator.buffer is buffer
        assert accumulator.buffer.shape == (12,)

    def test_single_segment_rotates_every_push(self):
        acc = SegmentAccumulator(buffer_size=2, num_buffers=1)
        assert acc.push(chunk(1.0, 2)) is True
        assert acc.push(chunk(2.0, 2)) is True
        assert acc.rotations == 2


class TestShortChunks:
    def test_discard_policy_skips_without_advancing(self, accumulator):
        assert accumulator.push(chunk(1.0, 2)) is False
        assert accumulator.segment_index == 0
        assert accumulator.discarded_chunks == 1
        np.testing.assert_array_equal(accumulator.buffer, np.zeros(12))

    def test_copy_policy_zero_fills_rest_of_segment(self):
        acc = SegmentAccumulator(buffer_size=4, num_buffers=2, short_chunk_policy="copy")
        acc.buffer[:] = 5.0
        assert acc.push(chunk(1.0, 3)) is False
        assert acc.segment_index == 1
        np.testing.assert_array_equal(acc.buffer[:4].real, [1.0, 1.0, 1.0, 0.0])

    def test_copy_policy_counts_towards_rotation(self):
        acc = SegmentAccumulator(buffer_size=4, num_buffers=2, short_chunk_policy="copy")
        acc.push(chunk(1.0))
        assert acc.push(chunk(1.0, 1)) is True

    def test_empty_chunk_is_not_an_error(self, accumulator):
        assert accumulator.push(np.zeros(0, dtype=np.float32)) is False

    def test_oversized_chunk_is_rejected(self, accumulator):
        with pytest.raises(ValueError):
            accumulator.push(chunk(1.0, 5))


class TestSplit:
    def test_exact_multiple(self, accumulator):
        groups = list(accumulator.split(np.arange(8, dtype=np.float32)))
        assert [len(g) for g in groups] == [4, 4]

    def test_trailing_remainder(self, accumulator):
        groups = list(accumulator.split(np.arange(10, dtype=np.float32)))
        assert [len(g) for g in groups] == [4, 4, 2]
        np.testing.assert_array_equal(groups[-1], [8.0, 9.0])

    def test_empty_input(self, accumulator):
        assert list(accumulator.split(np.zeros(0, dtype=np.float32))) == []


def test_reset(accumulator):
    accumulator.push(chunk(1.0))
    accumulator.push(chunk(1.0, 1))
    accumulator.reset()
    assert accumulator.segment_index == 0
    assert accumulator.rotations == 0
    assert accumulator.discarded_chunks == 0
    assert not accumulator.buffer.any()


@pytest.mark.parametrize("kwargs", [
    {"buffer_size": 0},
    {"num_buffers": 0},
    {"short_chunk_policy": "pad"},
])
def test_invalid_arguments(kwargs):
    with pytest.raises(ValueError):
        SegmentAccumulator(**kwargs)
