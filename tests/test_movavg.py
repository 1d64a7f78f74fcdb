"""Tests for the moving-average latency gauge."""

import pytest

from movavg import MovingAverage


class TestMovingAverage:

    def test_empty_is_zero(self):
        assert MovingAverage(5).average() == 0.0

    def test_partial_window(self):
        """Only filled slots count before the buffer wraps."""
        ma = MovingAverage(10)
        ma.add(2.0)
        ma.add(4.0)
        assert ma.average() == 3.0
        assert len(ma) == 2

    def test_window_three(self):
        ma = MovingAverage(3)
        for x in (1.0, 2.0, 3.0):
            ma.add(x)
        assert ma.average() == pytest.approx(2.0)
        ma.add(4.0)
        assert ma.average() == pytest.approx(3.0)   # 1.0 evicted

    def test_long_run_keeps_last_window(self):
        ma = MovingAverage(4)
        for x in range(100):
            ma.add(float(x))
        assert ma.average() == pytest.approx((96 + 97 + 98 + 99) / 4)
        assert len(ma) == 4

    def test_window_must_be_positive(self):
        with pytest.raises(ValueError):
            MovingAverage(0)
