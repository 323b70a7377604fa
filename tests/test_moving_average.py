"""Tests for the moving average."""

import pytest

from pitch_detector.moving_average import MovingAverage


class TestMovingAverage:
    def test_partial_window(self):
        """Before the window fills, the mean covers the values inserted so far."""
        average = MovingAverage(5)
        assert average.insert_and_return_average(2.0) == pytest.approx(2.0)
        assert average.insert_and_return_average(4.0) == pytest.approx(3.0)

    def test_full_window_drops_oldest(self):
        average = MovingAverage(3)
        for value in (1.0, 2.0, 3.0):
            average.insert_and_return_average(value)
        assert average.insert_and_return_average(10.0) == pytest.approx(5.0)
        assert average.insert_and_return_average(10.0) == pytest.approx(23.0 / 3)

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            MovingAverage(0)
