"""
Fixed-size running mean used to smooth FFT magnitudes.
"""

from collections import deque


class MovingAverage:
    """
    Running mean over the last ``size`` inserted values.

    Values are kept in a circular buffer together with their running sum, so
    each insertion is O(1). Until the buffer is full, the mean is taken over
    the values inserted so far.
    """

    def __init__(self, size: int):
        if size <= 0:
            raise ValueError(f"Moving average size must be positive, got {size}")
        self.size = size
        self._values: deque[float] = deque(maxlen=size)
        self._sum = 0.0

    def insert_and_return_average(self, value: float) -> float:
        """Insert a value and return the mean of the current window."""
        if len(self._values) == self.size:
            self._sum -= self._values[0]
        self._values.append(value)
        self._sum += value
        return self._sum / len(self._values)
