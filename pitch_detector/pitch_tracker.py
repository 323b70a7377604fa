"""
Block buffering and spike rejection around AudioAnalyzer.

Audio capture delivers chunks of arbitrary size. PitchTracker accumulates
them into fixed-size blocks, analyzes each full block, and suppresses
readings that jump too far from the previous one (typically the transient
between two notes on an instrument).
"""

import logging
from collections.abc import Sequence

import numpy as np

from .audio_analyzer import AudioAnalyzer
from .constants import BUFFER_SIZE, MAX_RELATIVE_CHANGE, SAMPLE_RATE

logger = logging.getLogger(__name__)


class PitchTracker:
    """
    Feeds a stream of samples through an AudioAnalyzer one block at a time.

    Each completed block produces one reading:
    - the detected frequency in Hz,
    - 0.0 when no pitch was detected (too quiet, silence, no peak),
    - None when the detection was rejected as a spike.

    A spike is a frequency more than ``max_relative_change`` away from the
    last reading, relative to it. After a spike (or silence) the last reading
    is cleared, so the next detection is accepted.
    """

    def __init__(
        self,
        sample_rate: float = SAMPLE_RATE,
        buffer_size: int = BUFFER_SIZE,
        max_relative_change: float = MAX_RELATIVE_CHANGE,
        analyzer: AudioAnalyzer | None = None,
    ):
        """
        Initialize tracker.

        Args:
            sample_rate: Sample rate of the incoming audio in Hz
            buffer_size: Samples per analyzed block
            max_relative_change: Largest accepted change relative to the last reading
            analyzer: Analyzer to use (created from sample_rate/buffer_size if omitted)
        """
        self.buffer_size = buffer_size
        self.max_relative_change = max_relative_change
        self._analyzer = analyzer or AudioAnalyzer(sample_rate, buffer_size=buffer_size)
        self._buffer = np.zeros(buffer_size, dtype=np.int16)
        self._fill = 0
        self._last_pitch: float | None = None

    def set_max_relative_change(self, value: float):
        self.max_relative_change = max(0.0, value)

    def process(self, samples: Sequence[int] | np.ndarray) -> list[float | None]:
        """
        Add samples and analyze every block they complete.

        Args:
            samples: Signed 16-bit samples of any length

        Returns:
            One reading per completed block, in order (possibly empty)
        """
        samples = np.asarray(samples, dtype=np.int16)
        readings: list[float | None] = []

        offset = 0
        while offset < len(samples):
            length = min(len(samples) - offset, self.buffer_size - self._fill)
            self._buffer[self._fill : self._fill + length] = samples[offset : offset + length]
            self._fill += length
            offset += length

            if self._fill == self.buffer_size:
                readings.append(self._analyze_block())
                self._fill = 0

        return readings

    def _analyze_block(self) -> float | None:
        frequency = self._analyzer.detect_fundamental_frequency(self._buffer)
        if frequency is None:
            # Probably too quiet, report as 0
            self._last_pitch = 0.0
        elif self._is_spike(frequency):
            logger.debug("Skipping %.2f Hz after %s Hz", frequency, self._last_pitch)
            self._last_pitch = None
        else:
            self._last_pitch = frequency
        return self._last_pitch

    def _is_spike(self, frequency: float) -> bool:
        if self._last_pitch is None:
            return False
        if self._last_pitch == 0.0:
            # Any change from silence is unbounded
            return True
        return abs(frequency - self._last_pitch) / self._last_pitch > self.max_relative_change

    def reset(self):
        """Discard buffered samples and the last reading."""
        self._fill = 0
        self._last_pitch = None

    @property
    def last_pitch(self) -> float | None:
        """Most recent reading."""
        return self._last_pitch

    @property
    def pending_sample_count(self) -> int:
        """Samples buffered towards the next block."""
        return self._fill
