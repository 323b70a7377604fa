"""
Frequency refinement with Goertzel filters.
"""

import logging
import math
from collections.abc import Sequence

import numpy as np
from scipy.signal import lfilter

from .constants import GOERTZEL_DIVISIONS, GOERTZEL_SEARCH_HALF_WIDTH, SAMPLE_RATE

logger = logging.getLogger(__name__)


def _accuracy_for(frequency_estimate: float) -> float:
    """Target precision of the search in Hz."""
    if frequency_estimate < 100:
        return 0.01
    if frequency_estimate < 1000:
        return 0.1
    return 1.0


class GoertzelAnalyzer:
    """
    Refines a rough frequency estimate by searching for the Goertzel power maximum.

    The search starts on an interval of +/-10 Hz around the estimate. Each
    iteration samples the interval at quarter points and narrows it to the two
    frequencies with the highest power seen so far, until the interval is
    within the target accuracy or stops changing.
    """

    def __init__(self, sample_rate_in_hz: float = SAMPLE_RATE):
        if sample_rate_in_hz <= 0:
            raise ValueError(f"Sample rate must be positive, got {sample_rate_in_hz}")
        self.sample_rate_in_hz = float(sample_rate_in_hz)

    def calculate_power(self, samples: Sequence[int] | np.ndarray, target_frequency: float) -> float:
        """
        Goertzel power of the samples at a single frequency.

        Runs the recurrence s[n] = x[n] + coeff * s[n-1] - s[n-2] over all
        samples and combines the last two states.
        """
        coeff = 2.0 * math.cos(2.0 * math.pi * target_frequency / self.sample_rate_in_hz)
        # Two leading zeros keep the state at rest and guarantee two outputs
        values = np.concatenate(([0.0, 0.0], np.asarray(samples, dtype=np.float64)))
        states = lfilter([1.0], [1.0, -coeff, 1.0], values)
        s_prev1 = float(states[-1])
        s_prev2 = float(states[-2])
        return s_prev2 * s_prev2 + s_prev1 * s_prev1 - coeff * s_prev1 * s_prev2

    def find_frequency_with_highest_power(
        self, samples: Sequence[int] | np.ndarray, frequency_estimate: float
    ) -> float:
        """
        Find the frequency near the estimate with the highest Goertzel power.

        Args:
            samples: Signed 16-bit samples
            frequency_estimate: Rough frequency in Hz, typically an FFT bin

        Returns:
            Refined frequency in Hz
        """
        samples = np.asarray(samples, dtype=np.float64)
        accuracy = _accuracy_for(frequency_estimate)

        lo_frequency = frequency_estimate - GOERTZEL_SEARCH_HALF_WIDTH
        power_at_lo = self.calculate_power(samples, lo_frequency)
        hi_frequency = frequency_estimate + GOERTZEL_SEARCH_HALF_WIDTH
        power_at_hi = self.calculate_power(samples, hi_frequency)

        iterations = 0
        while True:
            iterations += 1
            # Order of the two frequencies doesn't matter here, only the powers
            if power_at_lo > power_at_hi:
                best = (power_at_lo, lo_frequency)
                second = (power_at_hi, hi_frequency)
            else:
                best = (power_at_hi, hi_frequency)
                second = (power_at_lo, lo_frequency)

            interval = (hi_frequency - lo_frequency) / GOERTZEL_DIVISIONS
            for division in range(1, GOERTZEL_DIVISIONS):
                frequency = lo_frequency + division * interval
                power = self.calculate_power(samples, frequency)
                if power > best[0]:
                    second = best
                    best = (power, frequency)
                elif power > second[0]:
                    second = (power, frequency)

            previous_lo = lo_frequency
            previous_hi = hi_frequency
            (power_at_lo, lo_frequency), (power_at_hi, hi_frequency) = sorted(
                (best, second), key=lambda entry: entry[1]
            )

            # Bounds unchanged: no peak in the interval, give up
            if math.isclose(previous_lo, lo_frequency) and math.isclose(previous_hi, hi_frequency):
                logger.debug(
                    "Goertzel search stalled at %.3f-%.3f Hz", lo_frequency, hi_frequency
                )
                break
            if hi_frequency - lo_frequency <= accuracy:
                break

        found = lo_frequency if power_at_lo > power_at_hi else hi_frequency
        logger.debug(
            "Goertzel refined %.2f Hz to %.3f Hz in %d iterations",
            frequency_estimate,
            found,
            iterations,
        )
        return found
