"""
Fundamental frequency detection for a block of audio samples.

Pipeline for one block:
    1. Reject blocks that are mostly zeros or too quiet
    2. FFTAnalyzer finds the strongest spectral peaks
    3. GoertzelAnalyzer refines the frequency of each peak
    4. Integer ratios between peak frequencies identify harmonics
    5. Each harmonic votes for a fundamental; the largest group of votes wins

No state is kept between calls.
"""

import logging
import math
from collections.abc import Sequence

import numpy as np

from .constants import (
    BUCKET_WIDTH_HZ,
    BUFFER_SIZE,
    HARMONIC_RATIO_TOLERANCE,
    MIN_MAX_HARMONIC,
    MINIMUM_NOISE_LEVEL,
    SAMPLE_RATE,
)
from .fft_analyzer import FFTAnalyzer
from .goertzel_analyzer import GoertzelAnalyzer
from .peak import Harmonic, Peak
from .sound_utils import calculate_uncalibrated_decibels

logger = logging.getLogger(__name__)


def identify_harmonic_ratio(peak_a: Peak, peak_b: Peak, max_harmonic: int) -> Harmonic | None:
    """
    Find the simplest integer ratio a:b matching the two peak frequencies.

    Only coprime pairs with 1 <= a < b < max_harmonic are tried; 2:4 is
    covered by 1:2. The pair with the smallest error within
    HARMONIC_RATIO_TOLERANCE is registered on both peaks.

    Returns:
        The new Harmonic, or None if no ratio is close enough
    """
    ratio = peak_b.goertzel_filtered_frequency / peak_a.goertzel_filtered_frequency

    best_terms: tuple[int, int] | None = None
    smallest_error = math.inf
    for a in range(1, max_harmonic):
        for b in range(a + 1, max_harmonic):
            if math.gcd(a, b) != 1:
                continue
            error = abs(ratio - b / a)
            if error <= HARMONIC_RATIO_TOLERANCE and error < smallest_error:
                smallest_error = error
                best_terms = (a, b)

    if best_terms is None:
        return None
    return Harmonic.add_harmonic(peak_a, peak_b, *best_terms)


def add_fundamental_frequency(buckets: dict[int, list[float]], fundamental_frequency: float):
    """
    Record one vote for a fundamental frequency.

    Votes are grouped by rounded frequency. If an existing key (scanned from
    the highest) is within BUCKET_WIDTH_HZ, its votes are carried over and the
    extended list is stored under the new rounded key.
    """
    rounded_frequency = int(round(fundamental_frequency))

    frequencies: list[float] = []
    for key in sorted(buckets, reverse=True):
        if abs(key - rounded_frequency) < BUCKET_WIDTH_HZ:
            frequencies = list(buckets[key])
            break

    frequencies.append(fundamental_frequency)
    buckets[rounded_frequency] = frequencies


def choose_best_fundamental_frequency(buckets: dict[int, list[float]]) -> float | None:
    """
    Mean of the bucket with the most votes.

    Ties go to the bucket that was created first.
    """
    best_frequencies: list[float] = []
    for frequencies in buckets.values():
        if len(frequencies) > len(best_frequencies):
            best_frequencies = frequencies

    if not best_frequencies:
        return None
    return sum(best_frequencies) / len(best_frequencies)


class AudioAnalyzer:
    """
    Detects the fundamental frequency of blocks of signed 16-bit samples.

    The sample rate must match the blocks passed to
    detect_fundamental_frequency. Calls are independent, so one instance can
    analyze any number of blocks in sequence.
    """

    def __init__(
        self,
        sample_rate_in_hz: float = SAMPLE_RATE,
        buffer_size: int = BUFFER_SIZE,
        noise_floor: float = MINIMUM_NOISE_LEVEL,
    ):
        """
        Initialize analyzer.

        Args:
            sample_rate_in_hz: Sample rate of the analyzed blocks
            buffer_size: Samples per block (power of two)
            noise_floor: Minimum uncalibrated dB level for detection
        """
        self.sample_rate_in_hz = float(sample_rate_in_hz)
        self.buffer_size = buffer_size
        self.noise_floor = noise_floor
        self._fft_analyzer = FFTAnalyzer(sample_rate_in_hz, buffer_size=buffer_size)
        self._goertzel_analyzer = GoertzelAnalyzer(sample_rate_in_hz)

    def set_noise_floor(self, noise_floor: float):
        self.noise_floor = noise_floor

    def detect_fundamental_frequency(self, samples: Sequence[int] | np.ndarray) -> float | None:
        """
        Detect the fundamental frequency of a block of samples.

        Args:
            samples: Signed 16-bit samples, ideally buffer_size of them

        Returns:
            Frequency in Hz, or None if the block is mostly zeros, too quiet,
            or has no clear spectral peak
        """
        samples = np.asarray(samples)

        # Don't bother if half (or more) of the buffer is zeros
        zero_count = int(np.count_nonzero(samples == 0))
        if zero_count >= len(samples) // 2:
            logger.debug("Rejected block: %d of %d samples are zero", zero_count, len(samples))
            return None

        uncalibrated_decibels = calculate_uncalibrated_decibels(samples)
        if uncalibrated_decibels < self.noise_floor:
            logger.debug(
                "Rejected block: level %.1f dB below noise floor %.1f dB",
                uncalibrated_decibels,
                self.noise_floor,
            )
            return None

        # Sorted by FFT value, strongest first
        peaks = self._fft_analyzer.find_peaks(samples)
        if not peaks:
            return None

        for peak in peaks:
            peak.goertzel_filtered_frequency = self._goertzel_analyzer.find_frequency_with_highest_power(
                samples, peak.frequency_estimate
            )

        tallest_peak = peaks[0]
        if len(peaks) == 1:
            return tallest_peak.goertzel_filtered_frequency

        fundamental_frequency = self._determine_fundamental_frequency_from_harmonics(peaks)
        if fundamental_frequency is None:
            logger.debug("No harmonics recognized, using tallest peak")
            return tallest_peak.goertzel_filtered_frequency
        return fundamental_frequency

    def _determine_fundamental_frequency_from_harmonics(self, peaks: list[Peak]) -> float | None:
        """Vote on the fundamental using harmonic ratios between peaks. None if there are none."""
        peaks = sorted(peaks, key=lambda peak: peak.goertzel_filtered_frequency)

        # Harmonics 1 through 8, more if there are more peaks
        max_harmonic = max(MIN_MAX_HARMONIC, len(peaks))
        harmonics: list[Harmonic] = []
        for i, peak_i in enumerate(peaks):
            for peak_j in peaks[i + 1 :]:
                harmonic = identify_harmonic_ratio(peak_i, peak_j, max_harmonic)
                if harmonic is not None:
                    harmonics.append(harmonic)

        if not harmonics:
            return None

        buckets: dict[int, list[float]] = {}
        for harmonic in harmonics:
            harmonic.adjust_harmonic()
            add_fundamental_frequency(
                buckets, harmonic.peak_a.goertzel_filtered_frequency / harmonic.term_a
            )
            add_fundamental_frequency(
                buckets, harmonic.peak_b.goertzel_filtered_frequency / harmonic.term_b
            )

        logger.debug(
            "Harmonics: %s; buckets: %s",
            ", ".join(
                f"{h.peak_a.goertzel_filtered_frequency:.1f}:{h.peak_b.goertzel_filtered_frequency:.1f}"
                f"={h.term_a}:{h.term_b}"
                for h in harmonics
            ),
            {key: len(values) for key, values in buckets.items()},
        )
        return choose_best_fundamental_frequency(buckets)
