"""
FFT peak finder for pitch detection.

The transform is an in-place iterative radix-2 Cooley-Tukey FFT working on
separate real and imaginary arrays. Peaks are taken from a smoothed magnitude
spectrum restricted to the piano range and ranked by magnitude times
prominence.
"""

import logging
from collections.abc import Sequence

import numpy as np

from .constants import (
    BUFFER_SIZE,
    HIGHEST_PIANO_FREQUENCY,
    INT16_MAX,
    LOWEST_PIANO_FREQUENCY,
    MAX_PEAKS,
    MIN_PEAK_RATIO,
    MIN_PROMINENCE,
    MOVING_AVERAGE_WINDOW_SIZE,
    NEARBY_PEAK_DISTANCE,
    PEAK_BOUNDARY_DIVISOR,
    PEAK_MEAN_FACTOR,
    SAMPLE_RATE,
)
from .moving_average import MovingAverage
from .peak import Peak

logger = logging.getLogger(__name__)


def _bit_reversed_indices(n: int) -> np.ndarray:
    """Bit-reversal permutation of 0..n-1 for a power-of-two n."""
    bits = n.bit_length() - 1
    indices = np.arange(n)
    reversed_indices = np.zeros(n, dtype=np.int64)
    for _ in range(bits):
        reversed_indices = (reversed_indices << 1) | (indices & 1)
        indices = indices >> 1
    return reversed_indices


def fft_in_place(real: np.ndarray, imag: np.ndarray):
    """
    Compute the discrete Fourier transform of ``real + i*imag`` in place.

    Non-recursive radix-2 Cooley-Tukey: a bit-reversal permutation followed by
    log2(n) butterfly stages. Each stage is vectorized across all butterflies
    that share a twiddle factor.

    Args:
        real: Real parts (float64, length a power of two), overwritten
        imag: Imaginary parts (same length), overwritten
    """
    n = len(real)
    if n == 0 or n & (n - 1):
        raise ValueError(f"FFT length must be a power of two, got {n}")
    if len(imag) != n:
        raise ValueError("Real and imaginary arrays must have the same length")
    if not (np.issubdtype(real.dtype, np.floating) and np.issubdtype(imag.dtype, np.floating)):
        raise ValueError(f"FFT arrays must be floating point, got {real.dtype} and {imag.dtype}")

    # Bit reversal permutation
    permutation = _bit_reversed_indices(n)
    real[:] = real[permutation]
    imag[:] = imag[permutation]

    # Butterfly updates
    level = 2
    while level <= n:
        half = level // 2
        kth = -2.0 * np.pi * np.arange(half) / level
        w_a = np.cos(kth)
        w_b = np.sin(kth)

        # Rows are independent groups of `level` elements (views into the arrays)
        real_groups = real.reshape(-1, level)
        imag_groups = imag.reshape(-1, level)

        x_a = real_groups[:, half:]
        x_b = imag_groups[:, half:]
        tao_a = x_a * w_a - x_b * w_b
        tao_b = x_a * w_b + x_b * w_a

        even_a = real_groups[:, :half].copy()
        even_b = imag_groups[:, :half].copy()
        real_groups[:, half:] = even_a - tao_a
        imag_groups[:, half:] = even_b - tao_b
        real_groups[:, :half] = even_a + tao_a
        imag_groups[:, :half] = even_b + tao_b

        level *= 2


class FFTAnalyzer:
    """
    Finds the strongest spectral peaks of a block of samples.

    A bin is a peak candidate when its smoothed magnitude is at least twice
    the mean smoothed magnitude and it stands out from its surroundings
    (prominence above 1). At most ``max_peaks`` peaks are returned, strongest
    first.
    """

    def __init__(
        self,
        sample_rate_in_hz: float = SAMPLE_RATE,
        buffer_size: int = BUFFER_SIZE,
        max_peaks: int = MAX_PEAKS,
        min_peak_ratio: float = MIN_PEAK_RATIO,
    ):
        """
        Initialize analyzer.

        Args:
            sample_rate_in_hz: Sample rate of the analyzed blocks
            buffer_size: FFT size (power of two); shorter blocks are zero-padded
            max_peaks: Maximum number of peaks returned
            min_peak_ratio: Weakest kept peak relative to the strongest
        """
        if sample_rate_in_hz <= 0:
            raise ValueError(f"Sample rate must be positive, got {sample_rate_in_hz}")
        if buffer_size <= 0 or buffer_size & (buffer_size - 1):
            raise ValueError(f"Buffer size must be a power of two, got {buffer_size}")

        self.sample_rate_in_hz = float(sample_rate_in_hz)
        self.buffer_size = buffer_size
        self.max_peaks = max_peaks
        self.min_peak_ratio = min_peak_ratio

        self.index_of_lowest_note = self.frequency_to_index(LOWEST_PIANO_FREQUENCY)
        self.index_of_highest_note = min(
            self.frequency_to_index(HIGHEST_PIANO_FREQUENCY),
            buffer_size - MOVING_AVERAGE_WINDOW_SIZE,
        )
        # Room for the trailing moving-average window past the highest note
        self._spectrum_length = self.index_of_highest_note + MOVING_AVERAGE_WINDOW_SIZE

    def frequency_to_index(self, frequency: float) -> int:
        return int(frequency * self.buffer_size / self.sample_rate_in_hz)

    def index_to_frequency(self, index: int) -> float:
        return index * (self.sample_rate_in_hz / self.buffer_size)

    def _transform(self, samples: Sequence[int] | np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Normalize and zero-pad samples, then run the FFT. Returns (real, imag)."""
        values = np.asarray(samples, dtype=np.float64)[: self.buffer_size]
        a = np.zeros(self.buffer_size, dtype=np.float64)
        b = np.zeros(self.buffer_size, dtype=np.float64)
        a[: len(values)] = values / INT16_MAX
        fft_in_place(a, b)
        return a, b

    def _smoothed_spectrum(
        self, samples: Sequence[int] | np.ndarray
    ) -> tuple[np.ndarray, np.ndarray, float]:
        """
        Compute raw and smoothed magnitudes over the piano range.

        Returns:
            Tuple of (magnitudes, moving average values, mean of the moving
            average values). Bins below the lowest note are left at zero.
        """
        a, b = self._transform(samples)

        magnitudes = np.zeros(self._spectrum_length, dtype=np.float64)
        moving_average_values = np.zeros(self._spectrum_length, dtype=np.float64)
        moving_average = MovingAverage(MOVING_AVERAGE_WINDOW_SIZE)

        start = self.index_of_lowest_note
        end = self._spectrum_length
        magnitudes[start:end] = np.sqrt(a[start:end] ** 2 + b[start:end] ** 2)

        # The moving average is skewed: it covers the window up to and
        # including each bin. _find_index_of_max_magnitude compensates.
        mean = 0.0
        for index in range(start, end):
            moving_average_values[index] = moving_average.insert_and_return_average(
                magnitudes[index]
            )
            mean += moving_average_values[index]
        mean /= end - start
        return magnitudes, moving_average_values, mean

    def magnitude_spectrum(
        self, samples: Sequence[int] | np.ndarray
    ) -> tuple[np.ndarray, np.ndarray]:
        """
        Raw FFT magnitudes over the analyzed range, for display.

        Returns:
            Tuple of (frequencies in Hz, magnitudes)
        """
        magnitudes, _, _ = self._smoothed_spectrum(samples)
        frequencies = np.arange(self._spectrum_length) * (self.sample_rate_in_hz / self.buffer_size)
        return frequencies, magnitudes

    def find_peaks(self, samples: Sequence[int] | np.ndarray) -> list[Peak]:
        """
        Find the peaks of the spectrum of a block of samples.

        Args:
            samples: Signed 16-bit samples

        Returns:
            Peaks sorted by fft_value, strongest first (possibly empty)
        """
        magnitudes, moving_average_values, mean = self._smoothed_spectrum(samples)

        peaks: list[Peak] = []
        for index in range(self.index_of_highest_note + 1):
            # Peaks must be at least two times the global mean
            if moving_average_values[index] < PEAK_MEAN_FACTOR * mean:
                continue

            prominence = self._determine_prominence_of_peak(
                moving_average_values, index, mean / PEAK_BOUNDARY_DIVISOR
            )
            if prominence > MIN_PROMINENCE:
                index_of_max = self._find_index_of_max_magnitude(magnitudes, index)
                peaks.append(
                    Peak(
                        fft_index=index_of_max,
                        frequency_estimate=self.index_to_frequency(index_of_max),
                        fft_magnitude=float(magnitudes[index_of_max]),
                        fft_prominence=prominence,
                    )
                )

        if not peaks:
            logger.debug("No spectral peaks above %.4f", PEAK_MEAN_FACTOR * mean)
            return []

        peaks.sort(key=lambda peak: peak.fft_value, reverse=True)

        # Keep up to max_peaks good peaks, dropping weak ones from the tail
        highest_fft_value = peaks[0].fft_value
        kept = len(peaks)
        while kept > 1:
            last = kept - 1
            if last < self.max_peaks and peaks[last].fft_value >= highest_fft_value * self.min_peak_ratio:
                break
            kept -= 1
        del peaks[kept:]

        logger.debug(
            "FFT peaks: %s",
            ", ".join(f"{p.frequency_estimate:.1f}Hz ({p.fft_value:.2f})" for p in peaks),
        )
        return peaks

    @staticmethod
    def _determine_prominence_of_peak(
        values: np.ndarray, index: int, boundary_value: float
    ) -> float:
        """
        Height of values[index] relative to its local surroundings.

        Scans outwards symmetrically until a value at or below boundary_value
        or above the candidate is met. A larger value closer than
        NEARBY_PEAK_DISTANCE bins means the candidate is not a peak.

        Returns:
            Candidate value divided by the mean of the scanned values, or 0
        """
        value = values[index]
        local_sum = 0.0
        count = 0
        start = index - 1
        end = index + 1

        while start >= 0 and end < len(values):
            if values[start] <= boundary_value:
                break
            if values[start] > value:
                if index - start < NEARBY_PEAK_DISTANCE:
                    return 0.0
                break
            if values[end] <= boundary_value:
                break
            if values[end] > value:
                if end - index < NEARBY_PEAK_DISTANCE:
                    return 0.0
                break
            local_sum += values[start] + values[end]
            count += 2
            start -= 1
            end += 1

        if count == 0 or local_sum == 0.0:
            return 0.0
        return float(value / (local_sum / count))

    @staticmethod
    def _find_index_of_max_magnitude(magnitudes: np.ndarray, index: int) -> int:
        """Index of the largest raw magnitude in the moving-average window ending at index."""
        index_of_max = index
        max_magnitude = magnitudes[index]
        for candidate in range(max(0, index - MOVING_AVERAGE_WINDOW_SIZE + 1), index):
            if magnitudes[candidate] > max_magnitude:
                index_of_max = candidate
                max_magnitude = magnitudes[candidate]
        return index_of_max
