"""
Tests for the FFT and the FFT peak finder.
"""

import numpy as np
import pytest

from pitch_detector import BUFFER_SIZE, SAMPLE_RATE
from pitch_detector.fft_analyzer import FFTAnalyzer, fft_in_place


def generate_tone(frequencies, amplitudes, num_samples=BUFFER_SIZE, sample_rate=SAMPLE_RATE):
    """Generate an int16 block containing the given sine components."""
    t = np.arange(num_samples) / sample_rate
    signal = np.zeros(num_samples)
    for frequency, amplitude in zip(frequencies, amplitudes):
        signal += amplitude * np.sin(2 * np.pi * frequency * t)
    return np.round(signal).astype(np.int16)


class TestFftInPlace:
    """The hand-written FFT must agree with numpy."""

    @pytest.mark.parametrize("n", [2, 8, 64, 1024, 4096])
    def test_matches_numpy(self, n):
        rng = np.random.default_rng(n)
        real = rng.standard_normal(n)
        imag = rng.standard_normal(n)
        expected = np.fft.fft(real + 1j * imag)

        fft_in_place(real, imag)

        assert np.allclose(real, expected.real, atol=1e-9)
        assert np.allclose(imag, expected.imag, atol=1e-9)

    def test_impulse_is_flat(self):
        real = np.zeros(16)
        imag = np.zeros(16)
        real[0] = 1.0
        fft_in_place(real, imag)
        assert np.allclose(real, 1.0)
        assert np.allclose(imag, 0.0)

    def test_rejects_non_power_of_two(self):
        with pytest.raises(ValueError):
            fft_in_place(np.zeros(12), np.zeros(12))

    def test_rejects_mismatched_lengths(self):
        with pytest.raises(ValueError):
            fft_in_place(np.zeros(8), np.zeros(4))

    def test_rejects_integer_arrays(self):
        with pytest.raises(ValueError):
            fft_in_place(np.array([1, 2, 3, 4, 0, 0, 0, 0]), np.zeros(8, dtype=np.int64))


class TestFftAnalyzerSetup:
    def test_piano_range_indices(self):
        """Bin bounds follow index = freq * buffer_size / sample_rate."""
        analyzer = FFTAnalyzer(SAMPLE_RATE)
        assert analyzer.index_of_lowest_note == int(27.5 * BUFFER_SIZE / SAMPLE_RATE)
        assert analyzer.index_of_highest_note == int(4186.01 * BUFFER_SIZE / SAMPLE_RATE)

    def test_index_to_frequency(self):
        analyzer = FFTAnalyzer(SAMPLE_RATE)
        assert analyzer.index_to_frequency(41) == pytest.approx(41 * SAMPLE_RATE / BUFFER_SIZE)

    def test_invalid_buffer_size(self):
        with pytest.raises(ValueError):
            FFTAnalyzer(SAMPLE_RATE, buffer_size=1000)

    def test_invalid_sample_rate(self):
        with pytest.raises(ValueError):
            FFTAnalyzer(0)


class TestFindPeaks:
    """Peak detection on synthetic spectra."""

    def setup_method(self):
        self.analyzer = FFTAnalyzer(SAMPLE_RATE)
        self.bin_width = SAMPLE_RATE / BUFFER_SIZE

    def test_silence_has_no_peaks(self):
        assert self.analyzer.find_peaks(np.zeros(BUFFER_SIZE, dtype=np.int16)) == []

    def test_single_sine(self):
        """A pure tone gives its strongest peak at the nearest bin."""
        peaks = self.analyzer.find_peaks(generate_tone([440.0], [12000.0]))
        assert len(peaks) >= 1
        assert peaks[0].frequency_estimate == pytest.approx(440.0, abs=self.bin_width)
        assert peaks[0].fft_prominence > 1.0

    def test_harmonics_found(self):
        """Each component of a harmonic tone shows up as a peak."""
        frequencies = [220.0, 440.0, 660.0, 880.0]
        peaks = self.analyzer.find_peaks(generate_tone(frequencies, [8000.0, 4800.0, 3200.0, 2400.0]))
        found = sorted(peak.frequency_estimate for peak in peaks)
        for frequency in frequencies:
            assert any(abs(f - frequency) <= self.bin_width for f in found), f"{frequency} Hz missing"

    def test_sorted_by_strength(self):
        peaks = self.analyzer.find_peaks(generate_tone([220.0, 440.0, 660.0], [4000.0, 9000.0, 2000.0]))
        values = [peak.fft_value for peak in peaks]
        assert values == sorted(values, reverse=True)

    def test_at_most_ten_peaks(self):
        """A tone with 16 harmonics is trimmed to 10 peaks."""
        frequencies = [100.0 * k for k in range(1, 17)]
        peaks = self.analyzer.find_peaks(generate_tone(frequencies, [1500.0] * 16))
        assert 0 < len(peaks) <= 10

    def test_noise_at_most_ten_peaks(self):
        rng = np.random.default_rng(7)
        samples = rng.integers(-10000, 10000, BUFFER_SIZE).astype(np.int16)
        assert len(self.analyzer.find_peaks(samples)) <= 10

    def test_weak_peaks_dropped(self):
        """Peaks below 1/25 of the strongest are removed."""
        peaks = self.analyzer.find_peaks(generate_tone([300.0, 1200.0], [16000.0, 100.0]))
        strongest = peaks[0].fft_value
        assert all(peak.fft_value >= strongest / 25 for peak in peaks)
        assert all(abs(peak.frequency_estimate - 1200.0) > self.bin_width for peak in peaks)

    def test_unique_indices(self):
        peaks = self.analyzer.find_peaks(generate_tone([220.0, 440.0, 660.0], [8000.0, 5000.0, 3000.0]))
        assert len({peak.fft_index for peak in peaks}) == len(peaks)


class TestMagnitudeSpectrum:
    def test_spectrum_peak(self):
        analyzer = FFTAnalyzer(SAMPLE_RATE)
        frequencies, magnitudes = analyzer.magnitude_spectrum(generate_tone([1000.0], [12000.0]))
        assert len(frequencies) == len(magnitudes)
        assert frequencies[np.argmax(magnitudes)] == pytest.approx(1000.0, abs=SAMPLE_RATE / BUFFER_SIZE)

    def test_below_lowest_note_is_zero(self):
        analyzer = FFTAnalyzer(SAMPLE_RATE)
        _, magnitudes = analyzer.magnitude_spectrum(generate_tone([100.0], [12000.0]))
        assert np.all(magnitudes[: analyzer.index_of_lowest_note] == 0.0)


class TestProminence:
    def test_larger_neighbour_within_nearby_distance(self):
        values = np.array([1.0, 2.0, 5.0, 6.0, 2.0, 1.0])
        assert FFTAnalyzer._determine_prominence_of_peak(values, 2, 0.1) == 0.0

    def test_scan_stops_at_boundary(self):
        # Scanned values are 3, 3, 2, 2; the 50 past the boundary is never reached
        values = np.array([0.0, 2.0, 3.0, 10.0, 3.0, 2.0, 0.0, 0.0, 50.0])
        assert FFTAnalyzer._determine_prominence_of_peak(values, 3, 1.0) == pytest.approx(4.0)

    def test_distant_larger_value_stops_scan(self):
        values = np.array([9.0, 4.0, 4.0, 4.0, 4.0, 4.0, 5.0, 4.0, 4.0, 4.0, 4.0, 4.0, 4.0])
        assert FFTAnalyzer._determine_prominence_of_peak(values, 6, 1.0) == pytest.approx(1.25)

    def test_nothing_scanned(self):
        values = np.array([0.0, 0.5, 10.0, 0.5, 0.0])
        assert FFTAnalyzer._determine_prominence_of_peak(values, 2, 1.0) == 0.0

    def test_zero_local_mean(self):
        values = np.array([0.0, 0.0, 5.0, 0.0, 0.0])
        assert FFTAnalyzer._determine_prominence_of_peak(values, 2, -1.0) == 0.0
