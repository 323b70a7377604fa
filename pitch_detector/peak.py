"""
Spectral peaks and the harmonic relationships between them.

Peaks and harmonics only live for one call to
``AudioAnalyzer.detect_fundamental_frequency``. A peak is identified by its
FFT bin index, which is only meaningful within that call.
"""

from dataclasses import dataclass, field


@dataclass(eq=False)
class Peak:
    """A peak in the FFT magnitude spectrum."""

    fft_index: int
    frequency_estimate: float  # Frequency of the FFT bin in Hz
    fft_magnitude: float
    fft_prominence: float
    goertzel_filtered_frequency: float = 0.0  # Set by Goertzel refinement
    harmonics: list["Harmonic"] = field(default_factory=list, repr=False)

    @property
    def fft_value(self) -> float:
        """Score used to rank peaks by strength."""
        return self.fft_magnitude * self.fft_prominence

    @property
    def harmonic_terms(self) -> list[int]:
        """This peak's term in each harmonic it takes part in."""
        return [harmonic.get_term_for_peak(self) for harmonic in self.harmonics]

    def add_harmonic(self, harmonic: "Harmonic"):
        self.harmonics.append(harmonic)

    def __eq__(self, other):
        if not isinstance(other, Peak):
            return NotImplemented
        return self.fft_index == other.fft_index

    def __hash__(self):
        return hash(self.fft_index)


@dataclass(eq=False)
class Harmonic:
    """
    Ratio relationship between two peaks.

    The frequencies of ``peak_a`` and ``peak_b`` relate approximately as
    ``term_a : term_b``. Both peaks hold a reference to the harmonic so that
    terms found through other peak pairs can be used to refine this one.
    """

    peak_a: Peak
    peak_b: Peak
    term_a: int
    term_b: int

    @classmethod
    def add_harmonic(cls, peak_a: Peak, peak_b: Peak, term_a: int, term_b: int) -> "Harmonic":
        """Create a harmonic and register it with both of its peaks."""
        harmonic = cls(peak_a=peak_a, peak_b=peak_b, term_a=term_a, term_b=term_b)
        peak_a.add_harmonic(harmonic)
        peak_b.add_harmonic(harmonic)
        return harmonic

    def get_term_for_peak(self, peak: Peak) -> int:
        """Term associated with the given peak, or 0 if it is not part of this harmonic."""
        if peak == self.peak_a:
            return self.term_a
        if peak == self.peak_b:
            return self.term_b
        return 0

    def adjust_harmonic(self):
        """
        Scale both terms to agree with finer ratios known through other harmonics.

        For example, if this harmonic says A:B is 1:2 but peak A is already
        known to be term 2 of another relationship, the ratio becomes 2:4.
        The multiplier is the larger of the ones found through each peak.
        """
        multiplier = self._find_multiplier(self.peak_a, self.term_a)
        multiplier = max(multiplier, self._find_multiplier(self.peak_b, self.term_b))
        if multiplier != 0:
            self.term_a *= multiplier
            self.term_b *= multiplier

    @staticmethod
    def _find_multiplier(peak: Peak, term: int) -> int:
        for other_term in sorted(peak.harmonic_terms, reverse=True):
            if other_term <= term:
                # Only larger terms matter
                break
            if other_term % term == 0:
                return other_term // term
        return 0

    def __eq__(self, other):
        if not isinstance(other, Harmonic):
            return NotImplemented
        return self.peak_a == other.peak_a and self.peak_b == other.peak_b

    def __hash__(self):
        return hash((self.peak_a, self.peak_b))
