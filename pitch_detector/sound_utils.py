"""
Sound level and musical note helpers shared by the analyzers and tools.
"""

import math
from collections.abc import Sequence
from functools import lru_cache

import numpy as np

from .constants import (
    A4_REFERENCE,
    HIGH_NOTES,
    NOTE_NAMES,
    NUMBER_OF_PIANO_KEYS,
    OCTAVE,
)


def calculate_uncalibrated_decibels(samples: Sequence[int] | np.ndarray) -> float:
    """
    Calculate the uncalibrated sound level of a block of samples.

    The level is 20 * log10 of the root mean square of the raw int16 values,
    so it is only meaningful relative to other blocks from the same source.

    Args:
        samples: Signed 16-bit samples

    Returns:
        Level in uncalibrated dB, or -inf for an empty or all-zero block
    """
    values = np.asarray(samples, dtype=np.float64)
    if values.size == 0:
        return -math.inf

    quadratic_mean_pressure = math.sqrt(float(np.sum(values * values)) / values.size)
    if quadratic_mean_pressure == 0.0:
        return -math.inf
    return 20.0 * math.log10(quadratic_mean_pressure)


@lru_cache(maxsize=1)
def piano_note_frequencies() -> tuple[float, ...]:
    """
    Frequencies of the 88 piano keys in ascending order (A0 to C8).

    Built by halving the top octave until all keys are filled.
    """
    frequencies: list[float] = []
    multiplier = 1.0
    while len(frequencies) < NUMBER_OF_PIANO_KEYS:
        for note in HIGH_NOTES:
            if len(frequencies) == NUMBER_OF_PIANO_KEYS:
                break
            frequencies.append(note * multiplier)
        multiplier /= 2
    frequencies.reverse()
    return tuple(frequencies)


def frequency_to_note(
    frequency: float, reference: float = A4_REFERENCE
) -> tuple[str, int, float]:
    """
    Convert a frequency to the nearest equal-tempered note.

    Args:
        frequency: Frequency in Hz (must be positive)
        reference: Frequency of A4 in Hz

    Returns:
        Tuple of (note name, octave, cents deviation from the note)
    """
    if frequency <= 0:
        raise ValueError(f"Frequency must be positive, got {frequency}")
    note_number = 69 + OCTAVE * math.log2(frequency / reference)
    nearest = int(round(note_number))
    cents = (note_number - nearest) * 100.0
    return NOTE_NAMES[nearest % OCTAVE], nearest // OCTAVE - 1, cents
