"""
pitch_detector - Fundamental frequency detection with FFT, Goertzel refinement and harmonic voting
"""

from .audio_analyzer import AudioAnalyzer
from .constants import BUFFER_SIZE, MINIMUM_NOISE_LEVEL, SAMPLE_RATE
from .fft_analyzer import FFTAnalyzer, fft_in_place
from .goertzel_analyzer import GoertzelAnalyzer
from .moving_average import MovingAverage
from .peak import Harmonic, Peak
from .pitch_tracker import PitchTracker
from .sample_io import iter_blocks, read_samples_file, read_wav
from .sound_utils import (
    calculate_uncalibrated_decibels,
    frequency_to_note,
    piano_note_frequencies,
)

__version__ = "0.1.0"
__all__ = [
    "AudioAnalyzer",
    "FFTAnalyzer",
    "GoertzelAnalyzer",
    "MovingAverage",
    "Peak",
    "Harmonic",
    "PitchTracker",
    "fft_in_place",
    "calculate_uncalibrated_decibels",
    "frequency_to_note",
    "piano_note_frequencies",
    "read_samples_file",
    "read_wav",
    "iter_blocks",
    "SAMPLE_RATE",
    "BUFFER_SIZE",
    "MINIMUM_NOISE_LEVEL",
]
