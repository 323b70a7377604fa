"""
Constants for pitch detection.
"""

# Audio settings
SAMPLE_RATE = 44100
BUFFER_SIZE = 4096  # Samples per analysis block, must be a power of two
INT16_MAX = 32767

# Level guard (uncalibrated dB, 20 * log10(RMS) of raw int16 samples)
MINIMUM_NOISE_LEVEL = 32.0

# Frequency range of interest (piano range)
NUMBER_OF_PIANO_KEYS = 88
LOWEST_PIANO_FREQUENCY = 27.5
HIGHEST_PIANO_FREQUENCY = 4186.01

# Top octave of the piano, C8 down to C#7
HIGH_NOTES = (
    4186.01,  # C
    3951.07,  # B
    3729.31,  # A#
    3520.0,  # A
    3322.44,  # G#
    3135.96,  # G
    2959.96,  # F#
    2793.83,  # F
    2637.02,  # E
    2489.02,  # D#
    2349.32,  # D
    2217.46,  # C#
)

# FFT peak detection
MOVING_AVERAGE_WINDOW_SIZE = 5
PEAK_MEAN_FACTOR = 2.0  # Smoothed value must reach this multiple of the mean
PEAK_BOUNDARY_DIVISOR = 10.0  # Prominence scan stops at mean / divisor
MIN_PROMINENCE = 1.0
NEARBY_PEAK_DISTANCE = 5  # Larger value closer than this rejects a candidate
MAX_PEAKS = 10
MIN_PEAK_RATIO = 1.0 / 25.0  # Relative to the strongest peak's fft_value

# Goertzel refinement
GOERTZEL_SEARCH_HALF_WIDTH = 10.0  # Hz either side of the estimate
GOERTZEL_DIVISIONS = 4

# Harmonic analysis
MIN_MAX_HARMONIC = 8
HARMONIC_RATIO_TOLERANCE = 0.01
BUCKET_WIDTH_HZ = 10

# Caller-side smoothing
MAX_RELATIVE_CHANGE = 0.5

# Note naming
A4_REFERENCE = 440.0
NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
OCTAVE = 12
