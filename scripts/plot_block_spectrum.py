"""
Debug script: plot what the FFT analyzer sees for one block of a file.

Shows the raw magnitude spectrum over the piano range with the detected
peaks, their Goertzel-refined frequencies and the final fundamental.

Usage:
    python scripts/plot_block_spectrum.py tone.wav --block 3
    python scripts/plot_block_spectrum.py guitar.samples --sample-rate 44100
"""

import argparse
from pathlib import Path

import matplotlib
import numpy as np

matplotlib.use('Agg')
import matplotlib.pyplot as plt

from pitch_detector import BUFFER_SIZE, SAMPLE_RATE, AudioAnalyzer
from pitch_detector.fft_analyzer import FFTAnalyzer
from pitch_detector.goertzel_analyzer import GoertzelAnalyzer
from pitch_detector.sample_io import read_samples_file, read_wav


def plot_block_spectrum(samples: np.ndarray, sample_rate: float, output: Path, title: str):
    """Plot the spectrum of one block with its peaks."""
    fft_analyzer = FFTAnalyzer(sample_rate)
    goertzel_analyzer = GoertzelAnalyzer(sample_rate)

    frequencies, magnitudes = fft_analyzer.magnitude_spectrum(samples)
    peaks = fft_analyzer.find_peaks(samples)
    fundamental = AudioAnalyzer(sample_rate).detect_fundamental_frequency(samples)

    fig, ax = plt.subplots(figsize=(12, 6))
    ax.semilogy(frequencies[1:], magnitudes[1:] + 1e-9, 'b-', linewidth=0.7, alpha=0.8)

    for rank, peak in enumerate(peaks):
        refined = goertzel_analyzer.find_frequency_with_highest_power(samples, peak.frequency_estimate)
        ax.plot(peak.frequency_estimate, peak.fft_magnitude, 'ro')
        ax.annotate(
            f'#{rank + 1} {refined:.1f} Hz',
            (peak.frequency_estimate, peak.fft_magnitude),
            textcoords='offset points',
            xytext=(4, 6),
            fontsize=8,
        )

    if fundamental is not None:
        ax.axvline(fundamental, color='green', linestyle='--', linewidth=1.5, label=f'Fundamental: {fundamental:.2f} Hz')
        ax.legend(loc='upper right')

    ax.set_title(title)
    ax.set_xlabel('Frequency (Hz)')
    ax.set_ylabel('Magnitude (log)')
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(output, dpi=100)
    plt.close()
    print(f'Saved: {output}')


def main():
    parser = argparse.ArgumentParser(description="Plot the spectrum of one analysis block")
    parser.add_argument("file", type=Path)
    parser.add_argument("--block", type=int, default=0, help="Block number (default: 0)")
    parser.add_argument("--sample-rate", type=float, default=SAMPLE_RATE, help="Rate of .samples files")
    parser.add_argument("--output", type=Path, default=None)
    args = parser.parse_args()

    if args.file.suffix.lower() == ".wav":
        samples, sample_rate = read_wav(args.file)
    else:
        samples, sample_rate = read_samples_file(args.file), args.sample_rate

    start = args.block * BUFFER_SIZE
    block = samples[start:start + BUFFER_SIZE]
    if len(block) == 0:
        parser.error(f"{args.file} has no block {args.block}")

    output = args.output or args.file.with_name(f'{args.file.stem}_block_{args.block:02d}.png')
    plot_block_spectrum(block, sample_rate, output, f'{args.file.name} block {args.block}')


if __name__ == '__main__':
    main()
