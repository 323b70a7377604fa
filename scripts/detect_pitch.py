"""
Batch pitch detection for .samples and .wav files.

Each file is split into consecutive blocks of BUFFER_SIZE samples; every
block is analyzed independently and the per-block results are summarized.

Usage:
    python scripts/detect_pitch.py recordings/*.wav
    python scripts/detect_pitch.py --sample-rate 44100 guitar_A_110_000.samples
    python scripts/detect_pitch.py --output results.json --verbose tone.wav
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import numpy as np

from pitch_detector import BUFFER_SIZE, SAMPLE_RATE, AudioAnalyzer
from pitch_detector.sample_io import iter_blocks, read_samples_file, read_wav
from pitch_detector.sound_utils import frequency_to_note


def load_audio(path: Path, sample_rate: float) -> tuple[np.ndarray, float]:
    """Load samples and their sample rate (.samples files use the given rate)."""
    if path.suffix.lower() == ".wav":
        return read_wav(path)
    return read_samples_file(path), sample_rate


def analyze_file(path: Path, sample_rate: float) -> dict:
    """Detect the pitch of every block of a file."""
    samples, rate = load_audio(path, sample_rate)
    analyzer = AudioAnalyzer(rate)

    if len(samples) < BUFFER_SIZE:
        # A single short block is zero-padded by the analyzer
        blocks = [samples]
    else:
        blocks = list(iter_blocks(samples, BUFFER_SIZE))

    frequencies = [analyzer.detect_fundamental_frequency(block) for block in blocks]
    detected = [f for f in frequencies if f is not None]

    result = {
        "file": str(path),
        "sample_rate": rate,
        "blocks": len(blocks),
        "detected_blocks": len(detected),
        "frequencies": [round(f, 3) if f is not None else None for f in frequencies],
        "median_frequency": None,
        "note": None,
        "cents": None,
    }
    if detected:
        median = float(np.median(detected))
        name, octave, cents = frequency_to_note(median)
        result["median_frequency"] = round(median, 3)
        result["note"] = f"{name}{octave}"
        result["cents"] = round(cents, 1)
    return result


def main():
    parser = argparse.ArgumentParser(description="Detect the fundamental frequency of audio files")
    parser.add_argument("files", nargs="+", type=Path, help=".samples or .wav files")
    parser.add_argument(
        "--sample-rate",
        type=float,
        default=SAMPLE_RATE,
        help="Sample rate of .samples files in Hz (default: %(default)s)",
    )
    parser.add_argument("--output", type=Path, help="Write results as JSON to this file")
    parser.add_argument("--verbose", action="store_true", help="Log analyzer details")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    results = []
    for path in args.files:
        try:
            result = analyze_file(path, args.sample_rate)
        except (FileNotFoundError, ValueError) as e:
            print(f"{path}: {e}", file=sys.stderr)
            results.append({"file": str(path), "error": str(e)})
            continue

        results.append(result)
        if result["median_frequency"] is None:
            print(f"{path}: no pitch detected in {result['blocks']} blocks")
        else:
            print(
                f"{path}: {result['median_frequency']:.2f} Hz "
                f"({result['note']} {result['cents']:+.1f}¢) "
                f"in {result['detected_blocks']}/{result['blocks']} blocks"
            )

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(results, f, indent=2)
        print(f"Saved: {args.output}")


if __name__ == "__main__":
    main()
