"""
Live pitch display from the default microphone.

Captures int16 audio with sounddevice, feeds it through a PitchTracker and
prints one line per analyzed block. Press Ctrl+C to stop.

Usage:
    python scripts/live_pitch.py
    python scripts/live_pitch.py --sample-rate 48000 --duration 30
"""

import argparse
import queue
import time

import numpy as np

from pitch_detector import BUFFER_SIZE, SAMPLE_RATE
from pitch_detector.pitch_tracker import PitchTracker
from pitch_detector.sound_utils import frequency_to_note


MAX_QUEUED_CHUNKS = 32


def format_reading(reading: float | None) -> str:
    if reading is None:
        return "   --- (skipped)"
    if reading == 0.0:
        return "   --- (quiet)"
    name, octave, cents = frequency_to_note(reading)
    return f"{reading:8.2f} Hz  {name}{octave} {cents:+5.1f}¢"


def queue_chunk(chunks: queue.Queue, indata: np.ndarray) -> bool:
    """Queue the first channel of a captured chunk. Returns False if the queue is full."""
    try:
        chunks.put_nowait(indata[:, 0].copy())
    except queue.Full:
        return False
    return True


def run(sample_rate: int, duration: float | None):
    import sounddevice as sd

    tracker = PitchTracker(sample_rate=sample_rate)
    chunks: queue.Queue[np.ndarray] = queue.Queue(maxsize=MAX_QUEUED_CHUNKS)
    dropped = 0

    def callback(indata, frames, time_info, status):
        nonlocal dropped
        if status:
            print(status)
        if not queue_chunk(chunks, indata):
            dropped += 1

    print(f"Listening at {sample_rate} Hz, {BUFFER_SIZE} samples per block...")
    start = time.monotonic()
    reported_dropped = 0
    # Analysis runs on this thread; the audio callback only queues chunks
    with sd.InputStream(samplerate=sample_rate, channels=1, dtype="int16", callback=callback):
        while duration is None or time.monotonic() - start < duration:
            if dropped != reported_dropped:
                print(f"Analysis falling behind, dropped {dropped - reported_dropped} chunk(s)")
                reported_dropped = dropped
            try:
                chunk = chunks.get(timeout=0.5)
            except queue.Empty:
                continue
            for reading in tracker.process(chunk):
                print(format_reading(reading))


def main():
    parser = argparse.ArgumentParser(description="Live pitch detection from the microphone")
    parser.add_argument("--sample-rate", type=int, default=SAMPLE_RATE)
    parser.add_argument("--duration", type=float, default=None, help="Seconds to run (default: until Ctrl+C)")
    args = parser.parse_args()

    try:
        run(args.sample_rate, args.duration)
    except KeyboardInterrupt:
        print("\nStopped.")


if __name__ == "__main__":
    main()
