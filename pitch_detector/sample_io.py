"""
Loading sample blocks from files.

Two formats are supported:
- ``.samples`` text files with one signed 16-bit integer per line (lines that
  are not integers are ignored)
- WAV files, read with scipy and converted to mono int16
"""

from collections.abc import Iterator
from pathlib import Path

import numpy as np
from scipy.io import wavfile

from .constants import BUFFER_SIZE, INT16_MAX


def read_samples_file(path: str | Path) -> np.ndarray:
    """
    Read a ``.samples`` text file.

    Args:
        path: Path to the file

    Returns:
        int16 array of samples

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file contains no samples
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Samples file not found: {path}")

    samples = []
    with open(file_path, "r", encoding="utf-8") as f:
        for line in f:
            try:
                value = int(line.strip())
            except ValueError:
                continue
            if -INT16_MAX - 1 <= value <= INT16_MAX:
                samples.append(value)

    if not samples:
        raise ValueError(f"No samples found in file: {path}")
    return np.array(samples, dtype=np.int16)


def read_wav(path: str | Path) -> tuple[np.ndarray, int]:
    """
    Read a WAV file as mono int16.

    Multi-channel audio is averaged. Floating point data (-1.0 to 1.0) is
    scaled to the int16 range; 32-bit integer data is shifted down.

    Returns:
        Tuple of (int16 samples, sample rate in Hz)
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"WAV file not found: {path}")

    sample_rate, data = wavfile.read(file_path)
    if data.size == 0:
        raise ValueError(f"No samples found in file: {path}")

    if np.issubdtype(data.dtype, np.floating):
        data = data.astype(np.float64) * INT16_MAX
    elif data.dtype == np.int32:
        data = data.astype(np.float64) / 65536.0
    elif data.dtype == np.uint8:
        data = (data.astype(np.float64) - 128.0) * 256.0
    else:
        data = data.astype(np.float64)

    if data.ndim > 1:
        data = np.mean(data, axis=1)

    data = np.clip(np.round(data), -INT16_MAX - 1, INT16_MAX)
    return data.astype(np.int16), int(sample_rate)


def iter_blocks(samples: np.ndarray, buffer_size: int = BUFFER_SIZE) -> Iterator[np.ndarray]:
    """Yield consecutive full blocks of buffer_size samples; a trailing partial block is dropped."""
    for start in range(0, len(samples) - buffer_size + 1, buffer_size):
        yield samples[start : start + buffer_size]
