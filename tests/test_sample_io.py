"""Tests for loading samples from files."""

import numpy as np
import pytest
from scipy.io import wavfile

from pitch_detector.sample_io import iter_blocks, read_samples_file, read_wav


class TestReadSamplesFile:
    def test_reads_integers(self, tmp_path):
        path = tmp_path / "tone.samples"
        path.write_text("12\n-7\n\n32767\n-32768\n")
        samples = read_samples_file(path)
        assert samples.dtype == np.int16
        assert samples.tolist() == [12, -7, 32767, -32768]

    def test_skips_invalid_lines(self, tmp_path):
        path = tmp_path / "tone.samples"
        path.write_text("# header\n5\nabc\n1.5\n40000\n6\n")
        assert read_samples_file(path).tolist() == [5, 6]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_samples_file(tmp_path / "missing.samples")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.samples"
        path.write_text("\n\n")
        with pytest.raises(ValueError):
            read_samples_file(path)


class TestReadWav:
    def test_int16_mono(self, tmp_path):
        path = tmp_path / "mono.wav"
        data = np.array([0, 100, -100, 32767], dtype=np.int16)
        wavfile.write(path, 22050, data)
        samples, sample_rate = read_wav(path)
        assert sample_rate == 22050
        assert samples.tolist() == data.tolist()

    def test_stereo_is_averaged(self, tmp_path):
        path = tmp_path / "stereo.wav"
        data = np.array([[100, 300], [-200, -400]], dtype=np.int16)
        wavfile.write(path, 44100, data)
        samples, _ = read_wav(path)
        assert samples.tolist() == [200, -300]

    def test_float_is_scaled(self, tmp_path):
        path = tmp_path / "float.wav"
        wavfile.write(path, 48000, np.array([0.5, -1.0, 0.0], dtype=np.float32))
        samples, sample_rate = read_wav(path)
        assert sample_rate == 48000
        assert samples.tolist() == [16384, -32767, 0]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_wav(tmp_path / "missing.wav")


class TestIterBlocks:
    def test_full_blocks_only(self):
        blocks = list(iter_blocks(np.arange(10), buffer_size=4))
        assert [block.tolist() for block in blocks] == [[0, 1, 2, 3], [4, 5, 6, 7]]

    def test_too_short(self):
        assert list(iter_blocks(np.arange(3), buffer_size=4)) == []
