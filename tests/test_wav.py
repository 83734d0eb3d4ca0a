"""WAV encoder: header layout, sample scaling and interleaving."""

from __future__ import annotations

import io
import struct

import numpy as np
import pytest
import soundfile as sf

from jamroom.hands.mixdown import MixdownResult
from jamroom.hands.wav import HEADER_SIZE, encode, encode_samples, parse_header, to_pcm16


def test_header_fields_stereo() -> None:
    samples = np.zeros((100, 2), dtype=np.float32)
    data = encode_samples(samples, 44100)

    assert data[0:4] == b"RIFF"
    assert data[8:12] == b"WAVE"
    assert data[12:16] == b"fmt "
    assert data[36:40] == b"data"

    header = parse_header(data)
    assert header.audio_format == 1
    assert header.channels == 2
    assert header.sample_rate == 44100
    assert header.byte_rate == 44100 * 2 * 2
    assert header.block_align == 4
    assert header.bits_per_sample == 16
    assert header.data_size == 100 * 2 * 2
    assert header.chunk_size == 36 + header.data_size
    assert len(data) == HEADER_SIZE + header.data_size
    assert header.frame_count == 100


def test_sample_scaling_is_asymmetric_and_truncates() -> None:
    pcm = to_pcm16(np.array([1.0, -1.0, 0.5, -0.5, 0.0, 2.0, -3.0, np.nan]))
    assert pcm.tolist() == [32767, -32768, 16383, -16384, 0, 32767, -32768, 0]


def test_samples_interleaved_little_endian() -> None:
    samples = np.array([[1.0, -1.0], [0.0, 0.5]], dtype=np.float32)
    data = encode_samples(samples, 8000)
    values = struct.unpack("<4h", data[HEADER_SIZE:])
    assert values == (32767, -32768, 0, 16383)


def test_mono_vector_is_one_channel() -> None:
    data = encode_samples(np.zeros(10, dtype=np.float32), 8000)
    assert parse_header(data).channels == 1
    assert len(data) == HEADER_SIZE + 20


def test_encode_mixdown_readable_by_soundfile() -> None:
    sr = 8000
    t = np.arange(sr) / sr
    tone = (0.3 * np.sin(2 * np.pi * 220 * t)).astype(np.float32)
    mix = MixdownResult(samples=np.column_stack([tone, -tone]), sample_rate=sr)

    data = encode(mix)
    audio, file_sr = sf.read(io.BytesIO(data), dtype="int16")

    assert file_sr == sr
    assert audio.shape == (sr, 2)
    assert np.array_equal(audio, to_pcm16(mix.samples))


def test_encode_is_deterministic() -> None:
    rng = np.random.default_rng(7)
    samples = rng.uniform(-1.2, 1.2, size=(500, 2)).astype(np.float32)
    assert encode_samples(samples, 22050) == encode_samples(samples.copy(), 22050)


def test_parse_header_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        parse_header(b"RIFF")
    with pytest.raises(ValueError):
        parse_header(b"X" * 44)
