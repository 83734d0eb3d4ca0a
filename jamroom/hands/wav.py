"""Canonical 16-bit PCM WAV encoding.

Layout: 44-byte RIFF/WAVE header (``fmt `` chunk of 16 bytes, PCM format
1, 16 bits per sample) followed by interleaved little-endian samples.
Floats are clamped to [-1, 1], then scaled by 32768 below zero and 32767
at or above it, truncating toward zero.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from jamroom.hands.mixdown import MixdownResult

HEADER_SIZE = 44
BITS_PER_SAMPLE = 16
MEDIA_TYPE = "audio/wav"

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


@dataclass(frozen=True)
class WavHeader:
    """Fields of a canonical WAV header."""

    chunk_size: int
    audio_format: int
    channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_size: int

    @property
    def frame_count(self) -> int:
        return self.data_size // self.block_align if self.block_align else 0


def to_pcm16(samples: NDArray[np.floating]) -> NDArray[np.int16]:
    """Float samples → int16 with the asymmetric 32768/32767 scale."""
    x = np.nan_to_num(np.asarray(samples, dtype=np.float64), nan=0.0)
    x = np.clip(x, -1.0, 1.0)
    scaled = np.where(x < 0, x * 32768.0, x * 32767.0)
    return np.trunc(scaled).astype("<i2")


def encode_samples(samples: NDArray[np.floating], sample_rate: int) -> bytes:
    """Encode ``(frames, channels)`` float samples as a WAV file."""
    if samples.ndim == 1:
        samples = samples[:, np.newaxis]
    frames, channels = samples.shape
    data = np.ascontiguousarray(to_pcm16(samples)).tobytes()
    data_size = frames * channels * 2

    header = _HEADER.pack(
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        1,
        channels,
        sample_rate,
        sample_rate * channels * 2,
        channels * 2,
        BITS_PER_SAMPLE,
        b"data",
        data_size,
    )
    return header + data


def encode(mix: MixdownResult) -> bytes:
    """Encode a rendered mixdown."""
    return encode_samples(mix.samples, mix.sample_rate)


def parse_header(data: bytes) -> WavHeader:
    """Read back the fields of a canonical 44-byte header."""
    if len(data) < HEADER_SIZE:
        raise ValueError(f"WAV data too short: {len(data)} bytes")
    (
        riff, chunk_size, wave, fmt, fmt_size, audio_format, channels,
        sample_rate, byte_rate, block_align, bits, data_tag, data_size,
    ) = _HEADER.unpack_from(data)
    if riff != b"RIFF" or wave != b"WAVE" or fmt != b"fmt " or data_tag != b"data":
        raise ValueError("Not a canonical RIFF/WAVE file")
    if fmt_size != 16:
        raise ValueError(f"Unexpected fmt chunk size {fmt_size}")
    return WavHeader(
        chunk_size=chunk_size,
        audio_format=audio_format,
        channels=channels,
        sample_rate=sample_rate,
        byte_rate=byte_rate,
        block_align=block_align,
        bits_per_sample=bits,
        data_size=data_size,
    )
