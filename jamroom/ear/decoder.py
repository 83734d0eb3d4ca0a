"""Audio decoding — bytes in any libsndfile format to float32 frames.

Buffers are always delivered at the project sample rate so every track
in a session can be summed sample-for-sample. Foreign rates are
resampled with librosa, or rejected when resampling is disabled.
"""

from __future__ import annotations

import io
from dataclasses import dataclass

import librosa
import numpy as np
import soundfile as sf
import structlog
from numpy.typing import NDArray

from jamroom.errors import DecodeError, SampleRateMismatchError

logger = structlog.get_logger()


@dataclass(frozen=True)
class DecodedBuffer:
    """Decoded multi-channel audio, shape ``(frames, channels)``."""

    samples: NDArray[np.float32]
    sample_rate: int

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def channels(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        """Length in seconds."""
        return self.frame_count / self.sample_rate


def decode_audio(
    data: bytes,
    sample_rate: int,
    resample: bool = True,
) -> DecodedBuffer:
    """Decode raw audio bytes into a :class:`DecodedBuffer`.

    Args:
        data: Encoded audio (WAV, FLAC, OGG, ...).
        sample_rate: Project sample rate the buffer must end up at.
        resample: Resample foreign rates; if False they raise
            :class:`SampleRateMismatchError`.

    Raises:
        DecodeError: The bytes are not decodable audio or hold no frames.
    """
    if not data:
        raise DecodeError("Empty audio payload")

    try:
        audio, file_sr = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
    except (RuntimeError, ValueError, TypeError) as e:
        raise DecodeError(f"Unable to decode audio: {e}") from e

    if audio.shape[0] == 0:
        raise DecodeError("Decoded audio has no frames")

    if file_sr != sample_rate:
        if not resample:
            raise SampleRateMismatchError(
                f"Audio is {file_sr} Hz, project rate is {sample_rate} Hz"
            )
        logger.debug("decoder.resample", orig_sr=file_sr, target_sr=sample_rate)
        # librosa resamples along the last axis
        audio = librosa.resample(audio.T, orig_sr=file_sr, target_sr=sample_rate).T

    samples = np.ascontiguousarray(audio, dtype=np.float32)
    return DecodedBuffer(samples=samples, sample_rate=sample_rate)
