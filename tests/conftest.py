"""Shared fixtures: synthetic buffers, encoded audio and a device-free output."""

from __future__ import annotations

import io
from unittest.mock import MagicMock

import numpy as np
import pytest
import soundfile as sf

from jamroom.api.models import Loop
from jamroom.console.playback import PlaybackController
from jamroom.console.tracks import MasterState, TrackStore
from jamroom.ear.decoder import DecodedBuffer
from jamroom.hands.output import RealtimeOutput


# ── Helpers ──────────────────────────────────────────────


def make_buffer(
    duration_s: float,
    sr: int = 8000,
    value: float = 0.5,
    channels: int = 2,
) -> DecodedBuffer:
    """Constant-valued decoded buffer."""
    frames = int(round(duration_s * sr))
    samples = np.full((frames, channels), value, dtype=np.float32)
    return DecodedBuffer(samples=samples, sample_rate=sr)


def make_wav_bytes(duration_s: float = 0.5, sr: int = 8000, freq: float = 440.0) -> bytes:
    """Float WAV file with a mono sine wave."""
    t = np.arange(int(sr * duration_s)) / sr
    audio = (0.5 * np.sin(2 * np.pi * freq * t)).astype(np.float32)
    buf = io.BytesIO()
    sf.write(buf, audio, sr, format="WAV", subtype="FLOAT")
    return buf.getvalue()


def make_loop(loop_id: str, room_id: str = "room-1") -> Loop:
    return Loop(id=loop_id, room_id=room_id, user_name="tester", name=f"Loop {loop_id}")


def add_loaded(store: TrackStore, loop_id: str, duration_s: float = 1.0, **kwargs) -> None:
    store.ensure(loop_id)
    store.set_buffer(loop_id, make_buffer(duration_s, **kwargs))


# ── Fixtures ─────────────────────────────────────────────


@pytest.fixture
def stream_factory() -> MagicMock:
    """Stands in for ``sounddevice.OutputStream``."""
    return MagicMock()


@pytest.fixture
def output(stream_factory: MagicMock) -> RealtimeOutput:
    return RealtimeOutput(sample_rate=8000, channels=2, block_size=256,
                          stream_factory=stream_factory)


@pytest.fixture
def store() -> TrackStore:
    return TrackStore(default_volume=80)


@pytest.fixture
def master() -> MasterState:
    return MasterState(master_volume=80)


@pytest.fixture
def controller(store: TrackStore, master: MasterState, output: RealtimeOutput) -> PlaybackController:
    return PlaybackController(store, master, output)
