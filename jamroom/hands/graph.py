"""Playback graph — explicitly owned source and gain handles.

A :class:`Routing` is ``LoopSource → GainStage → output``. The realtime
output and the offline renderer both pull audio through the same handles;
only the looping flag differs.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from jamroom.ear.decoder import DecodedBuffer


def fit_channels(samples: NDArray[np.float32], channels: int) -> NDArray[np.float32]:
    """Upmix mono by duplication, drop channels beyond ``channels``."""
    if samples.shape[1] == channels:
        return samples
    if samples.shape[1] == 1:
        return np.repeat(samples, channels, axis=1)
    if samples.shape[1] > channels:
        return samples[:, :channels]
    # e.g. stereo into a 4-channel bus: leave the extra channels silent
    padded = np.zeros((samples.shape[0], channels), dtype=np.float32)
    padded[:, : samples.shape[1]] = samples
    return padded


class LoopSource:
    """Plays a decoded buffer once, or forever when ``loop`` is set."""

    def __init__(self, buffer: DecodedBuffer, loop: bool = False, channels: int = 2) -> None:
        self.buffer = buffer
        self.loop = loop
        self._frames = fit_channels(buffer.samples, channels)
        self.channels = channels
        self.position = 0
        self.started = False
        self.stopped = False

    @property
    def active(self) -> bool:
        return self.started and not self.stopped

    def start(self) -> None:
        if self.stopped:
            raise RuntimeError("LoopSource cannot be restarted once stopped")
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def read(self, frames: int) -> NDArray[np.float32]:
        """Return the next ``frames`` frames, silence-padded."""
        out = np.zeros((frames, self.channels), dtype=np.float32)
        total = self._frames.shape[0]
        if not self.active or total == 0:
            return out

        if self.loop:
            idx = (self.position + np.arange(frames)) % total
            out[:] = self._frames[idx]
            self.position = (self.position + frames) % total
            return out

        remaining = total - self.position
        n = min(frames, max(remaining, 0))
        if n > 0:
            out[:n] = self._frames[self.position : self.position + n]
            self.position += n
        if self.position >= total:
            self.stopped = True
        return out


class GainStage:
    """Linear gain; ``value`` can change while audio is flowing."""

    def __init__(self, value: float = 1.0) -> None:
        self.value = float(value)

    def process(self, block: NDArray[np.float32]) -> NDArray[np.float32]:
        return block * np.float32(self.value)


class Routing:
    """One live source → gain chain owned by the controller or renderer."""

    def __init__(self, source: LoopSource, gain: GainStage) -> None:
        self.source = source
        self.gain = gain
        self.released = False

    def render(self, frames: int) -> NDArray[np.float32]:
        return self.gain.process(self.source.read(frames))

    def release(self) -> None:
        """Halt the source. Safe to call more than once."""
        if not self.released:
            self.source.stop()
            self.released = True
