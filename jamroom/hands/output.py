"""Realtime output — the session's single audio device stream.

Every live :class:`~jamroom.hands.graph.Routing` is summed in the
sounddevice callback. The output clock counts rendered frames, so it
stands still while the stream is suspended.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

import numpy as np
import structlog
from numpy.typing import NDArray

from jamroom.config import settings
from jamroom.hands.graph import Routing

logger = structlog.get_logger()

StreamFactory = Callable[..., Any]

SUSPENDED = "suspended"
RUNNING = "running"
CLOSED = "closed"


def _sounddevice_stream(**kwargs: Any) -> Any:
    """Open a ``sounddevice.OutputStream`` (imported on first use)."""
    try:
        import sounddevice as sd
    except (ImportError, OSError) as e:
        msg = "sounddevice/PortAudio not available. Run: pip install sounddevice"
        raise RuntimeError(msg) from e
    return sd.OutputStream(**kwargs)


class RealtimeOutput:
    """Mixes live routings to the output device."""

    def __init__(
        self,
        sample_rate: int | None = None,
        channels: int | None = None,
        block_size: int | None = None,
        device: str | None = None,
        stream_factory: StreamFactory | None = None,
    ) -> None:
        self.sample_rate = sample_rate or settings.sample_rate
        self.channels = channels or settings.output_channels
        self.block_size = block_size or settings.block_size
        self.device = device if device is not None else settings.output_device
        self._stream_factory = stream_factory or _sounddevice_stream

        self._routings: dict[str, Routing] = {}
        self._lock = threading.Lock()
        self._frames_rendered = 0
        self._stream: Any = None
        self.state = SUSPENDED

    # ── Clock ────────────────────────────────────────────

    @property
    def current_time(self) -> float:
        """Seconds of audio rendered since the output was created."""
        return self._frames_rendered / self.sample_rate

    # ── Routing table ────────────────────────────────────

    def connect(self, key: str, routing: Routing) -> None:
        with self._lock:
            self._routings[key] = routing

    def disconnect(self, key: str) -> Routing | None:
        with self._lock:
            return self._routings.pop(key, None)

    def disconnect_all(self) -> list[Routing]:
        with self._lock:
            routings = list(self._routings.values())
            self._routings.clear()
        return routings

    def routing(self, key: str) -> Routing | None:
        with self._lock:
            return self._routings.get(key)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._routings)

    # ── Rendering ────────────────────────────────────────

    def pull(self, frames: int) -> NDArray[np.float32]:
        """Render the next block from all live routings and advance the clock."""
        mixed = np.zeros((frames, self.channels), dtype=np.float32)
        with self._lock:
            for routing in self._routings.values():
                mixed += routing.render(frames)
            self._frames_rendered += frames
        np.clip(mixed, -1.0, 1.0, out=mixed)
        return mixed

    def _callback(self, outdata: Any, frames: int, time_info: Any, status: Any) -> None:
        if status:
            logger.warning("output.status", status=str(status))
        outdata[:] = self.pull(frames)

    # ── Stream lifecycle ─────────────────────────────────

    def resume(self) -> None:
        """Open and start the device stream if it is not already running."""
        if self.state == CLOSED:
            raise RuntimeError("Output is closed")
        if self.state == RUNNING:
            return
        if self._stream is None:
            self._stream = self._stream_factory(
                samplerate=self.sample_rate,
                blocksize=self.block_size,
                channels=self.channels,
                dtype="float32",
                callback=self._callback,
                device=self.device,
            )
        self._stream.start()
        self.state = RUNNING
        logger.info(
            "output.started",
            sample_rate=self.sample_rate,
            block_size=self.block_size,
            channels=self.channels,
        )

    def suspend(self) -> None:
        if self.state != RUNNING:
            return
        self._stream.stop()
        self.state = SUSPENDED
        logger.info("output.suspended")

    def close(self) -> None:
        """Release every routing and the device stream."""
        if self.state == CLOSED:
            return
        for routing in self.disconnect_all():
            routing.release()
        if self._stream is not None:
            if self.state == RUNNING:
                self._stream.stop()
            self._stream.close()
            self._stream = None
        self.state = CLOSED
        logger.info("output.closed")
