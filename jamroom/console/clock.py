"""Progress clock — a repeating sweep over the longest loaded loop.

Realtime tracks loop forever, so when the sweep reaches the end the start
instant moves to "now" instead of playback stopping.
"""

from __future__ import annotations

import asyncio

import structlog

from jamroom.config import settings
from jamroom.console.playback import PlaybackController

logger = structlog.get_logger()


class ProgressClock:
    """Ticks once per display refresh while transport is playing."""

    def __init__(self, controller: PlaybackController, refresh_hz: float | None = None) -> None:
        self.controller = controller
        self.interval = 1.0 / (refresh_hz or settings.progress_refresh_hz)
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> float:
        """Recompute ``controller.progress`` from the output clock."""
        ctl = self.controller
        if not ctl.is_playing:
            return ctl.progress

        max_duration = ctl.store.max_duration()
        if max_duration <= 0:
            ctl.progress = 0.0
            return ctl.progress

        now = ctl.output.current_time
        elapsed = now - ctl.start_instant
        fraction = min(max(elapsed, 0.0) / max_duration, 1.0)
        if fraction >= 1.0:
            ctl.start_instant = now
        ctl.progress = fraction
        return fraction

    async def run(self) -> None:
        """Tick until transport stops."""
        while self.controller.is_playing:
            self.tick()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Schedule :meth:`run` on the running event loop (idempotent)."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self.run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
