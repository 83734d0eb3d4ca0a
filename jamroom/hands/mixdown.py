"""Offline mixdown — render every eligible track into one stereo buffer.

Unlike realtime monitoring nothing loops: all sources start at frame 0
and a track shorter than the longest one contributes silence after its
own end. Gains are track% × master%, and selection follows the same
mute/solo rule as play-all.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import numpy as np
import structlog
from numpy.typing import NDArray

from jamroom.console.tracks import MasterState, TrackStore
from jamroom.errors import NoEligibleTracksError, RenderError
from jamroom.hands.graph import GainStage, LoopSource, Routing

logger = structlog.get_logger()


@dataclass
class MixdownResult:
    """A rendered mix, shape ``(frames, channels)``."""

    samples: NDArray[np.float32]
    sample_rate: int
    loop_ids: list[str] = field(default_factory=list)

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def channels(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        return self.frame_count / self.sample_rate

    @property
    def track_count(self) -> int:
        return len(self.loop_ids)


def _render_routings(routings: list[Routing], frame_count: int, channels: int) -> NDArray[np.float32]:
    mixed = np.zeros((frame_count, channels), dtype=np.float32)
    try:
        for routing in routings:
            routing.source.start()
            mixed += routing.render(frame_count)
    finally:
        for routing in routings:
            routing.release()
    return mixed


class OfflineRenderer:
    """Non-realtime renderer; one per session."""

    def __init__(self, channels: int = 2) -> None:
        self.channels = channels

    async def render(self, store: TrackStore, master: MasterState) -> MixdownResult:
        """Render the current mix.

        Track parameters are captured before rendering starts, so edits
        made while the render runs apply to the next export only.

        Raises:
            NoEligibleTracksError: No loaded track passes mute/solo.
            RenderError: Buffers disagree on sample rate, or rendering failed.
        """
        eligible = store.eligible()
        if not eligible:
            raise NoEligibleTracksError()

        rates = {track.sample_rate for _, track in eligible}
        if len(rates) != 1:
            raise RenderError(f"Tracks do not share one sample rate: {sorted(rates)}")
        sample_rate = rates.pop()

        # ceil(sample_rate * max_duration), exact in integer frames
        frame_count = max(track.buffer.frame_count for _, track in eligible)

        routings = []
        for _, track in eligible:
            gain = (track.volume / 100) * (master.master_volume / 100)
            source = LoopSource(track.buffer, loop=False, channels=self.channels)
            routings.append(Routing(source, GainStage(gain)))

        logger.info(
            "mixdown.render_start",
            tracks=len(routings),
            frames=frame_count,
            sample_rate=sample_rate,
        )
        try:
            samples = await asyncio.to_thread(
                _render_routings, routings, frame_count, self.channels
            )
        except Exception as e:
            logger.error("mixdown.render_failed", error=str(e))
            raise RenderError(f"Offline render failed: {e}") from e

        result = MixdownResult(
            samples=samples,
            sample_rate=sample_rate,
            loop_ids=[loop_id for loop_id, _ in eligible],
        )
        logger.info("mixdown.render_done", duration_s=round(result.duration, 3))
        return result
