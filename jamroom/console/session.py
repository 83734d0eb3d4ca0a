"""Mixer session — one room view's complete mixing state.

Owns the track store, master level, buffer cache, realtime output,
playback controller, progress clock and offline renderer. Nothing here
is process-global: open one session per room view and close it when the
view goes away.

Export flow:
  1. Reject re-entry while a render is in flight
  2. Render eligible tracks offline
  3. Encode to WAV → ``soundboard-mix-<date>.wav``
  4. Report the export to the API in the background (best effort)
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any

import structlog

from jamroom.api.client import JamApiClient
from jamroom.api.models import Loop
from jamroom.config import settings
from jamroom.console.clock import ProgressClock
from jamroom.console.playback import PlaybackController
from jamroom.console.tracks import MasterState, TrackStore, clamp_percent
from jamroom.ear.buffer_cache import BufferCache
from jamroom.errors import (
    ExportInProgressError,
    ExportNotifyError,
    JamroomError,
    NoEligibleTracksError,
    RenderError,
)
from jamroom.hands.mixdown import MixdownResult, OfflineRenderer
from jamroom.hands.output import RealtimeOutput
from jamroom.hands.wav import MEDIA_TYPE, encode

logger = structlog.get_logger()


# ── Data Types ───────────────────────────────────────────


@dataclass
class Notification:
    """User-facing message (toast)."""

    title: str
    description: str
    variant: str = "default"  # default | destructive


@dataclass
class ExportFile:
    """A finished mixdown ready for download."""

    filename: str
    content: bytes
    duration: float
    loop_count: int
    media_type: str = MEDIA_TYPE


def export_filename(day: date | None = None, prefix: str | None = None) -> str:
    """``<prefix>-YYYY-MM-DD.wav``, dated in UTC."""
    day = day or datetime.now(UTC).date()
    return f"{prefix or settings.export_prefix}-{day.isoformat()}.wav"


# ── Session ──────────────────────────────────────────────


class MixerSession:
    """Mixing state and operations for one room."""

    def __init__(
        self,
        room_id: str,
        client: JamApiClient,
        output: RealtimeOutput | None = None,
        notify: Callable[[Notification], None] | None = None,
        sample_rate: int | None = None,
        resample: bool | None = None,
    ) -> None:
        self.room_id = room_id
        self.client = client
        self.sample_rate = sample_rate or settings.sample_rate
        self._notify_cb = notify

        self.loops: list[Loop] = []
        self.store = TrackStore()
        self.master = MasterState(master_volume=clamp_percent(settings.default_master_volume))
        self.cache = BufferCache(client, self.store, self.sample_rate, resample)
        self.output = output or RealtimeOutput(sample_rate=self.sample_rate)
        self.controller = PlaybackController(self.store, self.master, self.output)
        self.clock = ProgressClock(self.controller)
        self.renderer = OfflineRenderer(channels=2)

        self.is_exporting = False
        self._reports: set[asyncio.Task[None]] = set()
        self._closed = False

    def _notify(self, title: str, description: str, variant: str = "default") -> None:
        if self._notify_cb is not None:
            self._notify_cb(Notification(title, description, variant))

    # ── Loop set ─────────────────────────────────────────

    async def sync_loops(self, loops: list[Loop]) -> None:
        """Adopt a new visible loop set and load any missing audio."""
        known = {lp.id for lp in loops}
        for loop_id in list(self.store):
            if loop_id not in known:
                self.remove_loop(loop_id)

        self.loops = list(loops)
        for loop in self.loops:
            self.store.ensure(loop.id)

        await self.cache.ensure_all(self.loops)

    async def refresh(self) -> list[Loop]:
        """Re-list the room's loops from the API and sync to them."""
        loops = await self.client.list_loops(self.room_id)
        await self.sync_loops(loops)
        return loops

    def remove_loop(self, loop_id: str) -> None:
        """Drop every trace of a loop: routing, cache entry and state."""
        self.controller.stop_track(loop_id)
        self.cache.evict(loop_id)
        self.store.remove(loop_id)
        self.loops = [lp for lp in self.loops if lp.id != loop_id]

    async def delete_loop(self, loop_id: str) -> bool:
        """Delete a loop through the API, then evict it locally."""
        try:
            await self.client.delete_loop(loop_id)
        except JamroomError as e:
            logger.warning("session.delete_failed", loop_id=loop_id, error=str(e))
            self._notify("Error", "Failed to delete the loop", "destructive")
            return False
        self.remove_loop(loop_id)
        self._notify("Loop Deleted", "The audio loop has been removed.")
        return True

    # ── Transport and controls ───────────────────────────

    def play_track(self, loop_id: str) -> None:
        self.controller.play_track(loop_id)

    def stop_track(self, loop_id: str) -> None:
        self.controller.stop_track(loop_id)

    def play_all(self) -> None:
        """Start transport. Must be called from the running event loop."""
        self.controller.play_all()
        self.clock.start()

    def stop_all(self) -> None:
        self.controller.stop_all()

    def set_volume(self, loop_id: str, pct: float) -> None:
        self.controller.set_volume(loop_id, pct)

    def set_master_volume(self, pct: float) -> None:
        self.controller.set_master_volume(pct)

    def toggle_mute(self, loop_id: str) -> None:
        self.controller.toggle_mute(loop_id)

    def toggle_solo(self, loop_id: str) -> None:
        self.controller.toggle_solo(loop_id)

    @property
    def is_playing(self) -> bool:
        return self.controller.is_playing

    @property
    def playback_progress(self) -> float:
        """Progress sweep as a percentage (0-100)."""
        return self.controller.progress * 100

    def snapshot(self) -> dict[str, Any]:
        """State for the UI layer."""
        return {
            "room_id": self.room_id,
            "tracks": {loop_id: track.to_dict() for loop_id, track in self.store.items()},
            "master_volume": self.master.master_volume,
            "is_playing": self.is_playing,
            "playback_progress": self.playback_progress,
            "is_exporting": self.is_exporting,
        }

    # ── Export ───────────────────────────────────────────

    async def export_mixdown(self, day: date | None = None) -> ExportFile:
        """Render, encode and return the current mix as a WAV download.

        Raises:
            ExportInProgressError: Another export is still rendering.
            NoEligibleTracksError: Nothing to mix (all muted / none loaded).
            RenderError: The offline render failed.
        """
        if self.is_exporting:
            raise ExportInProgressError("An export is already in progress")

        self.is_exporting = True
        self._notify("Preparing mixdown", "Creating your audio file...")
        try:
            mix = await self.renderer.render(self.store, self.master)
            content = encode(mix)
        except (NoEligibleTracksError, RenderError) as e:
            logger.warning("session.export_failed", room_id=self.room_id, error=str(e))
            self._notify("Export failed", str(e), "destructive")
            raise
        finally:
            self.is_exporting = False

        export = ExportFile(
            filename=export_filename(day),
            content=content,
            duration=mix.duration,
            loop_count=mix.track_count,
        )
        logger.info(
            "session.export_done",
            room_id=self.room_id,
            filename=export.filename,
            bytes=len(content),
            loops=export.loop_count,
        )
        self._notify("Mixdown complete", "Your audio file has been downloaded.")

        task = asyncio.get_running_loop().create_task(self._report_export(mix))
        self._reports.add(task)
        task.add_done_callback(self._reports.discard)
        return export

    async def _report_export(self, mix: MixdownResult) -> None:
        try:
            await self.client.record_export(self.room_id, mix.track_count, mix.duration)
        except ExportNotifyError as e:
            logger.warning("session.export_report_failed", room_id=self.room_id, error=str(e))

    # ── Lifecycle ────────────────────────────────────────

    async def close(self) -> None:
        """Stop playback, release the output and finish pending reports."""
        if self._closed:
            return
        self._closed = True
        self.controller.stop_all()
        await self.clock.stop()
        if self._reports:
            await asyncio.gather(*self._reports, return_exceptions=True)
        self.output.close()
        await self.client.aclose()

    async def __aenter__(self) -> MixerSession:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
