"""Playback graph controller — realtime monitoring of the track set.

Per track: ``Stopped → Playing → Stopped``. Each playing track owns one
looping :class:`Routing` connected to the session's realtime output.
Routings are released on stop, and also when building or connecting one
fails, so no live audio leaks on error paths.

Operations on a track without decoded audio are silent no-ops.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import structlog

from jamroom.console.tracks import MasterState, TrackStore, clamp_percent, track_gain
from jamroom.hands.graph import GainStage, LoopSource, Routing
from jamroom.hands.output import SUSPENDED, RealtimeOutput

logger = structlog.get_logger()


class PlaybackController:
    """Builds and tears down live routings from the track store."""

    def __init__(
        self,
        store: TrackStore,
        master: MasterState,
        output: RealtimeOutput,
    ) -> None:
        self.store = store
        self.master = master
        self.output = output
        self.is_playing = False
        self.start_instant = 0.0
        self.progress = 0.0  # fraction 0-1, driven by the progress clock

    @contextmanager
    def _routing_scope(self, loop_id: str, routing: Routing) -> Iterator[Routing]:
        """Connect ``routing``; disconnect and release it if setup fails."""
        self.output.connect(loop_id, routing)
        try:
            yield routing
        except BaseException:
            self.output.disconnect(loop_id)
            routing.release()
            raise

    def _teardown(self, loop_id: str) -> bool:
        routing = self.output.disconnect(loop_id)
        if routing is None:
            return False
        routing.release()
        return True

    # ── Single track ─────────────────────────────────────

    def play_track(self, loop_id: str) -> None:
        track = self.store.get(loop_id)
        if track is None or track.buffer is None:
            return

        self._teardown(loop_id)

        source = LoopSource(track.buffer, loop=True, channels=self.output.channels)
        gain = GainStage(track_gain(track, self.master))
        with self._routing_scope(loop_id, Routing(source, gain)):
            source.start()
            track.playing = True

        logger.debug("playback.track_started", loop_id=loop_id, gain=gain.value)

    def stop_track(self, loop_id: str) -> None:
        if not self._teardown(loop_id):
            return
        track = self.store.get(loop_id)
        if track is not None:
            track.playing = False
        logger.debug("playback.track_stopped", loop_id=loop_id)

    # ── Transport ────────────────────────────────────────

    def play_all(self) -> None:
        """Start every eligible track together from the current instant."""
        if self.output.state == SUSPENDED:
            self.output.resume()

        self.start_instant = self.output.current_time
        eligible = self.store.eligible()
        for loop_id, _track in eligible:
            self.play_track(loop_id)

        self.is_playing = True
        logger.info("playback.play_all", tracks=len(eligible), solo=self.store.has_solo())

    def stop_all(self) -> None:
        for routing in self.output.disconnect_all():
            routing.release()
        self.store.mark_all_stopped()
        self.is_playing = False
        self.progress = 0.0
        logger.info("playback.stop_all")

    # ── Levels ───────────────────────────────────────────

    def _refresh_gain(self, loop_id: str) -> None:
        routing = self.output.routing(loop_id)
        track = self.store.get(loop_id)
        if routing is not None and track is not None:
            routing.gain.value = track_gain(track, self.master)

    def set_volume(self, loop_id: str, pct: float) -> None:
        track = self.store.get(loop_id)
        if track is None or track.buffer is None:
            return
        self.store.set_volume(loop_id, pct)
        self._refresh_gain(loop_id)

    def set_master_volume(self, pct: float) -> None:
        self.master.master_volume = clamp_percent(pct)
        for loop_id in self.output.keys():
            self._refresh_gain(loop_id)

    # ── Mute / solo ──────────────────────────────────────

    def toggle_mute(self, loop_id: str) -> None:
        track = self.store.get(loop_id)
        if track is None or track.buffer is None:
            return
        self.store.toggle_mute(loop_id)
        self._refresh_gain(loop_id)

    def toggle_solo(self, loop_id: str) -> None:
        """Flip solo; restart transport so eligibility is re-derived."""
        track = self.store.get(loop_id)
        if track is None or track.buffer is None:
            return
        self.store.toggle_solo(loop_id)
        if self.is_playing:
            self.stop_all()
            self.play_all()
            return
        # Individually monitored tracks: soloing may have unmuted this one
        for key in self.output.keys():
            self._refresh_gain(key)
