"""Track state store — per-loop mixing controls and decoded audio.

Mutations run on the session's event loop only, so every method here is
atomic with respect to progress-clock ticks.

Mute/solo rules:
  - Solo is an exclusive allow-list: once any track is soloed, only
    soloed tracks are eligible.
  - Soloing a track unmutes it and un-solos every other track.
  - Muting a track un-solos that same track.
  - A muted track is never eligible.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from jamroom.config import settings
from jamroom.ear.decoder import DecodedBuffer


def clamp_percent(value: float) -> int:
    """Clamp to the 0-100 integer percentage domain."""
    return int(round(max(0.0, min(100.0, float(value)))))


# ── Data Types ───────────────────────────────────────────


@dataclass
class TrackState:
    """Mixer state for a single loop."""

    volume: int = 80
    muted: bool = False
    solo: bool = False
    playing: bool = False
    buffer: DecodedBuffer | None = None

    @property
    def loaded(self) -> bool:
        return self.buffer is not None

    @property
    def duration(self) -> float:
        return self.buffer.duration if self.buffer is not None else 0.0

    @property
    def sample_rate(self) -> int | None:
        return self.buffer.sample_rate if self.buffer is not None else None

    def to_dict(self) -> dict[str, Any]:
        """Snapshot for UI rendering."""
        return {
            "volume": self.volume,
            "muted": self.muted,
            "solo": self.solo,
            "playing": self.playing,
            "loaded": self.loaded,
            "duration": self.duration,
        }


@dataclass
class MasterState:
    """Master bus level shared by every track."""

    master_volume: int = 80


def track_gain(track: TrackState, master: MasterState) -> float:
    """Effective linear gain: track% × master%, or 0 when muted."""
    if track.muted:
        return 0.0
    return (track.volume / 100) * (master.master_volume / 100)


# ── Store ────────────────────────────────────────────────


class TrackStore:
    """Track states keyed by loop id, in loop order."""

    def __init__(self, default_volume: int | None = None) -> None:
        self.default_volume = clamp_percent(
            settings.default_volume if default_volume is None else default_volume
        )
        self._tracks: dict[str, TrackState] = {}

    def __contains__(self, loop_id: object) -> bool:
        return loop_id in self._tracks

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._tracks))

    def __len__(self) -> int:
        return len(self._tracks)

    def items(self) -> list[tuple[str, TrackState]]:
        return list(self._tracks.items())

    def get(self, loop_id: str) -> TrackState | None:
        return self._tracks.get(loop_id)

    def ensure(self, loop_id: str) -> TrackState:
        """Return the track for ``loop_id``, creating it with defaults."""
        track = self._tracks.get(loop_id)
        if track is None:
            track = TrackState(volume=self.default_volume)
            self._tracks[loop_id] = track
        return track

    def remove(self, loop_id: str) -> TrackState | None:
        return self._tracks.pop(loop_id, None)

    def set_buffer(self, loop_id: str, buffer: DecodedBuffer) -> bool:
        """Attach decoded audio. False if the track no longer exists."""
        track = self._tracks.get(loop_id)
        if track is None:
            return False
        track.buffer = buffer
        return True

    # ── Controls ─────────────────────────────────────────

    def set_volume(self, loop_id: str, pct: float) -> int:
        track = self._tracks[loop_id]
        track.volume = clamp_percent(pct)
        return track.volume

    def toggle_mute(self, loop_id: str) -> bool:
        """Flip mute. Muting clears this track's solo; unmuting keeps it."""
        track = self._tracks[loop_id]
        track.muted = not track.muted
        if track.muted:
            track.solo = False
        return track.muted

    def toggle_solo(self, loop_id: str) -> bool:
        """Flip solo. Soloing is exclusive and always unmutes the track."""
        track = self._tracks[loop_id]
        new_solo = not track.solo
        if new_solo:
            for other_id, other in self._tracks.items():
                if other_id != loop_id:
                    other.solo = False
        track.solo = new_solo
        track.muted = False
        return new_solo

    def mark_all_stopped(self) -> None:
        for track in self._tracks.values():
            track.playing = False

    # ── Eligibility ──────────────────────────────────────

    def has_solo(self) -> bool:
        return any(t.solo for t in self._tracks.values())

    def is_eligible(self, loop_id: str, has_solo: bool | None = None) -> bool:
        """Whether a track takes part in a play-all or mixdown pass."""
        track = self._tracks.get(loop_id)
        if track is None or track.buffer is None:
            return False
        if track.muted:
            return False
        if has_solo is None:
            has_solo = self.has_solo()
        if has_solo and not track.solo:
            return False
        return True

    def eligible(self) -> list[tuple[str, TrackState]]:
        """Loaded tracks selected by the mute/solo rule, in loop order."""
        has_solo = self.has_solo()
        return [
            (loop_id, track)
            for loop_id, track in self._tracks.items()
            if self.is_eligible(loop_id, has_solo)
        ]

    def max_duration(self) -> float:
        """Longest loaded buffer across all tracks (0 when none loaded)."""
        return max((t.duration for t in self._tracks.values() if t.loaded), default=0.0)
