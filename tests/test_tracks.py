"""Track store: defaults, clamping and the mute/solo rules."""

from __future__ import annotations

from jamroom.console.tracks import MasterState, TrackState, TrackStore, clamp_percent, track_gain

from conftest import add_loaded


# ── Defaults & clamping ──────────────────────────────────


def test_new_track_defaults() -> None:
    store = TrackStore(default_volume=80)
    track = store.ensure("a")
    assert track.volume == 80
    assert not track.muted and not track.solo and not track.playing
    assert track.buffer is None
    assert store.ensure("a") is track


def test_clamp_percent() -> None:
    assert clamp_percent(-20) == 0
    assert clamp_percent(250) == 100
    assert clamp_percent(42.4) == 42
    assert clamp_percent(100) == 100


def test_set_volume_clamps(store: TrackStore) -> None:
    store.ensure("a")
    for value in (-5, 101, 1e9, -1e9, 55):
        store.set_volume("a", value)
        assert 0 <= store.get("a").volume <= 100
    assert store.get("a").volume == 55


def test_track_gain() -> None:
    master = MasterState(master_volume=50)
    assert track_gain(TrackState(volume=80), master) == 0.4
    assert track_gain(TrackState(volume=80, muted=True), master) == 0.0


# ── Mute / solo ──────────────────────────────────────────


def test_muting_clears_own_solo(store: TrackStore) -> None:
    for lid in ("a", "b"):
        store.ensure(lid)
    store.toggle_solo("a")
    store.toggle_mute("a")
    assert store.get("a").muted
    assert not store.get("a").solo
    # Only soloed track muted → solo set is now empty, no promotion
    assert not store.has_solo()


def test_unmuting_keeps_solo_value(store: TrackStore) -> None:
    store.ensure("a")
    store.toggle_mute("a")
    store.toggle_mute("a")
    assert not store.get("a").muted
    assert not store.get("a").solo


def test_solo_on_muted_track_unmutes_and_is_exclusive(store: TrackStore) -> None:
    """Muted C soloed → C.solo, C unmuted, nobody else soloed."""
    for lid in ("a", "b", "c"):
        store.ensure(lid)
    store.toggle_solo("a")
    store.toggle_mute("c")

    store.toggle_solo("c")

    assert store.get("c").solo is True
    assert store.get("c").muted is False
    assert store.get("a").solo is False
    assert store.get("b").solo is False


def test_solo_does_not_touch_other_mutes(store: TrackStore) -> None:
    for lid in ("a", "b"):
        store.ensure(lid)
    store.toggle_mute("b")
    store.toggle_solo("a")
    assert store.get("b").muted


def test_unsolo_clears_mute_too(store: TrackStore) -> None:
    store.ensure("a")
    store.toggle_solo("a")
    store.toggle_solo("a")
    assert not store.get("a").solo
    assert not store.get("a").muted


# ── Eligibility ──────────────────────────────────────────


def test_eligible_without_solo_skips_muted_and_unloaded(store: TrackStore) -> None:
    add_loaded(store, "a")
    add_loaded(store, "b")
    store.ensure("pending")
    store.toggle_mute("b")
    assert [lid for lid, _ in store.eligible()] == ["a"]


def test_solo_selects_exactly_soloed_loaded_tracks(store: TrackStore) -> None:
    for lid in ("a", "b", "c"):
        add_loaded(store, lid)
    store.toggle_solo("b")
    assert [lid for lid, _ in store.eligible()] == ["b"]


def test_solo_on_unloaded_track_still_excludes_others(store: TrackStore) -> None:
    add_loaded(store, "a")
    store.ensure("pending")
    store.get("pending").solo = True
    assert store.eligible() == []


def test_muted_never_eligible_even_if_solo_flag_set(store: TrackStore) -> None:
    add_loaded(store, "a")
    track = store.get("a")
    track.solo = True
    track.muted = True
    assert not store.is_eligible("a")


def test_max_duration_and_removal(store: TrackStore) -> None:
    add_loaded(store, "a", duration_s=2.0)
    add_loaded(store, "b", duration_s=5.0)
    store.ensure("pending")
    assert store.max_duration() == 5.0
    store.remove("b")
    assert store.max_duration() == 2.0
    assert "b" not in store
    assert store.set_buffer("b", store.get("a").buffer) is False
