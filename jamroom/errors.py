"""Mixer error taxonomy.

Load failures (fetch/decode) are recovered per track, export failures are
surfaced to the user, and export notification failures are swallowed.
"""

from __future__ import annotations


class JamroomError(RuntimeError):
    """Base class for every mixer error."""


class FetchError(JamroomError):
    """Retrieving a loop's audio bytes failed (network, auth, 404)."""

    def __init__(self, loop_id: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"loop {loop_id}: {message}")
        self.loop_id = loop_id
        self.status_code = status_code


class DecodeError(JamroomError):
    """Bytes could not be decoded as audio."""


class SampleRateMismatchError(DecodeError):
    """Decoded audio is not at the project sample rate and resampling is off."""


class NoEligibleTracksError(JamroomError):
    """Export attempted with no loaded, unmuted (or soloed) tracks."""

    def __init__(self, message: str = "No tracks selected for export") -> None:
        super().__init__(message)


class RenderError(JamroomError):
    """The offline renderer failed."""


class ExportInProgressError(JamroomError):
    """A second export was requested while one is still rendering."""


class ExportNotifyError(JamroomError):
    """Reporting a completed export to the API failed."""
