"""API — client for the external rooms/loops/exports service."""

from jamroom.api.client import JamApiClient
from jamroom.api.models import ExportRecord, Loop

__all__ = ["JamApiClient", "ExportRecord", "Loop"]
