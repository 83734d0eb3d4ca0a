"""Async client for the jam-session API.

Every request carries the caller's bearer credential. Errors are raised
as :class:`~jamroom.errors.FetchError` (reads) or
:class:`~jamroom.errors.ExportNotifyError` (export reporting) so callers
can apply their own recovery policy.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from jamroom.api.models import ExportRecord, Loop, LoopList
from jamroom.config import settings
from jamroom.errors import ExportNotifyError, FetchError, JamroomError

logger = structlog.get_logger()


class JamApiClient:
    """Thin wrapper around ``httpx.AsyncClient`` for the jam API."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._token = settings.api_token if token is None else token
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.request_timeout_s,
            headers=self._headers(),
            transport=transport,
        )

    def _headers(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    # ── Loops ────────────────────────────────────────────

    async def fetch_loop_audio(self, loop_id: str) -> bytes:
        """Download the raw audio bytes of a loop."""
        try:
            resp = await self._client.get(f"/api/loops/{loop_id}/audio")
        except httpx.HTTPError as e:
            raise FetchError(loop_id, str(e)) from e
        if resp.status_code != 200:
            raise FetchError(
                loop_id,
                f"Failed to fetch audio (HTTP {resp.status_code})",
                status_code=resp.status_code,
            )
        return resp.content

    async def list_loops(self, room_id: str) -> list[Loop]:
        """List a room's loops, ordered by creation."""
        try:
            resp = await self._client.get(f"/api/rooms/{room_id}/loops")
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise JamroomError(f"Failed to fetch loops for room {room_id}: {e}") from e
        return LoopList.model_validate(resp.json()).loops

    async def delete_loop(self, loop_id: str) -> None:
        """Delete a loop. Raises on 403/404."""
        try:
            resp = await self._client.delete(f"/api/loops/{loop_id}")
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise JamroomError(f"Failed to delete loop {loop_id}: {e}") from e
        logger.info("api.loop_deleted", loop_id=loop_id)

    # ── Exports ──────────────────────────────────────────

    async def record_export(self, room_id: str, loop_count: int, duration: float) -> dict[str, Any]:
        """Report a completed mixdown."""
        record = ExportRecord(room_id=room_id, loop_count=loop_count, duration=duration)
        try:
            resp = await self._client.post("/api/exports", json=record.model_dump(by_alias=True))
            resp.raise_for_status()
            body: dict[str, Any] = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ExportNotifyError(f"Failed to record export: {e}") from e
        return body

    # ── Lifecycle ────────────────────────────────────────

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> JamApiClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()
