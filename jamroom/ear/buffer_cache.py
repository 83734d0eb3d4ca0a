"""Buffer cache — fetch and decode each loop's audio exactly once.

Loads for different loops run concurrently with no ordering between
them; a session with some tracks loaded and others not is normal. A
failed load is logged and leaves the track unloaded (inert) until a
caller explicitly retries.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Protocol

import structlog

from jamroom.config import settings
from jamroom.ear.decoder import DecodedBuffer, decode_audio
from jamroom.errors import DecodeError, FetchError

if TYPE_CHECKING:
    from jamroom.api.models import Loop
    from jamroom.console.tracks import TrackStore

logger = structlog.get_logger()


class AudioSource(Protocol):
    """Anything that can hand back a loop's raw audio bytes."""

    async def fetch_loop_audio(self, loop_id: str) -> bytes: ...


class BufferCache:
    """Populates ``TrackState.buffer`` for every loop it is asked about."""

    def __init__(
        self,
        source: AudioSource,
        store: TrackStore,
        sample_rate: int | None = None,
        resample: bool | None = None,
    ) -> None:
        self.source = source
        self.store = store
        self.sample_rate = sample_rate or settings.sample_rate
        self.resample = settings.resample if resample is None else resample
        self._inflight: dict[str, asyncio.Task[DecodedBuffer | None]] = {}
        self._failed: dict[str, str] = {}

    @property
    def failures(self) -> dict[str, str]:
        """loop_id → last load error, for loops that are currently inert."""
        return dict(self._failed)

    async def ensure_loaded(self, loop: Loop, retry: bool = False) -> DecodedBuffer | None:
        """Make sure the track for ``loop`` holds a decoded buffer.

        Idempotent: a loaded track is a no-op, and concurrent callers for
        the same loop share a single fetch + decode. A loop seen for the
        first time gets a default track state.
        """
        track = self.store.ensure(loop.id)
        if track.buffer is not None:
            return track.buffer
        if loop.id in self._failed and not retry:
            return None

        task = self._inflight.get(loop.id)
        if task is None:
            task = asyncio.create_task(self._load(loop.id))
            self._inflight[loop.id] = task
            task.add_done_callback(lambda t, lid=loop.id: self._forget(lid, t))
        return await asyncio.shield(task)

    async def ensure_all(self, loops: list[Loop]) -> None:
        """Load every loop concurrently."""
        await asyncio.gather(*(self.ensure_loaded(lp) for lp in loops))

    async def _load(self, loop_id: str) -> DecodedBuffer | None:
        try:
            data = await self.source.fetch_loop_audio(loop_id)
            buffer = await asyncio.to_thread(
                decode_audio, data, self.sample_rate, self.resample
            )
        except (FetchError, DecodeError) as e:
            self._failed[loop_id] = str(e)
            logger.warning("buffer_cache.load_failed", loop_id=loop_id, error=str(e))
            return None

        self._failed.pop(loop_id, None)
        # The loop may have been deleted while its audio was in flight
        if not self.store.set_buffer(loop_id, buffer):
            logger.debug("buffer_cache.discard_evicted", loop_id=loop_id)
            return None

        logger.info(
            "buffer_cache.loaded",
            loop_id=loop_id,
            duration_s=round(buffer.duration, 3),
            channels=buffer.channels,
        )
        return buffer

    def _forget(self, loop_id: str, task: asyncio.Task[DecodedBuffer | None]) -> None:
        if self._inflight.get(loop_id) is task:
            del self._inflight[loop_id]

    def evict(self, loop_id: str) -> None:
        """Forget everything about a loop (deleted or no longer visible)."""
        # An in-flight load is left to finish; set_buffer discards its result
        self._inflight.pop(loop_id, None)
        self._failed.pop(loop_id, None)
