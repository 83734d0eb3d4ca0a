"""Wire models for the external API (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Loop(BaseModel):
    """One recorded loop as listed by ``GET /api/rooms/{id}/loops``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    room_id: str = Field(alias="roomId")
    user_id: str = Field(default="", alias="userId")
    user_name: str = Field(default="", alias="userName")
    name: str = ""
    order_index: int = Field(default=0, alias="orderIndex")
    audio_url: str = Field(default="", alias="audioUrl")
    created_at: datetime | None = Field(default=None, alias="createdAt")


class LoopList(BaseModel):
    """Response body of the loop listing endpoint."""

    loops: list[Loop] = Field(default_factory=list)


class ExportRecord(BaseModel):
    """Body of ``POST /api/exports``."""

    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(alias="roomId")
    loop_count: int = Field(alias="loopCount")
    duration: float
