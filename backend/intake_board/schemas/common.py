"""Small response envelopes shared across routers."""

from __future__ import annotations

from pydantic import Field
from sqlmodel import SQLModel


class OkResponse(SQLModel):
    """Acknowledgement payload for operations with no resource to return."""

    ok: bool = Field(default=True, examples=[True])


class CountResponse(SQLModel):
    count: int = Field(ge=0, examples=[3])
