from __future__ import annotations

from pydantic import BaseModel, Field


class CommandRequest(BaseModel):
    text: str = Field(..., description="Operator command, e.g. `resume` or `resolr articles`")


class CommandResponse(BaseModel):
    command: str
    output: list[str]
