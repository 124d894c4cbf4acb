from datetime import datetime

from pydantic import BaseModel, Field

from burrow.types import Message


class Session(BaseModel):
    history: list[Message] = Field(default_factory=list)
    summary: str | None = None
    summarized_at: datetime | None = None
