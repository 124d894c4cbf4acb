from enum import StrEnum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class Message(BaseModel):
    """A single conversation entry. Immutable; identity is ``id``."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    channel: str
    session_key: str
    content: str
    role: Role
    metadata: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def new(
        cls,
        channel: str,
        session_key: str,
        role: Role,
        content: str,
        metadata: dict[str, str] | None = None,
    ) -> "Message":
        return cls(
            channel=channel,
            session_key=session_key,
            role=role,
            content=content,
            metadata=dict(metadata or {}),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Message):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)
