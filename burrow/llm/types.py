import json
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    arguments: str

    def to_wire(self) -> dict:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


def serialize_tool_calls(tool_calls: list[ToolCall]) -> str:
    return json.dumps([tc.to_wire() for tc in tool_calls], ensure_ascii=False)


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(frozen=True)
class GenerationOptions:
    model: str
    max_tokens: int | None = None
    temperature: float | None = None


@dataclass(frozen=True)
class GenerationResponse:
    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    usage: Usage | None = None
