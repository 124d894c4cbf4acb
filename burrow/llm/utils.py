import json

from burrow.llm.types import ToolCall
from burrow.types import Message, Role

TOOL_CALLS_KEY = "tool_calls_json"
TOOL_CALL_ID_KEY = "tool_call_id"


def to_wire_message(message: Message) -> dict:
    wire: dict = {"role": message.role.value, "content": message.content}
    match message.role:
        case Role.ASSISTANT if TOOL_CALLS_KEY in message.metadata:
            wire["tool_calls"] = json.loads(message.metadata[TOOL_CALLS_KEY])
        case Role.TOOL:
            wire["tool_call_id"] = message.metadata.get(TOOL_CALL_ID_KEY, "")
    return wire


def to_wire_messages(messages: list[Message]) -> list[dict]:
    return [to_wire_message(m) for m in messages]


def to_wire_tools(definitions: list[dict]) -> list[dict]:
    return [{"type": "function", "function": d} for d in definitions]


def parse_tool_calls(raw: list | None) -> list[ToolCall]:
    if not raw:
        return []
    return [
        ToolCall(
            id=tc.id,
            name=tc.function.name,
            arguments=tc.function.arguments or "",
        )
        for tc in raw
    ]
