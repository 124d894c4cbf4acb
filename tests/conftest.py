import asyncio
from collections.abc import Callable
from pathlib import Path

import pytest
from pydantic import BaseModel, Field

from burrow.channel import Channel
from burrow.events import AuditEvent, AuditType
from burrow.llm.base import LLMProvider
from burrow.llm.types import GenerationOptions, GenerationResponse, ToolCall, Usage
from burrow.tools.core import Tool
from burrow.tools.sandbox import SandboxConfig
from burrow.types import Message, Role

TEST_SESSION = "test:session"
TEST_OPTIONS = GenerationOptions(model="test-model", max_tokens=256, temperature=0.7)


def make_message(content: str, session_key: str = TEST_SESSION, role: Role = Role.USER) -> Message:
    return Message.new("test", session_key, role, content)


def text_response(content: str, input_tokens: int = 10, output_tokens: int = 5) -> GenerationResponse:
    return GenerationResponse(content=content, usage=Usage(input_tokens, output_tokens))


def tool_response(*calls: tuple[str, str], content: str = "") -> GenerationResponse:
    tool_calls = [ToolCall(id=f"call_{i}", name=name, arguments=args) for i, (name, args) in enumerate(calls)]
    return GenerationResponse(content=content, tool_calls=tool_calls, usage=Usage(20, 8))


class ScriptedProvider(LLMProvider):
    """Replays a fixed script of responses; exceptions in the script are raised."""

    def __init__(self, script: list[GenerationResponse | Exception] | None = None, default: GenerationResponse | None = None):
        self.script = list(script or [])
        self.default = default
        self.calls: list[tuple[list[Message], list[dict], GenerationOptions]] = []
        self.closed = False

    async def chat(self, messages, tools, options):
        self.calls.append((list(messages), list(tools), options))
        if self.script:
            item = self.script.pop(0)
        elif self.default is not None:
            item = self.default
        else:
            raise AssertionError("ScriptedProvider ran out of responses")
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self):
        self.closed = True


class SleepRecorder:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class AuditCollector:
    def __init__(self, channel: Channel):
        self.channel = channel
        self.events: list[AuditEvent] = []
        channel.subscribe(AuditEvent, self._on_event)

    async def _on_event(self, event: AuditEvent) -> None:
        self.events.append(event)

    async def drain(self) -> None:
        await self.channel.drain()

    def of_type(self, type: AuditType) -> list[AuditEvent]:
        return [e for e in self.events if e.type == type]


class EchoInput(BaseModel):
    text: str = Field(description="Text to echo")


class EchoTool(Tool):
    name = "echo"
    description = "Echo the given text."
    input_model = EchoInput

    def __init__(self, name: str = "echo", on_call: Callable[[str], None] | None = None):
        self.name = name
        self.on_call = on_call
        self.calls: list[str] = []

    async def execute(self, text: str, **kwargs) -> str:
        self.calls.append(text)
        if self.on_call:
            self.on_call(text)
        return f"echo: {text}"


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    path = tmp_path / "workspace"
    path.mkdir()
    return path


@pytest.fixture
def sandbox(workspace: Path) -> SandboxConfig:
    return SandboxConfig(workspace_path=workspace, exec_timeout=5, max_output_bytes=4096)


@pytest.fixture
def channel() -> Channel:
    return Channel()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


async def settle(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)
