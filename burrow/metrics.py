import time
from dataclasses import dataclass, field

from burrow.llm.types import Usage


@dataclass
class MetricsStore:
    started_at: float = field(default_factory=time.time)
    input_tokens: int = 0
    output_tokens: int = 0
    completions: int = 0
    tool_calls: int = 0
    turns: int = 0

    def add_tokens(self, usage: Usage) -> None:
        self.input_tokens += usage.input_tokens
        self.output_tokens += usage.output_tokens
        self.completions += 1

    def inc_tool_calls(self) -> None:
        self.tool_calls += 1

    def inc_turns(self) -> None:
        self.turns += 1

    def snapshot(self) -> dict:
        return {
            "uptime_seconds": int(time.time() - self.started_at),
            "turns": self.turns,
            "completions": self.completions,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "tool_calls": self.tool_calls,
        }
