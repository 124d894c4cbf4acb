from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from burrow.tools.core.base import InvalidArgs, Tool
from burrow.tools.core.permissions import Restricted, ToolPermission, Unrestricted


@dataclass
class ToolMetrics:
    calls: int = 0
    failures: int = 0
    total_ms: int = 0
    last_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "calls": self.calls,
            "failures": self.failures,
            "total_ms": self.total_ms,
            "last_ms": self.last_ms,
        }


class ToolRegistry:
    def __init__(self):
        self._tools: dict[str, Tool] = {}
        self._metrics: dict[str, ToolMetrics] = {}

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    @staticmethod
    def is_allowed(name: str, permission: ToolPermission) -> bool:
        match permission:
            case Unrestricted():
                return True
            case Restricted(tools=tools):
                return name in tools
        raise TypeError(f"Unknown permission: {permission!r}")

    def list_definitions_for(self, permission: ToolPermission) -> list[dict]:
        return [
            tool.definition()
            for name, tool in self._tools.items()
            if self.is_allowed(name, permission)
        ]

    async def execute(self, name: str, arguments: dict[str, Any]) -> str:
        tool = self._tools[name]

        if tool.input_model is not None:
            try:
                arguments = tool.input_model(**arguments).model_dump()
            except ValidationError as e:
                errors = "; ".join(
                    f"{'.'.join(str(l) for l in err['loc'])}: {err['msg']}" for err in e.errors() if err.get("loc")
                )
                raise InvalidArgs(errors or str(e)) from e

        return await tool.execute(**arguments)

    def record_metrics(self, name: str, duration_ms: int, success: bool) -> None:
        stats = self._metrics.setdefault(name, ToolMetrics())
        stats.calls += 1
        stats.total_ms += duration_ms
        stats.last_ms = duration_ms
        if not success:
            stats.failures += 1

    @property
    def metrics(self) -> dict[str, dict]:
        return {name: stats.to_dict() for name, stats in self._metrics.items()}

    @property
    def tools(self) -> dict[str, Tool]:
        return self._tools

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
