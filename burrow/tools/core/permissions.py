from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class Unrestricted:
    """No permission subsystem configured: every registered tool is allowed."""


@dataclass(frozen=True)
class Restricted:
    """Only the listed tools are allowed. An empty list allows nothing."""

    tools: tuple[str, ...] = ()

    @classmethod
    def of(cls, names: Iterable[str]) -> "Restricted":
        return cls(tuple(dict.fromkeys(names)))

    def __contains__(self, name: object) -> bool:
        return name in self.tools

    def __len__(self) -> int:
        return len(self.tools)


type ToolPermission = Unrestricted | Restricted

UNRESTRICTED = Unrestricted()
