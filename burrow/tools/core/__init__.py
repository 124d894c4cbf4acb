"""Core tool infrastructure - base classes, permissions, registry."""

from burrow.tools.core.base import ExecutionError, InvalidArgs, Tool, ToolError
from burrow.tools.core.formatting import format_lines_with_pagination
from burrow.tools.core.permissions import UNRESTRICTED, Restricted, ToolPermission, Unrestricted
from burrow.tools.core.registry import ToolMetrics, ToolRegistry

__all__ = [
    "UNRESTRICTED",
    "ExecutionError",
    "InvalidArgs",
    "Restricted",
    "Tool",
    "ToolError",
    "ToolMetrics",
    "ToolPermission",
    "ToolRegistry",
    "Unrestricted",
    "format_lines_with_pagination",
]
