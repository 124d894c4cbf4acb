from burrow.tools.core import ToolRegistry
from burrow.tools.exec import ExecTool
from burrow.tools.files import ListDirTool, ReadFileTool, WriteFileTool
from burrow.tools.sandbox import SandboxConfig
from burrow.tools.web import WebFetchTool


def create_registry(sandbox: SandboxConfig) -> ToolRegistry:
    registry = ToolRegistry()
    for tool in (
        ReadFileTool(sandbox),
        WriteFileTool(sandbox),
        ListDirTool(sandbox),
        ExecTool(sandbox),
        WebFetchTool(sandbox),
    ):
        registry.register(tool)
    return registry


__all__ = ["SandboxConfig", "ToolRegistry", "create_registry"]
