from typing import Any

from pydantic import BaseModel, Field

from burrow.constants import DEFAULT_READ_LINES
from burrow.tools.core.base import ExecutionError, Tool
from burrow.tools.core.formatting import format_lines_with_pagination
from burrow.tools.sandbox import SandboxConfig, truncate_output, validate_path

READ_FILE_DESCRIPTION = (
    "Read a file from the workspace. "
    "For large files, use offset and limit parameters to read in chunks."
)

WRITE_FILE_DESCRIPTION = "Write content to a file in the workspace. Parent directories are created as needed."

LIST_DIR_DESCRIPTION = "List the entries of a directory in the workspace."


class ReadFileInput(BaseModel):
    path: str = Field(description="Path to the file, relative to the workspace")
    offset: int = Field(default=1, description="Line number to start from (1-based, default: 1)")
    limit: int = Field(
        default=DEFAULT_READ_LINES, description=f"Maximum lines to read (default: {DEFAULT_READ_LINES})"
    )


class WriteFileInput(BaseModel):
    path: str = Field(description="Path to the file, relative to the workspace")
    content: str = Field(description="Full file content")


class ListDirInput(BaseModel):
    path: str = Field(default=".", description="Directory path, relative to the workspace")


class _SandboxedTool(Tool):
    def __init__(self, sandbox: SandboxConfig):
        self.sandbox = sandbox

    def _resolve(self, path: str):
        return validate_path(self.sandbox.workspace_path, path)


class ReadFileTool(_SandboxedTool):
    name = "read_file"
    description = READ_FILE_DESCRIPTION
    input_model = ReadFileInput

    async def execute(self, path: str, offset: int = 1, limit: int = DEFAULT_READ_LINES, **kwargs: Any) -> str:
        target = self._resolve(path)
        if not target.exists():
            raise ExecutionError(f"File not found: {path}")
        if not target.is_file():
            raise ExecutionError(f"Path is a directory, not a file: {path}")

        try:
            content = target.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise ExecutionError(f"Failed to read {path}: {e}") from e

        formatted = format_lines_with_pagination(content, offset, limit)
        return truncate_output(formatted, self.sandbox.max_output_bytes)


class WriteFileTool(_SandboxedTool):
    name = "write_file"
    description = WRITE_FILE_DESCRIPTION
    input_model = WriteFileInput

    async def execute(self, path: str, content: str, **kwargs: Any) -> str:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ExecutionError(f"Failed to write {path}: {e}") from e
        return f"Successfully wrote {len(content.encode('utf-8'))} bytes to {path}"


class ListDirTool(_SandboxedTool):
    name = "list_dir"
    description = LIST_DIR_DESCRIPTION
    input_model = ListDirInput

    async def execute(self, path: str = ".", **kwargs: Any) -> str:
        target = self._resolve(path)
        if not target.is_dir():
            raise ExecutionError(f"Not a directory: {path}")

        entries = []
        for entry in sorted(target.iterdir(), key=lambda p: p.name):
            prefix = "[DIR]" if entry.is_dir() else "[FILE]"
            entries.append(f"{prefix} {entry.name}")

        if not entries:
            return "(empty directory)"
        return truncate_output("\n".join(entries), self.sandbox.max_output_bytes)
