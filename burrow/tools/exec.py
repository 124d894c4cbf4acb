import asyncio
from typing import Any

from pydantic import BaseModel, Field

from burrow.logging import get_logger
from burrow.tools.core.base import ExecutionError, Tool
from burrow.tools.sandbox import SandboxConfig, truncate_output

_logger = get_logger(__name__)

BLOCKED_PATTERNS = frozenset(
    {
        "rm -rf /",
        "rm -rf ~",
        "rm -rf *",
        "dd if=",
        "mkfs",
        "fdisk",
        ":(){:|:&};:",
        "> /dev/sd",
        "chmod -R 777 /",
    }
)

EXEC_DESCRIPTION = """Execute a shell command in the workspace.

The command runs with `sh -c` and the workspace as working directory.
Destructive commands and parent-directory references ('..') are rejected."""


def is_blocked_command(command: str) -> bool:
    cmd_lower = command.lower().strip()
    return any(blocked in cmd_lower for blocked in BLOCKED_PATTERNS)


def format_exec_output(stdout: str, stderr: str) -> str:
    output = ""
    if stdout:
        output += f"STDOUT:\n{stdout}\n"
    if stderr:
        output += f"STDERR:\n{stderr}\n"
    return output or "(no output)"


class ExecInput(BaseModel):
    command: str = Field(description="The shell command to execute")


class ExecTool(Tool):
    name = "exec_cmd"
    description = EXEC_DESCRIPTION
    input_model = ExecInput

    def __init__(self, sandbox: SandboxConfig):
        self.sandbox = sandbox

    async def execute(self, command: str, **kwargs: Any) -> str:
        if not self.sandbox.exec_enabled:
            raise ExecutionError("Command execution is disabled")
        if ".." in command:
            raise ExecutionError("Command contains disallowed '..' sequence")
        if is_blocked_command(command):
            raise ExecutionError(f"Blocked: {command}")

        try:
            proc = await asyncio.create_subprocess_shell(
                command,
                cwd=self.sandbox.workspace_path,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExecutionError(str(e)) from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.sandbox.exec_timeout)
        except TimeoutError:
            proc.kill()
            await proc.wait()
            _logger.warning("Command timed out after %ss: %s", self.sandbox.exec_timeout, command)
            raise ExecutionError(f"Command timed out after {self.sandbox.exec_timeout}s") from None

        output = format_exec_output(
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )
        return truncate_output(output, self.sandbox.max_output_bytes)
