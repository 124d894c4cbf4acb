from dataclasses import replace
from pathlib import Path

import httpx
import pytest

from burrow.tools import create_registry
from burrow.tools.core import ExecutionError, InvalidArgs
from burrow.tools.exec import ExecTool, format_exec_output, is_blocked_command
from burrow.tools.files import ListDirTool, ReadFileTool, WriteFileTool
from burrow.tools.sandbox import AccessDenied, SandboxConfig
from burrow.tools.web import WebFetchTool, host_allowed


class TestFileTools:
    @pytest.mark.asyncio
    async def test_write_then_read(self, sandbox: SandboxConfig, workspace: Path):
        result = await WriteFileTool(sandbox).execute(path="notes/today.md", content="line one\nline two")
        assert result.startswith("Successfully wrote")
        assert (workspace / "notes" / "today.md").read_text() == "line one\nline two"

        output = await ReadFileTool(sandbox).execute(path="notes/today.md")
        assert output.startswith("[2 lines]")
        assert "     1|line one" in output
        assert "     2|line two" in output

    @pytest.mark.asyncio
    async def test_read_pagination(self, sandbox: SandboxConfig, workspace: Path):
        (workspace / "big.txt").write_text("\n".join(f"row {i}" for i in range(1, 11)))
        output = await ReadFileTool(sandbox).execute(path="big.txt", offset=3, limit=2)
        assert output.startswith("[10 lines, showing 3-4]")
        assert "row 3" in output and "row 4" in output
        assert "row 5" not in output

    @pytest.mark.asyncio
    async def test_read_missing(self, sandbox: SandboxConfig):
        with pytest.raises(ExecutionError, match="File not found"):
            await ReadFileTool(sandbox).execute(path="missing.txt")

    @pytest.mark.asyncio
    async def test_read_output_is_truncated(self, workspace: Path):
        (workspace / "big.txt").write_text("x" * 500)
        small = SandboxConfig(workspace_path=workspace, max_output_bytes=100)
        output = await ReadFileTool(small).execute(path="big.txt")
        assert output.endswith("--- OUTPUT TRUNCATED (100B limit) ---")

    @pytest.mark.asyncio
    async def test_write_outside_workspace_denied(self, sandbox: SandboxConfig, tmp_path: Path):
        with pytest.raises(AccessDenied):
            await WriteFileTool(sandbox).execute(path="../escape.txt", content="x")
        with pytest.raises(AccessDenied):
            await WriteFileTool(sandbox).execute(path=str(tmp_path / "escape.txt"), content="x")
        assert not (tmp_path / "escape.txt").exists()

    @pytest.mark.asyncio
    async def test_list_dir(self, sandbox: SandboxConfig, workspace: Path):
        (workspace / "sub").mkdir()
        (workspace / "a.txt").write_text("a")
        assert await ListDirTool(sandbox).execute(path=".") == "[FILE] a.txt\n[DIR] sub"
        assert await ListDirTool(sandbox).execute(path="sub") == "(empty directory)"


class TestExecTool:
    @pytest.mark.asyncio
    async def test_runs_in_workspace(self, sandbox: SandboxConfig, workspace: Path):
        (workspace / "marker.txt").write_text("x")
        output = await ExecTool(sandbox).execute(command="ls")
        assert output.startswith("STDOUT:\n")
        assert "marker.txt" in output

    @pytest.mark.asyncio
    async def test_captures_stderr(self, sandbox: SandboxConfig):
        output = await ExecTool(sandbox).execute(command="echo oops 1>&2")
        assert output == "STDERR:\noops\n\n"

    @pytest.mark.asyncio
    async def test_no_output(self, sandbox: SandboxConfig):
        assert await ExecTool(sandbox).execute(command="true") == "(no output)"

    @pytest.mark.asyncio
    async def test_parent_reference_rejected(self, sandbox: SandboxConfig):
        with pytest.raises(ExecutionError, match="'..'"):
            await ExecTool(sandbox).execute(command="cat ../secret")

    @pytest.mark.asyncio
    async def test_blocked_command(self, sandbox: SandboxConfig):
        with pytest.raises(ExecutionError, match="Blocked"):
            await ExecTool(sandbox).execute(command="rm -rf /")

    @pytest.mark.asyncio
    async def test_disabled(self, sandbox: SandboxConfig):
        with pytest.raises(ExecutionError, match="disabled"):
            await ExecTool(replace(sandbox, exec_enabled=False)).execute(command="ls")

    @pytest.mark.asyncio
    async def test_timeout(self, sandbox: SandboxConfig):
        with pytest.raises(ExecutionError, match="timed out"):
            await ExecTool(replace(sandbox, exec_timeout=1)).execute(command="sleep 5")

    def test_helpers(self):
        assert is_blocked_command("sudo RM -RF / now")
        assert not is_blocked_command("rm notes.txt")
        assert format_exec_output("", "") == "(no output)"
        assert format_exec_output("a\n", "b\n") == "STDOUT:\na\n\nSTDERR:\nb\n\n"


class TestWebFetch:
    def test_host_allowed(self):
        assert host_allowed("example.com", ())
        assert host_allowed("api.github.com", ("github.com",))
        assert host_allowed("GitHub.com", ("github.com",))
        assert not host_allowed("evilgithub.com", ("github.com",))
        assert not host_allowed("example.com", ("github.com",))

    @pytest.mark.asyncio
    async def test_fetch(self, sandbox: SandboxConfig):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text=f"hello from {request.url.host}"))
        tool = WebFetchTool(replace(sandbox, network_allowlist=("example.com",)), transport=transport)
        assert await tool.execute(url="https://example.com/page") == "hello from example.com"

    @pytest.mark.asyncio
    async def test_host_not_allowed(self, sandbox: SandboxConfig):
        tool = WebFetchTool(replace(sandbox, network_allowlist=("example.com",)))
        with pytest.raises(ExecutionError, match="allowlist"):
            await tool.execute(url="https://other.org/")

    @pytest.mark.asyncio
    async def test_bad_scheme(self, sandbox: SandboxConfig):
        with pytest.raises(ExecutionError, match="Unsupported URL"):
            await WebFetchTool(sandbox).execute(url="file:///etc/passwd")

    @pytest.mark.asyncio
    async def test_http_error(self, sandbox: SandboxConfig):
        transport = httpx.MockTransport(lambda request: httpx.Response(404))
        with pytest.raises(ExecutionError, match="HTTP 404"):
            await WebFetchTool(sandbox, transport=transport).execute(url="https://example.com/missing")


class TestCreateRegistry:
    def test_registers_builtins_in_order(self, sandbox: SandboxConfig):
        registry = create_registry(sandbox)
        assert list(registry.tools) == ["read_file", "write_file", "list_dir", "exec_cmd", "web_fetch"]

    @pytest.mark.asyncio
    async def test_missing_required_argument(self, sandbox: SandboxConfig):
        registry = create_registry(sandbox)
        with pytest.raises(InvalidArgs):
            await registry.execute("write_file", {"path": "a.txt"})
