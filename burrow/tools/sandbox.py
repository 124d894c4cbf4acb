import re
from dataclasses import dataclass, field
from pathlib import Path

from burrow.constants import EXEC_TIMEOUT, MAX_OUTPUT_BYTES
from burrow.tools.core.base import ExecutionError

_SEPARATORS = re.compile(r"[/\\]")


class AccessDenied(ExecutionError):
    def __init__(self, path: str, reason: str = "outside workspace"):
        self.path = path
        self.reason = reason
        super().__init__(f"Access denied: {path} ({reason})")


@dataclass(frozen=True)
class SandboxConfig:
    workspace_path: Path
    exec_timeout: int = EXEC_TIMEOUT
    max_output_bytes: int = MAX_OUTPUT_BYTES
    exec_enabled: bool = True
    network_allowlist: tuple[str, ...] = field(default_factory=tuple)


def has_traversal(requested: str) -> bool:
    return any(part == ".." for part in _SEPARATORS.split(requested))


def validate_path(workspace: Path, requested: str | Path) -> Path:
    """Resolve ``requested`` against ``workspace`` and confine it there.

    Traversal tokens are rejected textually before the filesystem is touched.
    Existing targets are canonicalized (symlinks followed). New targets are
    resolved non-strictly, which canonicalizes the nearest existing ancestor
    and still follows dangling symlinks to wherever they point. Every failure
    is raised as ``AccessDenied``.
    """
    raw = str(requested)
    if has_traversal(raw):
        raise AccessDenied(raw, "path traversal")

    try:
        root = Path(workspace).resolve(strict=True)
        candidate = Path(raw)
        if not candidate.is_absolute():
            candidate = Path(workspace) / candidate

        if candidate.exists():
            resolved = candidate.resolve(strict=True)
            if not resolved.is_relative_to(root):
                raise AccessDenied(raw)
            return resolved

        resolved = candidate.resolve(strict=False)
        if not resolved.is_relative_to(root):
            raise AccessDenied(raw)
        return resolved
    except OSError as e:
        raise AccessDenied(raw, str(e)) from e


def truncate_output(text: str, max_bytes: int) -> str:
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    head = encoded[:max_bytes].decode("utf-8", errors="ignore")
    return f"{head}\n\n--- OUTPUT TRUNCATED ({max_bytes}B limit) ---"
