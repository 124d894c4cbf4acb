from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class AuditType(StrEnum):
    LLM_COMPLETION = "llm_completion"
    TOOL_EXECUTION = "tool_execution"
    SECURITY_VIOLATION = "security_violation"


@dataclass(frozen=True)
class AuditEvent:
    type: AuditType
    session_key: str
    payload: dict[str, Any]
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
