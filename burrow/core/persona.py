import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from burrow.constants import NAME_MAX_CHARS

PERSONA_BLOCK_START = "<!-- burrow:persona:start -->"
PERSONA_BLOCK_END = "<!-- burrow:persona:end -->"

DEFAULT_ASSISTANT_NAME = "Burrow"
DEFAULT_USER_NAME = "friend"
DEFAULT_TONE = "friendly, concise"

ASSISTANT_PREFIX = "- Refer to yourself as"
USER_PREFIX = "- Address the user as"
TONE_PREFIX = "- Maintain tone"

USER_MARKERS = (
    "hãy gọi tôi là",
    "hay goi toi la",
    "goi toi la",
    "call me",
    "you can call me",
    "address me as",
)
USER_STOPS = (
    " và tên của bạn là",
    " va ten cua ban la",
    " and your name is",
    " and call yourself",
    " and your name should be",
    ".",
    ",",
    ";",
    "!",
    "?",
)

ASSISTANT_MARKERS = (
    "tên của bạn là",
    "ten cua ban la",
    "your name is",
    "call yourself",
    "you should call yourself",
    "hãy gọi bạn là",
    "hay goi ban la",
)
ASSISTANT_STOPS = (".", ",", ";", "!", "?", " nhé", " nhe", " please")


@dataclass(frozen=True)
class PersonaPreference:
    assistant_name: str | None = None
    user_name: str | None = None


def sanitize_name(raw: str) -> str | None:
    cleaned = raw.strip().strip("\"'`").strip(":-=").strip()
    compact = " ".join(cleaned.split())
    if not compact or len(compact) > NAME_MAX_CHARS:
        return None
    return compact


def _extract_value(original: str, lower: str, markers: tuple[str, ...], stops: tuple[str, ...]) -> str | None:
    for marker in markers:
        start = lower.find(marker)
        if start < 0:
            continue
        value_start = start + len(marker)
        if value_start >= len(original):
            continue
        tail = lower[value_start:]
        end = len(lower)
        for stop in stops:
            idx = tail.find(stop)
            if idx >= 0:
                end = min(end, value_start + idx)
        if end <= value_start:
            continue
        if cleaned := sanitize_name(original[value_start:end]):
            return cleaned
    return None


def extract_persona_preference(text: str) -> PersonaPreference | None:
    """Find "call me X" / "your name is Y" style requests (English and Vietnamese)."""
    normalized = " ".join(text.split())
    if not normalized:
        return None
    lower = normalized.lower()
    if len(lower) != len(normalized):
        normalized = lower

    user_name = _extract_value(normalized, lower, USER_MARKERS, USER_STOPS)
    assistant_name = _extract_value(normalized, lower, ASSISTANT_MARKERS, ASSISTANT_STOPS)
    if user_name is None and assistant_name is None:
        return None
    return PersonaPreference(assistant_name=assistant_name, user_name=user_name)


def _existing_quoted_value(content: str, prefix: str) -> str | None:
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped.startswith(prefix):
            continue
        parts = stripped.split('"')
        if len(parts) >= 3 and parts[1].strip():
            return parts[1].strip()
    return None


def render_persona_block(assistant_name: str, user_name: str, tone: str) -> str:
    return (
        "## Preferred Addressing\n"
        f'{ASSISTANT_PREFIX} "{assistant_name}".\n'
        f'{USER_PREFIX} "{user_name}".\n'
        f'{TONE_PREFIX}: "{tone}".\n'
        "- Apply this from the first reply unless the user asks to change."
    )


def replace_persona_block(existing: str, block: str) -> str:
    wrapped = f"{PERSONA_BLOCK_START}\n{block}\n{PERSONA_BLOCK_END}"
    start = existing.find(PERSONA_BLOCK_START)
    end = existing.find(PERSONA_BLOCK_END)
    if start >= 0 and end > start:
        prefix = existing[:start].rstrip()
        suffix = existing[end + len(PERSONA_BLOCK_END) :].lstrip()
        return "\n\n".join(part for part in (prefix, wrapped, suffix) if part)

    base = existing.rstrip()
    return f"{base}\n\n{wrapped}" if base else wrapped


class ProfileUpdater(ABC):
    @abstractmethod
    async def observe(self, text: str) -> None: ...


class PersonaProfileUpdater(ProfileUpdater):
    """Keeps the preferred-addressing block in ``USER.md`` up to date."""

    def __init__(self, workspace: Path):
        self.workspace = workspace

    @property
    def profile_path(self) -> Path:
        return self.workspace / "USER.md"

    async def observe(self, text: str) -> None:
        preference = extract_persona_preference(text)
        if preference is None:
            return
        await asyncio.to_thread(self._upsert, preference)

    def _upsert(self, preference: PersonaPreference) -> None:
        self.workspace.mkdir(parents=True, exist_ok=True)
        path = self.profile_path
        existing = path.read_text(encoding="utf-8") if path.exists() else ""

        assistant_name = (
            preference.assistant_name or _existing_quoted_value(existing, ASSISTANT_PREFIX) or DEFAULT_ASSISTANT_NAME
        )
        user_name = preference.user_name or _existing_quoted_value(existing, USER_PREFIX) or DEFAULT_USER_NAME
        tone = _existing_quoted_value(existing, TONE_PREFIX) or DEFAULT_TONE

        merged = replace_persona_block(existing, render_persona_block(assistant_name, user_name, tone))
        path.write_text(merged.rstrip() + "\n", encoding="utf-8")
