from pathlib import Path

from burrow.constants import CONTEXT_FILES, MAX_HISTORY_MESSAGES
from burrow.context.prompts import (
    BASE_SYSTEM_PROMPT,
    CONTEXT_FILE_TEMPLATE,
    OMITTED_TEMPLATE,
    SKILL_TEMPLATE,
    SUMMARY_PREFIX,
)
from burrow.logging import get_logger
from burrow.skills import SkillRegistry
from burrow.tools.core.permissions import ToolPermission
from burrow.types import Message, Role

_logger = get_logger(__name__)

SYSTEM_CHANNEL = "system"
GLOBAL_KEY = "global"


def _system(content: str) -> Message:
    return Message.new(SYSTEM_CHANNEL, GLOBAL_KEY, Role.SYSTEM, content)


class ContextBuilder:
    """Assembles the prompt for one model call.

    Order: system prompt (with workspace context files), summary, always-on
    skills, the last ``max_history`` history messages, then the current input.
    """

    def __init__(
        self,
        workspace: Path,
        skills: SkillRegistry | None = None,
        max_history: int = MAX_HISTORY_MESSAGES,
    ):
        self.workspace = workspace
        self.skills = skills if skills is not None else SkillRegistry()
        self.max_history = max_history

    def system_prompt(self) -> str:
        prompt = BASE_SYSTEM_PROMPT + "\n"
        for name in CONTEXT_FILES:
            path = self.workspace / name
            if not path.is_file():
                continue
            try:
                content = path.read_text(encoding="utf-8")
            except OSError:
                _logger.warning("Failed to read context file %s", path)
                continue
            prompt += CONTEXT_FILE_TEMPLATE.format(name=name, content=content)
        return prompt

    def build(
        self,
        history: list[Message],
        summary: str | None,
        current: str,
        channel: str = "cli",
        session_key: str = "current",
    ) -> list[Message]:
        messages = [_system(self.system_prompt())]

        if summary:
            messages.append(_system(f"{SUMMARY_PREFIX}{summary}"))

        for skill in self.skills.always_on():
            messages.append(_system(SKILL_TEMPLATE.format(name=skill.name, content=skill.content)))

        window = history
        if len(history) > self.max_history:
            omitted = len(history) - self.max_history
            messages.append(_system(OMITTED_TEMPLATE.format(count=omitted)))
            window = history[omitted:]
        messages.extend(window)

        messages.append(Message.new(channel, session_key, Role.USER, current))
        return messages

    def allowed_tools(self) -> ToolPermission:
        return self.skills.allowed_tools()
