from pathlib import Path

import pytest

from burrow.context import ContextBuilder
from burrow.skills import SkillRegistry
from burrow.tools.core import UNRESTRICTED, Restricted
from burrow.types import Role
from tests.conftest import make_message


def write_skill(base: Path, name: str, frontmatter: str, body: str = "Skill body") -> None:
    skill_dir = base / name
    skill_dir.mkdir(parents=True)
    (skill_dir / "SKILL.md").write_text(f"---\n{frontmatter}\n---\n{body}\n")


@pytest.fixture
def builder(workspace: Path) -> ContextBuilder:
    return ContextBuilder(workspace)


class TestBuild:
    def test_minimal_prompt(self, builder: ContextBuilder):
        messages = builder.build([], None, "hello")
        assert [m.role for m in messages] == [Role.SYSTEM, Role.USER]
        assert messages[-1].content == "hello"

    def test_summary_follows_system_prompt(self, builder: ContextBuilder):
        messages = builder.build([], "we talked about cats", "hi")
        assert messages[1].role == Role.SYSTEM
        assert messages[1].content == "Previous conversation summary: we talked about cats"

    def test_history_kept_in_order(self, builder: ContextBuilder):
        history = [make_message(f"m{i}") for i in range(3)]
        messages = builder.build(history, None, "now")
        assert messages[1:4] == history
        assert messages[-1].content == "now"

    def test_sliding_window(self, builder: ContextBuilder):
        history = [make_message(f"m{i}") for i in range(25)]
        messages = builder.build(history, None, "now")
        note = messages[1]
        assert note.role == Role.SYSTEM
        assert note.content.startswith("[5 older messages omitted")
        assert messages[2:-1] == history[5:]
        assert len(messages) == 1 + 1 + 20 + 1

    def test_exactly_at_window_has_no_note(self, builder: ContextBuilder):
        history = [make_message(f"m{i}") for i in range(20)]
        messages = builder.build(history, None, "now")
        assert len(messages) == 22
        assert "omitted" not in messages[1].content

    def test_current_message_tagged_with_session(self, builder: ContextBuilder):
        current = builder.build([], None, "hi", channel="http", session_key="http:1")[-1]
        assert current.channel == "http"
        assert current.session_key == "http:1"


class TestSystemPrompt:
    def test_includes_workspace_context_files(self, workspace: Path, builder: ContextBuilder):
        (workspace / "SOUL.md").write_text("Be kind.")
        (workspace / "AGENTS.md").write_text("Agent rules.")
        prompt = builder.system_prompt()
        assert "--- AGENTS.md ---\nAgent rules." in prompt
        assert "--- SOUL.md ---\nBe kind." in prompt
        assert prompt.index("AGENTS.md") < prompt.index("SOUL.md")

    def test_ignores_missing_files(self, builder: ContextBuilder):
        assert "---" not in builder.system_prompt()


class TestSkills:
    def test_always_on_available_skills_are_injected(self, workspace: Path):
        skills_dir = workspace / "skills"
        write_skill(skills_dir, "always", "name: always\ndescription: d\nalways: true", "Always body")
        write_skill(skills_dir, "optional", "name: optional\ndescription: d", "Optional body")
        write_skill(
            skills_dir,
            "broken",
            "name: broken\ndescription: d\nalways: true\nrequires:\n  env: [BURROW_TEST_MISSING_ENV_VAR]",
        )
        registry = SkillRegistry()
        registry.load([skills_dir])

        messages = ContextBuilder(workspace, registry).build([], None, "hi")
        skill_messages = [m.content for m in messages if m.content.startswith("Skill: ")]
        assert skill_messages == ["Skill: always\nAlways body"]

    def test_allowed_tools_defaults_to_unrestricted(self, builder: ContextBuilder):
        assert builder.allowed_tools() == UNRESTRICTED

    def test_shares_registry_loaded_after_construction(self, workspace: Path):
        skills_dir = workspace / "skills"
        write_skill(
            skills_dir,
            "reader",
            "name: reader\ndescription: d\nalways: true\npermissions:\n  tools: [read_file]",
            "Reader body",
        )
        registry = SkillRegistry()
        builder = ContextBuilder(workspace, registry)

        registry.load([skills_dir])

        assert builder.skills is registry
        assert builder.allowed_tools() == Restricted(("read_file",))
        contents = [m.content for m in builder.build([], None, "hi")]
        assert "Skill: reader\nReader body" in contents
