from pathlib import Path

import pytest

from burrow.skills import SkillRegistry
from burrow.tools.core import UNRESTRICTED, Restricted


def write_skill_md(base: Path, dirname: str, content: str) -> Path:
    skill_dir = base / dirname
    skill_dir.mkdir(parents=True)
    (skill_dir / "SKILL.md").write_text(content)
    return skill_dir


def write_manifest(base: Path, dirname: str, manifest: str, readme: str | None = None) -> Path:
    skill_dir = base / dirname
    skill_dir.mkdir(parents=True)
    (skill_dir / "skill.toml").write_text(manifest)
    if readme is not None:
        (skill_dir / "README.md").write_text(readme)
    return skill_dir


@pytest.fixture
def skills_dir(tmp_path: Path) -> Path:
    path = tmp_path / "skills"
    path.mkdir()
    return path


class TestLoading:
    def test_skill_md_frontmatter(self, skills_dir: Path):
        write_skill_md(
            skills_dir,
            "git",
            "---\nname: git-helper\ndescription: Git tricks\nalways: true\n"
            "permissions:\n  tools: [exec_cmd]\n  network_domains: [github.com]\n---\nUse git wisely.\n",
        )
        registry = SkillRegistry()
        registry.load([skills_dir])

        skill = registry.get("git-helper")
        assert skill is not None
        assert skill.description == "Git tricks"
        assert skill.always
        assert skill.content == "Use git wisely."
        assert skill.permissions.tools == ["exec_cmd"]
        assert skill.permissions.fs_scope == "workspace"
        assert skill.permissions.network_domains == ["github.com"]

    def test_skill_md_without_frontmatter_uses_dir_name(self, skills_dir: Path):
        write_skill_md(skills_dir, "plain", "Just text.")
        registry = SkillRegistry()
        registry.load([skills_dir])
        skill = registry.get("plain")
        assert skill.description == "No description provided"
        assert skill.content == "Just text."

    def test_manifest_with_readme(self, skills_dir: Path):
        write_manifest(
            skills_dir,
            "weather",
            '[metadata]\nname = "weather"\nversion = "1.0.0"\ndescription = "Forecasts"\nalways = true\n\n'
            '[permissions]\ntools = ["web_fetch"]\nmax_exec_timeout = 10\n',
            readme="Fetch the forecast.",
        )
        registry = SkillRegistry()
        registry.load([skills_dir])
        skill = registry.get("weather")
        assert skill.version == "1.0.0"
        assert skill.content == "Fetch the forecast."
        assert skill.permissions.tools == ["web_fetch"]
        assert skill.permissions.max_exec_timeout == 10

    def test_manifest_preferred_over_skill_md(self, skills_dir: Path):
        skill_dir = write_manifest(skills_dir, "dual", '[metadata]\nname = "from-manifest"\ndescription = "m"\n')
        (skill_dir / "SKILL.md").write_text("---\nname: from-md\ndescription: x\n---\nbody")
        registry = SkillRegistry()
        registry.load([skills_dir])
        assert registry.names == ["from-manifest"]

    def test_invalid_manifest_falls_back_to_skill_md(self, skills_dir: Path):
        skill_dir = write_manifest(skills_dir, "dual", "not = [valid toml")
        (skill_dir / "SKILL.md").write_text("---\nname: from-md\ndescription: x\n---\nbody")
        registry = SkillRegistry()
        registry.load([skills_dir])
        assert registry.names == ["from-md"]

    def test_missing_requirements_mark_unavailable(self, skills_dir: Path, monkeypatch):
        monkeypatch.delenv("BURROW_TEST_TOKEN", raising=False)
        write_skill_md(
            skills_dir,
            "needs",
            "---\nname: needs\ndescription: d\nrequires:\n  bins: [definitely-not-a-binary-xyz]\n"
            "  env: [BURROW_TEST_TOKEN]\n---\nbody",
        )
        registry = SkillRegistry()
        registry.load([skills_dir])
        skill = registry.get("needs")
        assert not skill.available
        assert skill.missing_requirements == ["CLI: definitely-not-a-binary-xyz", "ENV: BURROW_TEST_TOKEN"]

    def test_missing_directory_is_ignored(self, tmp_path: Path):
        registry = SkillRegistry()
        registry.load([tmp_path / "nope"])
        assert len(registry) == 0


class TestAllowedTools:
    def test_no_skills_is_unrestricted(self):
        assert SkillRegistry().allowed_tools() == UNRESTRICTED

    def test_skills_without_permissions_stay_unrestricted(self, skills_dir: Path):
        write_skill_md(skills_dir, "a", "---\nname: a\ndescription: d\n---\nbody")
        registry = SkillRegistry()
        registry.load([skills_dir])
        assert registry.allowed_tools() == UNRESTRICTED

    def test_union_of_declared_tools(self, skills_dir: Path):
        write_skill_md(skills_dir, "a", "---\nname: a\ndescription: d\npermissions:\n  tools: [read_file, exec_cmd]\n---\n")
        write_skill_md(skills_dir, "b", "---\nname: b\ndescription: d\npermissions:\n  tools: [exec_cmd, web_fetch]\n---\n")
        registry = SkillRegistry()
        registry.load([skills_dir])
        assert registry.allowed_tools() == Restricted(("read_file", "exec_cmd", "web_fetch"))

    def test_declared_but_empty_allows_nothing(self, skills_dir: Path):
        write_skill_md(skills_dir, "a", "---\nname: a\ndescription: d\npermissions:\n  tools: []\n---\n")
        registry = SkillRegistry()
        registry.load([skills_dir])
        permission = registry.allowed_tools()
        assert permission == Restricted()
        assert permission != UNRESTRICTED

    def test_unavailable_skill_grants_nothing(self, skills_dir: Path, monkeypatch):
        monkeypatch.delenv("BURROW_TEST_TOKEN", raising=False)
        write_skill_md(
            skills_dir,
            "a",
            "---\nname: a\ndescription: d\nrequires:\n  env: [BURROW_TEST_TOKEN]\npermissions:\n  tools: [exec_cmd]\n---\n",
        )
        registry = SkillRegistry()
        registry.load([skills_dir])
        assert registry.allowed_tools() == Restricted()
