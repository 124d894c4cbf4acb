import re
import tomllib
from pathlib import Path

import yaml
from pydantic import ValidationError

from burrow.logging import get_logger
from burrow.skills.models import Skill, SkillPermissions, SkillRequirements
from burrow.tools.core.permissions import UNRESTRICTED, Restricted, ToolPermission

_logger = get_logger(__name__)

_FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---\s*\n?", re.DOTALL)

MANIFEST_NAMES = ("skill.toml", "SKILL.toml")


class SkillLoadError(Exception):
    pass


def _parse_skill_md(content: str) -> tuple[dict, str]:
    m = _FRONTMATTER_RE.match(content)
    if not m:
        return {}, content
    try:
        frontmatter = yaml.safe_load(m.group(1))
    except yaml.YAMLError as e:
        raise SkillLoadError(f"Invalid frontmatter: {e}") from e
    if frontmatter is None:
        frontmatter = {}
    if not isinstance(frontmatter, dict):
        raise SkillLoadError("Frontmatter must be a mapping")
    return frontmatter, content[m.end() :]


def _build_skill(
    path: Path,
    name: str,
    description: str,
    content: str,
    always: bool,
    requires: dict | None,
    permissions: dict | None,
    version: str | None = None,
) -> Skill:
    try:
        reqs = SkillRequirements.model_validate(requires) if requires is not None else None
        perms = SkillPermissions.model_validate(permissions) if permissions is not None else None
    except ValidationError as e:
        raise SkillLoadError(str(e)) from e
    return Skill(
        name=name,
        description=description,
        content=content.strip(),
        path=path,
        always=bool(always),
        version=version,
        requires=reqs,
        permissions=perms,
        missing_requirements=reqs.missing() if reqs else [],
    )


def load_skill_md(path: Path) -> Skill:
    frontmatter, body = _parse_skill_md(path.read_text(encoding="utf-8"))
    return _build_skill(
        path=path,
        name=frontmatter.get("name") or path.parent.name,
        description=frontmatter.get("description") or "No description provided",
        content=body,
        always=frontmatter.get("always", False),
        requires=frontmatter.get("requires"),
        permissions=frontmatter.get("permissions"),
    )


def load_skill_manifest(path: Path) -> Skill:
    try:
        manifest = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise SkillLoadError(f"Invalid manifest: {e}") from e

    metadata = manifest.get("metadata")
    if not isinstance(metadata, dict) or not metadata.get("name"):
        raise SkillLoadError("Manifest is missing [metadata] name")

    description = metadata.get("description", "")
    readme = path.parent / "README.md"
    body = readme.read_text(encoding="utf-8") if readme.exists() else description

    return _build_skill(
        path=path,
        name=metadata["name"],
        description=description,
        content=body,
        always=metadata.get("always", False),
        requires=manifest.get("requirements"),
        permissions=manifest.get("permissions"),
        version=metadata.get("version"),
    )


class SkillRegistry:
    def __init__(self):
        self._skills: dict[str, Skill] = {}

    def load(self, dirs: list[Path]) -> None:
        for path in dirs:
            self._scan_dir(path)
        if self._skills:
            _logger.info("Loaded %d skill(s): %s", len(self._skills), ", ".join(self._skills))

    def _load_one(self, skill_dir: Path) -> Skill | None:
        for manifest_name in MANIFEST_NAMES:
            manifest = skill_dir / manifest_name
            if manifest.exists():
                try:
                    return load_skill_manifest(manifest)
                except (OSError, SkillLoadError) as e:
                    _logger.warning("Failed to load skill manifest %s: %s", manifest, e)
                break

        skill_md = skill_dir / "SKILL.md"
        if skill_md.exists():
            try:
                return load_skill_md(skill_md)
            except (OSError, SkillLoadError) as e:
                _logger.warning("Failed to load %s: %s", skill_md, e)
        return None

    def _scan_dir(self, base: Path) -> None:
        if not base.exists():
            return
        for skill_dir in sorted(base.iterdir()):
            if not skill_dir.is_dir():
                continue
            skill = self._load_one(skill_dir)
            if skill is None or skill.name in self._skills:
                continue
            if not skill.available:
                _logger.info("Skill '%s' unavailable: %s", skill.name, ", ".join(skill.missing_requirements))
            self._skills[skill.name] = skill

    def reload(self, dirs: list[Path]) -> None:
        self._skills.clear()
        self.load(dirs)

    def add(self, skill: Skill) -> None:
        self._skills[skill.name] = skill

    def get(self, name: str) -> Skill | None:
        return self._skills.get(name)

    def always_on(self) -> list[Skill]:
        return [s for s in self._skills.values() if s.always and s.available]

    def allowed_tools(self) -> ToolPermission:
        """Tool permission for the current turn.

        Unrestricted while no loaded skill declares a permissions block.
        Once any does, only tools named by available skills with permissions
        are allowed, which may be none at all.
        """
        declaring = [s for s in self._skills.values() if s.permissions is not None]
        if not declaring:
            return UNRESTRICTED
        return Restricted.of(tool for s in declaring if s.available for tool in s.permissions.tools)

    @property
    def skills(self) -> list[Skill]:
        return list(self._skills.values())

    @property
    def names(self) -> list[str]:
        return list(self._skills)

    def __len__(self) -> int:
        return len(self._skills)
