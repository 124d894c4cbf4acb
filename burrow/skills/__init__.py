from burrow.skills.models import Skill, SkillPermissions, SkillRequirements
from burrow.skills.registry import SkillLoadError, SkillRegistry

__all__ = ["Skill", "SkillLoadError", "SkillPermissions", "SkillRegistry", "SkillRequirements"]
