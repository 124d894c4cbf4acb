import os
import shutil
from pathlib import Path

from pydantic import BaseModel, Field


class SkillRequirements(BaseModel):
    bins: list[str] = Field(default_factory=list)
    env: list[str] = Field(default_factory=list)

    def missing(self) -> list[str]:
        missing = [f"CLI: {b}" for b in self.bins if shutil.which(b) is None]
        missing += [f"ENV: {e}" for e in self.env if e not in os.environ]
        return missing


class SkillPermissions(BaseModel):
    tools: list[str] = Field(default_factory=list)
    fs_scope: str = "workspace"
    network_domains: list[str] = Field(default_factory=list)
    max_exec_timeout: int | None = None


class Skill(BaseModel):
    name: str
    description: str
    content: str
    path: Path
    always: bool = False
    version: str | None = None
    requires: SkillRequirements | None = None
    permissions: SkillPermissions | None = None
    missing_requirements: list[str] = Field(default_factory=list)

    @property
    def available(self) -> bool:
        return not self.missing_requirements
