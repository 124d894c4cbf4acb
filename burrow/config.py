import json
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from burrow.constants import BUS_CAPACITY, EXEC_TIMEOUT, MAX_OUTPUT_BYTES, PROVIDER_BACKOFF_MS, PROVIDER_MAX_RETRIES
from burrow.llm.types import GenerationOptions
from burrow.logging import get_logger
from burrow.tools.sandbox import SandboxConfig

BURROW_DIR = Path.home() / ".burrow"
SETTINGS_PATH = BURROW_DIR / "settings.json"

_logger = get_logger(__name__)


def load_user_settings() -> dict:
    if not SETTINGS_PATH.exists():
        return {}
    try:
        return json.loads(SETTINGS_PATH.read_text())
    except (json.JSONDecodeError, OSError):
        _logger.warning("Failed to load user settings", exc_info=True)
        return {}


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BURROW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
        populate_by_name=True,
    )

    # API keys, read from standard env vars via aliases
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openrouter_api_key: str | None = Field(default=None, alias="OPENROUTER_API_KEY")
    anthropic_api_key: str | None = Field(default=None, alias="ANTHROPIC_API_KEY")
    gemini_api_key: str | None = Field(default=None, alias="GEMINI_API_KEY")
    openai_api_base: str | None = None
    openrouter_api_base: str = "https://openrouter.ai/api/v1"

    # Generation defaults
    model: str = "gpt-4o-mini"
    max_tokens: int = 4096
    temperature: float = 0.7

    # Provider reliability
    provider_max_retries: int = PROVIDER_MAX_RETRIES
    provider_backoff_ms: int = PROVIDER_BACKOFF_MS

    # Sandbox
    workspace: Path = BURROW_DIR / "workspace"
    exec_timeout: int = EXEC_TIMEOUT
    max_output_bytes: int = MAX_OUTPUT_BYTES
    exec_enabled: bool = True
    network_allowlist: Annotated[list[str], NoDecode] = Field(default_factory=list)

    # Remote session mirror (optional)
    sessions_remote_url: str | None = None
    sessions_remote_token: str | None = None

    # Runtime
    data_dir: Path = BURROW_DIR
    bus_capacity: int = BUS_CAPACITY
    consumers: int = 1
    gateway_host: str = "127.0.0.1"
    gateway_port: int = 8080
    log_level: str = "INFO"

    @field_validator("temperature")
    @classmethod
    def _validate_temperature(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError(f"temperature must be 0.0-2.0, got {v}")
        return v

    @field_validator("max_tokens", "exec_timeout", "max_output_bytes", "bus_capacity", "consumers")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"must be positive, got {v}")
        return v

    @field_validator("provider_max_retries", "provider_backoff_ms")
    @classmethod
    def _validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"must not be negative, got {v}")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        level = str(v).upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("network_allowlist", mode="before")
    @classmethod
    def _split_allowlist(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, str):
            return [d.strip() for d in v.split(",") if d.strip()]
        return v

    @property
    def sandbox(self) -> SandboxConfig:
        return SandboxConfig(
            workspace_path=self.workspace,
            exec_timeout=self.exec_timeout,
            max_output_bytes=self.max_output_bytes,
            exec_enabled=self.exec_enabled,
            network_allowlist=tuple(self.network_allowlist),
        )

    @property
    def generation_options(self) -> GenerationOptions:
        return GenerationOptions(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )

    @property
    def sessions_dir(self) -> Path:
        return self.workspace / "sessions"

    @property
    def skills_dir(self) -> Path:
        return self.workspace / "skills"

    @property
    def audit_db_path(self) -> Path:
        return self.data_dir / "audit.db"


PERSIST_KEYS = frozenset(
    {
        "model",
        "max_tokens",
        "temperature",
        "workspace",
        "exec_enabled",
        "exec_timeout",
        "network_allowlist",
        "sessions_remote_url",
    }
)


def get_config() -> Config:
    settings = load_user_settings()

    # Build config: init args (settings.json) > env vars > defaults
    overrides = {k: settings[k] for k in PERSIST_KEYS if k in settings}
    return Config(**overrides)
