"""Configuration management for termx."""

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Paths
DEFAULT_CONFIG_PATH = Path("~/.termx/config.yaml").expanduser()
LOCAL_CONFIG_FILENAME = "termx.yaml"


class ModelConfig(BaseModel):
    """Chat endpoint configuration."""

    base_url: str = ""
    api_key: str = ""
    model: str = "glm-4.6"
    orackle_model: str = "glm-4.5-air"
    request_timeout: float = Field(default=60.0, gt=0)


class AgentConfig(BaseModel):
    """Agent loop limits."""

    max_steps: int = Field(default=12, gt=0)
    auto_approve: bool = False
    step_timeout: float = Field(default=45.0, gt=0)
    observation_clip: int = Field(default=4000, gt=0)


class ShellToolConfig(BaseModel):
    """Shell tool configuration."""

    timeout: int = Field(default=30, gt=0)
    denied: list[str] = ["rm", "dd", "mkfs", ":(", "sudo", "su"]


class ReadToolConfig(BaseModel):
    """read_file limits."""

    max_file_bytes: int = 10 * 1024 * 1024
    default_max_lines: int = 200


class SearchToolConfig(BaseModel):
    """search_in_files limits."""

    max_files: int = 100
    max_matches: int = 10_000


class ToolsConfig(BaseModel):
    """Tools configuration."""

    shell: ShellToolConfig = Field(default_factory=ShellToolConfig)
    read: ReadToolConfig = Field(default_factory=ReadToolConfig)
    search: SearchToolConfig = Field(default_factory=SearchToolConfig)


class UIConfig(BaseModel):
    """UI configuration."""

    streaming: bool = True
    colors: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "WARNING"
    format: Literal["console", "json"] = "console"


class Config(BaseSettings):
    """Main configuration for termx."""

    model: ModelConfig = Field(default_factory=ModelConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    ui: UIConfig = Field(default_factory=UIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="TERMX_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _fill_from_openai_env(self) -> "Config":
        """Fall back to the conventional OPENAI_* variables for blank endpoint settings."""
        if not self.model.base_url:
            self.model.base_url = os.environ.get("OPENAI_BASE_URL", "")
        if not self.model.api_key:
            self.model.api_key = os.environ.get("OPENAI_API_KEY", "")
        env_model = os.environ.get("OPENAI_MODEL", "").strip()
        if env_model and "model" not in self.model.model_fields_set:
            self.model.model = env_model
        return self

    @classmethod
    def resolve_default_config_path(cls) -> Path:
        """Resolve default config path with local-first precedence."""
        local_path = Path.cwd() / LOCAL_CONFIG_FILENAME
        if local_path.exists():
            return local_path
        return DEFAULT_CONFIG_PATH

    @classmethod
    def from_yaml(cls, path: Path | str | None = None) -> "Config":
        """Load configuration from YAML file."""
        config_path = Path(path).expanduser() if path else cls.resolve_default_config_path()

        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from the default YAML location."""
        return cls.from_yaml()

    def save(self, path: Path | str | None = None) -> None:
        """Save configuration to YAML file."""
        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(exclude_none=True)
        # Never write the credential back to disk.
        data["model"].pop("api_key", None)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


# Global config instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
