"""Configuration management for rails-runner."""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MUTATION_KEYWORDS = [
    "update",
    "delete",
    "destroy",
    "save",
    "create",
    "insert",
    "alter",
    "drop",
]

DEFAULT_NOISE_PREFIXES = [
    ">",
    "=> nil",
    "irb(main)",
    "Loading production environment",
    "Loading development environment",
    "Switch to inspect mode.",
]


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="RAILS_RUNNER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    working_dir: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("working_dir", "RAILS_WORKING_DIR", "RAILS_RUNNER_WORKING_DIR"),
        description="Rails application root the console runs in",
    )
    project_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("project_name", "PROJECT_NAME_AS_CONTEXT", "RAILS_RUNNER_PROJECT_NAME"),
        description="Human-readable project label used in tool descriptions",
    )

    # Console
    console_command: str = Field(default="bundle exec rails console", description="Console command line")
    rails_env: str = Field(default="production", description="RAILS_ENV passed to the console")
    command_timeout_seconds: float = Field(default=120.0, gt=0, description="Timeout for one console run")
    max_concurrent_commands: int = Field(default=4, ge=1, description="Cap on concurrent console processes")

    # Parsing and safety
    mutation_keywords: list[str] = Field(default_factory=lambda: list(DEFAULT_MUTATION_KEYWORDS))
    noise_prefixes: list[str] = Field(default_factory=lambda: list(DEFAULT_NOISE_PREFIXES))

    # Snippets
    snippets_file: Path | None = Field(default=None, description="YAML file with extra code snippets")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")

    def require_working_dir(self) -> Path:
        from .errors import ConfigurationError

        if self.working_dir is None:
            raise ConfigurationError("RAILS_WORKING_DIR is not configured")
        return self.working_dir.expanduser()

    def describe_project(self, text: str) -> str:
        """Append the project label to a description when one is configured."""
        if not self.project_name:
            return text
        return f"{text} - used for the project: {self.project_name}"


def get_settings(**overrides: object) -> Settings:
    """Get application settings.

    Args:
        **overrides: Explicit field values that win over the environment

    Returns:
        Settings instance
    """
    from .logging_utils import configure_logging

    settings = Settings(**overrides)  # type: ignore[arg-type]
    configure_logging(level=settings.log_level)
    return settings
