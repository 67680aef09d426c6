"""Application state and configuration."""

from __future__ import annotations

import os
import re
from enum import Enum
from pathlib import Path
from typing import Any

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from pretested.core.base import BaseConfig, BaseState
from pretested.core.log import Logger
from pretested.core.model import FailurePolicy, Phase, StrategyKind
from pretested.core.yaml_settings import YamlWithIncludesSettingsSource

# Usable in YAML values: {platformdirs.user_state_dir}, {os.getcwd}
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}


class JobConfig(BaseConfig):
    """One candidate → target branch pair."""

    name: str = Field(
        default="default",
        description="Job name; keys the persisted job record",
    )
    workdir: Path = Field(
        description="Disposable git working copy used for integration"
    )
    ready_branch: str = Field(
        default="ready",
        description="Branch receiving candidate commits",
    )
    target_branch: str = Field(
        default="master",
        description="Protected branch updated only by integration",
    )
    remote: str | None = Field(
        default="origin",
        description=(
            "Remote holding both branches; null integrates directly "
            "into the local repository"
        ),
    )
    strategy: StrategyKind = Field(
        default=StrategyKind.FAST_FORWARD,
        description="fast-forward, squash or accumulate",
    )
    unstable_is_success: bool = Field(
        default=False,
        description="Integrate builds reported as UNSTABLE",
    )
    failure_policy: FailurePolicy = Field(
        default=FailurePolicy.SKIP,
        description=(
            "skip: do not propose a failed range again until new "
            "commits arrive; retry: propose it on the next trigger"
        ),
    )
    delete_ready_branch: bool = Field(
        default=False,
        description="Delete the ready branch once fully integrated",
    )
    squash_message: str | None = Field(
        default=None,
        description="Header line for squash commit messages",
    )


class CheckConfig(BaseConfig):
    """Build and test commands run by the local host."""

    output_dir: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir("pretested")) / "checks"
        ),
        description="Directory for check log files",
    )
    commands: dict[str, str] = Field(
        default_factory=dict,
        description="Named check commands, run in order",
    )
    timeout: int = Field(
        default=3600,
        description="Timeout per check in seconds",
    )


class Config(BaseConfig):
    """Configuration loaded from YAML/env/CLI."""

    logger: Logger = Field(
        default=None,
        description="Logger configuration and runtime instance"
    )
    job: JobConfig = Field(
        description="Branches and integration policy"
    )
    check: CheckConfig = Field(
        default_factory=CheckConfig,
        description="Build and test commands"
    )
    log_level: str = Field(
        default="info",
        alias="log-level",
        description=(
            "Console log level: 'spew', 'trace', 'debug', 'info', "
            "'warn', 'error', 'fatal'"
        ),
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir("pretested")) / "logs"
        ),
        description="Root directory for log files",
    )
    state_dir: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir("pretested")) / "jobs"
        ),
        description="Directory holding persisted job records",
    )
    commands: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description=(
            "Command template overrides by category (git, ...)"
        ),
    )

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode='after')
    def _setup_logger(self) -> 'Config':
        """Configure the global logger from the loaded settings."""
        from pretested.core.log import setup_logger
        from pretested.core.yaml_settings import _cleanup_bootstrap_logger

        if self.logger is None:
            self.logger = Logger(level=self.log_level)

        setup_logger(
            log_root=self.log_root,
            job_name=self.job.name,
            console=self.logger.console,
            file=self.logger.file,
            logfire=self.logger.logfire,
            level=self.logger.level,
        )
        _cleanup_bootstrap_logger()

        return self

    def close(self):
        """Close the global logger, then the rest of the config."""
        from pretested.core.log import logger
        logger.close()

        super().close()


# Pushed heads kept in ControllerState.integrated
INTEGRATED_HISTORY = 20


class ControllerState(BaseState):
    """Integration controller runtime state."""

    phase: Phase = Field(
        default=Phase.IDLE,
        description="Current controller phase",
    )
    cycles: int = Field(
        default=0,
        description="Build cycles run by this process",
    )
    integrated: list[str] = Field(
        default_factory=list,
        description=(
            "Most recent target heads pushed by this process, "
            f"at most {INTEGRATED_HISTORY}"
        ),
    )
    last_error: str | None = Field(
        default=None,
        description="Most recent error, if any",
    )

    def record_integration(self, new_head: str) -> None:
        """Remember a pushed head, dropping the oldest beyond the cap."""
        self.integrated.append(new_head)
        del self.integrated[:-INTEGRATED_HISTORY]


class Runtime(BaseModel):
    """All runtime state, by component."""

    controller: ControllerState = Field(
        default_factory=ControllerState,
        description="Integration controller state",
    )


class State(BaseSettings):
    """Complete application state: configuration plus runtime.

    - config: loaded from YAML/env/CLI, not mutated
    - runtime: mutated while jobs run
    """

    config: Config = Field(
        description="Application configuration (from YAML/env/CLI)"
    )
    runtime: Runtime = Field(
        default_factory=Runtime,
        description="Runtime state",
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Additional YAML files to deep-merge, "
            "from --include or include: in YAML"
        ),
    )

    model_config = SettingsConfigDict(
        yaml_file="pretested.yaml",
        env_file=".env",
        env_prefix="PRETESTED_",
        env_nested_delimiter="__",
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore'
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Init args, then YAML, then .env, env vars and secrets."""
        return (
            init_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def substitute_templates(self) -> "State":
        """Replace {config.*} and {platformdirs.*} templates.

        Runtime placeholders such as {branch} do not resolve
        against the state and are left for their consumers.
        """
        self._substitute_recursive(self)
        return self

    def _substitute_recursive(self, obj: Any) -> None:
        if isinstance(obj, BaseModel):
            for field_name in obj.__class__.model_fields:
                value = getattr(obj, field_name)
                new_value = self._substitute_value(value)
                if new_value is not value:
                    setattr(obj, field_name, new_value)
        elif isinstance(obj, dict):
            for key in obj:
                obj[key] = self._substitute_value(obj[key])
        elif isinstance(obj, list):
            for i, item in enumerate(obj):
                obj[i] = self._substitute_value(item)

    def _substitute_value(self, value: Any) -> Any:
        if isinstance(value, Enum):
            return value
        if isinstance(value, str):
            return self._substitute_string(value)
        if isinstance(value, Path):
            return Path(self._substitute_string(str(value)))
        if isinstance(value, (BaseModel, dict, list)):
            self._substitute_recursive(value)
        return value

    def _substitute_string(self, value: str) -> str:
        """Resolve {dotted.path} against the state or TEMPLATE_NAMESPACE.

        Examples:
            "{config.job.workdir}/build" → "/srv/work/build"
            "{platformdirs.user_state_dir}" → "~/.local/state/pretested"
        """
        def replace_template(match):
            parts = match.group(1).split(".")

            if parts[0] in TEMPLATE_NAMESPACE:
                obj = TEMPLATE_NAMESPACE[parts[0]]
                parts = parts[1:]
            else:
                obj = self

            try:
                for part in parts:
                    obj = getattr(obj, part)
                if callable(obj):
                    obj = obj('pretested', appauthor=False)
                return str(obj)
            except (AttributeError, TypeError):
                return match.group(0)

        return re.sub(r'\{([a-z._]+)\}', replace_template, value)


__all__ = [
    "State",
    "Config",
    "JobConfig",
    "CheckConfig",
    "BaseConfig",
    "BaseState",
]
