"""Settings for one stackctl invocation.

Sources, strongest first:

* CLI flags, passed to :meth:`StackSettings.from_cli`
* ``STACKCTL_*`` environment variables (``__`` separates sections, so
  ``STACKCTL_APPLY__PARALLELISM=4`` sets ``[apply] parallelism``)
* ``stackctl.toml``, found by :func:`stackctl.config.discovery.find_config`
* defaults on the section models
"""

from __future__ import annotations

import tomllib
from contextvars import ContextVar
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from stackctl.config.discovery import find_config
from stackctl.config.models import (
    ApplyConfig,
    DeploymentConfig,
    PluginsConfig,
    ProvidersConfig,
    RetryConfig,
    StateConfig,
    WebAppConfig,
)

# The TOML file for the settings object being built right now.
_toml_file: ContextVar[Path | None] = ContextVar("stackctl_toml_file", default=None)


class StackSettings(BaseSettings):
    """Everything a command needs to know about flags and configuration.

    ``project_root`` is the directory of the config file (the working
    directory when there is none); relative paths in the config resolve
    against it.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        env_prefix="STACKCTL_",
        env_nested_delimiter="__",
    )

    project_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    deployment_override: str | None = None

    deployment: DeploymentConfig = Field(default_factory=DeploymentConfig)
    state: StateConfig = Field(default_factory=StateConfig)
    apply: ApplyConfig = Field(default_factory=ApplyConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
    webapp: WebAppConfig = Field(default_factory=WebAppConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: tuple[PydanticBaseSettingsSource, ...] = (init_settings, env_settings)
        toml_file = _toml_file.get()
        if toml_file is not None:
            sources += (TomlConfigSettingsSource(settings_cls, toml_file=toml_file),)
        return sources

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        project_root: Path | None = None,
        **cli_flags: Any,
    ) -> StackSettings:
        """Build settings for a command line.

        An explicit *config_path* that does not exist means "no config
        file"; otherwise ``stackctl.toml`` is looked up from *project_root*.
        Flags left as None fall through to the weaker sources.
        """
        if config_path:
            toml_path = Path(config_path) if Path(config_path).is_file() else None
        else:
            toml_path = find_config(project_root)
        if project_root is None:
            project_root = toml_path.parent if toml_path else Path.cwd()

        token = _toml_file.set(toml_path)
        try:
            return cls(
                project_root=project_root,
                config_path=toml_path,
                **{k: v for k, v in cli_flags.items() if v is not None},
            )
        except tomllib.TOMLDecodeError as exc:
            raise click.ClickException(f"Invalid TOML in {toml_path}: {exc}") from exc
        finally:
            _toml_file.reset(token)

    @property
    def deployment_id(self) -> str:
        return self.deployment_override or self.deployment.id

    def resolve_path(self, value: str) -> Path:
        """*value* as an absolute path, relative ones taken from the project root."""
        path = Path(value).expanduser()
        return path if path.is_absolute() else self.project_root / path

    @property
    def state_path(self) -> Path:
        return self.resolve_path(self.state.path)

    @property
    def simulated_cloud_path(self) -> Path:
        return self.resolve_path(self.providers.simulated_path)

    @property
    def plugin_dir(self) -> Path:
        return self.resolve_path(self.plugins.local_dir)
