"""Configuration loading with pydantic-settings.

Supports loading configuration from multiple sources with precedence:
1. Direct kwargs (highest priority)
2. Environment variables (DMTEST__SECTION__KEY)
3. Workspace config (.dmtest/config.yaml)
4. Global config (~/.config/dmtest/config.yaml)
5. Built-in defaults (lowest priority)

The pipeline never loads configuration itself; it receives a resolved
DmTestConfig. Checks that need the filesystem (executables, the .dme) live in
the ``resolve_*`` helpers and run at the start of every pipeline run.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from dmtest.config.constants import CONFIG_DIR, CONFIG_FILE
from dmtest.config.models import (
    AppsConfig,
    DaemonConfig,
    DmTestConfig,
    LoggingConfig,
    ProjectConfig,
)
from dmtest.core.errors import ConfigError

GLOBAL_CONFIG_PATH = Path("~/.config/dmtest/config.yaml").expanduser()


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top level must be a mapping")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source that reads from pre-loaded YAML config."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._yaml_config


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Create a Settings class with instance-based YAML source."""

    class DmTestSettings(BaseSettings):
        """Root config. Env vars: DMTEST__APPS__DREAMMAKER, DMTEST__PROJECT__DME_NAME, etc."""

        model_config = SettingsConfigDict(
            env_prefix="DMTEST__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        apps: AppsConfig = AppsConfig()
        project: ProjectConfig = ProjectConfig()
        daemon: DaemonConfig = DaemonConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # Precedence (first wins): init kwargs > env vars > yaml files
            return (init_settings, env_settings, _YamlSource(settings_cls, yaml_config))

    return DmTestSettings


def load_config(workspace_root: Path | None = None, **kwargs: Any) -> DmTestConfig:
    """Load config: defaults < global yaml < workspace yaml < env vars < kwargs.

    Args:
        workspace_root: Workspace to load .dmtest/config.yaml from.
                        Defaults to current working directory.
        **kwargs: Override values (highest precedence).

    Returns:
        Fully resolved configuration object.

    Raises:
        ConfigError: On invalid YAML syntax or validation errors.
    """
    workspace_root = workspace_root or Path.cwd()

    yaml_config = _deep_merge(
        _load_yaml(GLOBAL_CONFIG_PATH),
        _load_yaml(workspace_root / CONFIG_DIR / CONFIG_FILE),
    )

    settings_cls = _make_settings_class(yaml_config)
    try:
        settings = settings_cls(**kwargs)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e
    return DmTestConfig.model_validate(settings.model_dump())


def resolve_executable(path: str | None, field: str, what: str) -> Path:
    """Return the configured executable, failing when unset or missing."""
    if not path:
        raise ConfigError.missing_required(field, f"{what} path")
    resolved = Path(path).expanduser()
    if not resolved.exists():
        raise ConfigError.file_not_found(str(resolved), what)
    return resolved


def resolve_dme(workspace_root: Path, dme_name: str) -> Path:
    """Return the project's build descriptor, failing when it is not in the workspace."""
    if not dme_name:
        raise ConfigError.missing_required("project.dme_name", ".dme name")
    dme_path = workspace_root / dme_name
    if not dme_path.is_file():
        raise ConfigError.descriptor_not_found(dme_name, str(dme_path))
    return dme_path
