"""Resolve a ``DiffInsightConfig`` from files, environment and overrides.

Layers, later ones winning:

* built-in model defaults
* ``~/.config/diffinsight/config.yaml``
* ``<repo>/.diffinsight/config.yaml``, or the file given by ``config_path``
* ``DIFFINSIGHT__SECTION__KEY`` environment variables
* keyword overrides passed to ``load_config``

The two YAML files are deep-merged into one file layer before
pydantic-settings sees them; environment and keyword layers are merged by
pydantic-settings itself.
"""

from contextvars import ContextVar
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import (
    BaseSettings,
    InitSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from diffinsight.config.models import (
    AnalysisConfig,
    DiffInsightConfig,
    LoggingConfig,
    PipelineConfig,
)
from diffinsight.core.errors import ConfigError

GLOBAL_CONFIG_PATH = Path("~/.config/diffinsight/config.yaml").expanduser()
REPO_CONFIG_NAME = Path(".diffinsight") / "config.yaml"

# Merged YAML for the load_config call in progress on this thread or task.
_file_layer: ContextVar[dict[str, Any]] = ContextVar("diffinsight_file_layer", default={})


def _load_yaml(path: Path) -> dict[str, Any]:
    """Mapping stored in ``path``; a missing or empty file is an empty mapping."""
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top-level YAML value must be a mapping")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        merged[key] = (
            _deep_merge(current, value) if isinstance(current, dict) and isinstance(value, dict) else value
        )
    return merged


class _LayeredSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DIFFINSIGHT__",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    logging: LoggingConfig = LoggingConfig()
    analysis: AnalysisConfig = AnalysisConfig()
    pipeline: PipelineConfig = PipelineConfig()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        files = InitSettingsSource(settings_cls, init_kwargs=_file_layer.get())
        return (init_settings, env_settings, files)


def _file_config(repo_root: Path, config_path: Path | None) -> dict[str, Any]:
    if config_path is None:
        local = _load_yaml(repo_root / REPO_CONFIG_NAME)
    elif config_path.is_file():
        local = _load_yaml(config_path)
    else:
        raise ConfigError.file_not_found(str(config_path))
    return _deep_merge(_load_yaml(GLOBAL_CONFIG_PATH), local)


def _as_config_error(exc: ValidationError) -> ConfigError:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first["loc"])
    return ConfigError.invalid_value(field, first.get("input"), first["msg"])


def load_config(
    repo_root: Path | None = None,
    *,
    config_path: Path | None = None,
    **overrides: Any,
) -> DiffInsightConfig:
    """Build the effective configuration for one run.

    Args:
        repo_root: Directory holding ``.diffinsight/config.yaml``; the
            current directory when omitted.
        config_path: YAML file to use in place of the repo file. It must
            exist.
        **overrides: Section values that beat every other layer, for
            example ``pipeline={"max_concurrency": 2}``.

    Raises:
        ConfigError: CONFIG_FILE_NOT_FOUND for a missing ``config_path``,
            CONFIG_PARSE_ERROR for unreadable YAML, CONFIG_INVALID_VALUE
            naming the first offending dotted field otherwise.
    """
    token = _file_layer.set(_file_config(repo_root or Path.cwd(), config_path))
    try:
        settings = _LayeredSettings(**overrides)
    except ValidationError as e:
        raise _as_config_error(e) from e
    finally:
        _file_layer.reset(token)
    return DiffInsightConfig.model_validate(settings.model_dump())
