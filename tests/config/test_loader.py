"""Tests for config/loader.py module.

Covers:
- _load_yaml() function
- _deep_merge() function
- load_config() precedence: defaults < global < repo < env < kwargs
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import pytest

from diffinsight.config.loader import _deep_merge, _load_yaml, load_config
from diffinsight.core.errors import ConfigError, ErrorCode


@pytest.fixture(autouse=True)
def isolated_global_config(tmp_path: Path) -> Iterator[Path]:
    """Point the global config at a file the test controls."""
    global_path = tmp_path / "global" / "config.yaml"
    with patch("diffinsight.config.loader.GLOBAL_CONFIG_PATH", global_path):
        yield global_path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.upper().startswith("DIFFINSIGHT__"):
            monkeypatch.delenv(key)


def _write_repo_config(repo_root: Path, text: str) -> None:
    config_dir = repo_root / ".diffinsight"
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "config.yaml").write_text(text)


class TestLoadYaml:
    """Tests for _load_yaml function."""

    def test_returns_empty_dict_for_missing_file(self, tmp_path: Path) -> None:
        assert _load_yaml(tmp_path / "nonexistent.yaml") == {}

    def test_loads_valid_yaml(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "config.yaml"
        yaml_file.write_text("analysis:\n  complexity_threshold: 4\n")

        assert _load_yaml(yaml_file) == {"analysis": {"complexity_threshold": 4}}

    def test_returns_empty_for_yaml_null(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "null.yaml"
        yaml_file.write_text("null\n")

        assert _load_yaml(yaml_file) == {}

    def test_raises_config_error_for_invalid_yaml(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "invalid.yaml"
        yaml_file.write_text("logging:\n  level:\n    - invalid: [unclosed")

        with pytest.raises(ConfigError):
            _load_yaml(yaml_file)

    def test_raises_config_error_for_non_mapping(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "list.yaml"
        yaml_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigError) as exc_info:
            _load_yaml(yaml_file)
        assert exc_info.value.code == ErrorCode.CONFIG_PARSE_ERROR


class TestDeepMerge:
    """Tests for _deep_merge function."""

    def test_override_wins(self) -> None:
        assert _deep_merge({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_nested_dicts_merge(self) -> None:
        base = {"analysis": {"hook_prefix": "use", "high_complexity": 5}}
        override = {"analysis": {"high_complexity": 9}}

        assert _deep_merge(base, override) == {"analysis": {"hook_prefix": "use", "high_complexity": 9}}

    def test_does_not_mutate_base(self) -> None:
        base = {"a": {"b": 1}}
        _deep_merge(base, {"a": {"b": 2}})

        assert base == {"a": {"b": 1}}


class TestLoadConfig:
    """Tests for load_config precedence."""

    def test_defaults_without_any_source(self, tmp_path: Path) -> None:
        config = load_config(tmp_path)

        assert config.analysis.complexity_threshold == 2
        assert config.pipeline.max_concurrency == 8

    def test_repo_yaml_overrides_global(self, tmp_path: Path, isolated_global_config: Path) -> None:
        # Given
        isolated_global_config.parent.mkdir(parents=True)
        isolated_global_config.write_text(
            "analysis:\n  complexity_threshold: 3\n  high_complexity: 8\n"
        )
        _write_repo_config(tmp_path, "analysis:\n  complexity_threshold: 4\n")

        # When
        config = load_config(tmp_path)

        # Then
        assert config.analysis.complexity_threshold == 4
        assert config.analysis.high_complexity == 8

    def test_env_overrides_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        # Given
        _write_repo_config(tmp_path, "pipeline:\n  max_concurrency: 2\n")
        monkeypatch.setenv("DIFFINSIGHT__PIPELINE__MAX_CONCURRENCY", "6")

        # When
        config = load_config(tmp_path)

        # Then
        assert config.pipeline.max_concurrency == 6

    def test_kwargs_override_everything(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DIFFINSIGHT__LOGGING__LEVEL", "INFO")

        config = load_config(tmp_path, logging={"level": "DEBUG"})

        assert config.logging.level == "DEBUG"

    def test_explicit_config_path_replaces_repo_config(self, tmp_path: Path) -> None:
        _write_repo_config(tmp_path, "analysis:\n  hook_prefix: repo\n")
        explicit = tmp_path / "custom.yaml"
        explicit.write_text("analysis:\n  hook_prefix: custom\n")

        config = load_config(tmp_path, config_path=explicit)

        assert config.analysis.hook_prefix == "custom"

    def test_missing_explicit_config_path_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path, config_path=tmp_path / "missing.yaml")

        assert exc_info.value.code == ErrorCode.CONFIG_FILE_NOT_FOUND

    def test_invalid_value_raises_config_error_with_field(self, tmp_path: Path) -> None:
        _write_repo_config(tmp_path, "pipeline:\n  max_concurrency: 0\n")

        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path)

        assert exc_info.value.code == ErrorCode.CONFIG_INVALID_VALUE
        assert exc_info.value.details["field"] == "pipeline.max_concurrency"
