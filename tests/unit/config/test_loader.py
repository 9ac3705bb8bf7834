"""
stage-planner — unit tests for config loader

File: tests/unit/config/test_loader.py
Last updated: 2026-10-17

Purpose
- Validate deterministic config loading from defaults, TOML, env overrides, and CLI overrides.

What this test file should cover
- Precedence: CLI > env > file > defaults.
- Deterministic env var path mapping and type coercion.
- Path normalization relative to the config file.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from stage_planner.config.loader import (
    ConfigLoadError,
    dump_effective_config,
    load_config,
)
from stage_planner.config.schema import ConfigValidationError


def _write_config(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_loader_precedence_default_file_env_cli(tmp_path: Path) -> None:
    config_path = tmp_path / "planner.toml"
    _write_config(
        config_path,
        """
[pipeline]
capacity = 7
""".strip(),
    )

    default_loaded = load_config(base_dir=tmp_path / "elsewhere", environ={})
    file_loaded = load_config(config_path, environ={})
    env_loaded = load_config(config_path, environ={"PLANNER_PIPELINE_CAPACITY": "8"})
    cli_loaded = load_config(
        config_path,
        environ={"PLANNER_PIPELINE_CAPACITY": "8"},
        cli_overrides={"pipeline.capacity": 9},
    )

    assert default_loaded["pipeline"]["capacity"] == 5
    assert file_loaded["pipeline"]["capacity"] == 7
    assert env_loaded["pipeline"]["capacity"] == 8
    assert cli_loaded["pipeline"]["capacity"] == 9


def test_default_config_file_is_found_in_base_dir(tmp_path: Path) -> None:
    _write_config(tmp_path / "planner.toml", "[pipeline]\ninclude_upstream_dependencies = true\n")

    loaded = load_config(base_dir=tmp_path, environ={})

    assert loaded["pipeline"]["include_upstream_dependencies"] is True


def test_none_cli_overrides_are_ignored(tmp_path: Path) -> None:
    loaded = load_config(
        base_dir=tmp_path,
        environ={"PLANNER_PIPELINE_CAPACITY": "3"},
        cli_overrides={"pipeline.capacity": None},
    )

    assert loaded["pipeline"]["capacity"] == 3


def test_env_coercion_for_bool_and_list_values(tmp_path: Path) -> None:
    loaded = load_config(
        base_dir=tmp_path,
        environ={
            "PLANNER_PIPELINE_INCLUDE_UPSTREAM_DEPENDENCIES": "yes",
            "PLANNER_DISCOVERY_MARKER_FILES": "build.yaml, project.json ,",
            "PLANNER_OBSERVABILITY_LOG_LEVEL": "debug",
        },
    )

    assert loaded["pipeline"]["include_upstream_dependencies"] is True
    assert loaded["discovery"]["marker_files"] == ["build.yaml", "project.json"]
    assert loaded["observability"]["log_level"] == "DEBUG"


@pytest.mark.parametrize(
    ("name", "value", "fragment"),
    [
        ("PLANNER_PIPELINE_CAPACITY", "many", "must be an integer"),
        ("PLANNER_OBSERVABILITY_LOG_TO_STDERR", "maybe", "must be a boolean"),
    ],
)
def test_env_coercion_failures_raise_config_load_error(
    tmp_path: Path, name: str, value: str, fragment: str
) -> None:
    with pytest.raises(ConfigLoadError, match=fragment):
        load_config(base_dir=tmp_path, environ={name: value})


def test_missing_explicit_config_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="config file not found"):
        load_config(tmp_path / "missing.toml", environ={})


def test_invalid_toml_raises(tmp_path: Path) -> None:
    config_path = tmp_path / "planner.toml"
    _write_config(config_path, "[pipeline\ncapacity = 1\n")

    with pytest.raises(ConfigLoadError, match="invalid TOML"):
        load_config(config_path, environ={})


def test_invalid_values_raise_structured_validation_error(tmp_path: Path) -> None:
    config_path = tmp_path / "planner.toml"
    _write_config(config_path, "[pipeline]\ncapacity = 0\ncapcity = 2\n")

    with pytest.raises(ConfigValidationError) as error:
        load_config(config_path, environ={})

    paths = {issue.path for issue in error.value.issues}
    assert paths == {"pipeline.capacity", "pipeline.capcity"}


def test_log_dir_is_normalized_relative_to_config_file(tmp_path: Path) -> None:
    config_path = tmp_path / "ci" / "planner.toml"
    _write_config(config_path, '[observability]\nlog_dir = "../logs"\n')

    loaded = load_config(config_path, environ={})

    assert loaded["observability"]["log_dir"] == (tmp_path / "logs").resolve().as_posix()


def test_effective_config_dump_is_deterministic(tmp_path: Path) -> None:
    first = dump_effective_config(load_config(base_dir=tmp_path, environ={}))
    second = dump_effective_config(load_config(base_dir=tmp_path, environ={}))

    assert first == second
    assert json.loads(first)["pipeline"] == {
        "capacity": 5,
        "include_upstream_dependencies": False,
    }
