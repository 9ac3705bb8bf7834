"""Unit tests for repository build settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from stage_planner.errors import MalformedInputError
from stage_planner.repository.settings import RepositorySettings, load_repository_settings

if TYPE_CHECKING:
    from pathlib import Path


def test_missing_optional_settings_file_yields_defaults(tmp_path: Path) -> None:
    settings = load_repository_settings(tmp_path / "build-settings.json")

    assert settings == RepositorySettings()


def test_missing_required_settings_file_is_malformed_input(tmp_path: Path) -> None:
    with pytest.raises(MalformedInputError, match="not found"):
        load_repository_settings(tmp_path / "build-settings.json", required=True)


def test_settings_fields_are_parsed(tmp_path: Path) -> None:
    path = tmp_path / "build-settings.json"
    path.write_text(
        '{"alwaysBuildAllProjects": false, "projects": ["api"], '
        '"buildAllPatterns": ["*.props", ".github/**"]}',
        encoding="utf-8",
    )

    settings = load_repository_settings(path)

    assert settings.always_build_all_projects is False
    assert settings.projects == ("api",)
    assert settings.build_all_patterns == ("*.props", ".github/**")


def test_null_lists_are_treated_as_empty() -> None:
    settings = RepositorySettings.from_mapping({"projects": None, "buildAllPatterns": None})

    assert settings.projects == ()
    assert settings.build_all_patterns == ()


@pytest.mark.parametrize(
    ("payload", "fragment"),
    [
        ({"alwaysBuildAllProjects": "yes"}, "alwaysBuildAllProjects"),
        ({"projects": "api"}, "settings:projects"),
        ({"buildAllPatterns": [""]}, r"buildAllPatterns\[0\]"),
        ({"alwaysBuildAll": True}, "unknown field"),
    ],
)
def test_malformed_settings_are_rejected(payload: dict[str, object], fragment: str) -> None:
    with pytest.raises(MalformedInputError, match=fragment):
        RepositorySettings.from_mapping(payload)
