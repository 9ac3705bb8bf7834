"""Unit tests for manifest and settings document loading."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from stage_planner.errors import MalformedInputError
from stage_planner.repository.documents import (
    as_string_list,
    load_document,
    reject_unknown_keys,
)
from stage_planner.repository.manifests import ProjectManifest, load_manifest

if TYPE_CHECKING:
    from pathlib import Path


def test_json_and_yaml_documents_load_to_mappings(tmp_path: Path) -> None:
    json_path = tmp_path / "project.json"
    json_path.write_text('{"name": "api", "dependencies": ["core"]}', encoding="utf-8")
    yaml_path = tmp_path / "project.yaml"
    yaml_path.write_text("name: api\ndependencies:\n  - core\n", encoding="utf-8")

    assert load_document(json_path) == {"name": "api", "dependencies": ["core"]}
    assert load_document(yaml_path) == {"name": "api", "dependencies": ["core"]}


def test_empty_documents_and_bom_are_tolerated(tmp_path: Path) -> None:
    empty_yaml = tmp_path / "project.yml"
    empty_yaml.write_text("# nothing here\n", encoding="utf-8")
    bom_json = tmp_path / "project.json"
    bom_json.write_bytes(b"\xef\xbb\xbf{}")

    assert load_document(empty_yaml) == {}
    assert load_document(bom_json) == {}


@pytest.mark.parametrize(
    ("filename", "text", "fragment"),
    [
        ("project.json", "{not json", "invalid JSON"),
        ("project.yaml", "name: [unterminated", "invalid YAML"),
        ("project.json", "[1, 2]", "root must be an object"),
    ],
)
def test_malformed_documents_name_their_source(
    tmp_path: Path, filename: str, text: str, fragment: str
) -> None:
    path = tmp_path / filename
    path.write_text(text, encoding="utf-8")

    with pytest.raises(MalformedInputError, match=fragment) as error:
        load_document(path)
    assert error.value.source == path.as_posix()


def test_string_lists_are_trimmed_and_deduplicated() -> None:
    assert as_string_list([" a", "b", "a "], source="x") == ("a", "b")
    with pytest.raises(MalformedInputError, match=r"x\[1\]"):
        as_string_list(["a", ""], source="x")
    with pytest.raises(MalformedInputError, match="expected a list"):
        as_string_list("a", source="x")


def test_unknown_keys_are_listed_sorted() -> None:
    with pytest.raises(MalformedInputError, match="unknown field\\(s\\): deps, nmae"):
        reject_unknown_keys({"nmae": 1, "deps": 2, "name": 3}, frozenset({"name"}), source="m")


def test_manifest_fields_are_parsed(tmp_path: Path) -> None:
    path = tmp_path / "project.yaml"
    path.write_text(
        "name: ' web '\ndependencies: [api, core]\nwatch: ['shared/**']\n",
        encoding="utf-8",
    )

    assert load_manifest(path) == ProjectManifest(
        name="web", dependencies=("api", "core"), watch=("shared/**",)
    )


def test_manifest_rejects_blank_name_and_unknown_fields(tmp_path: Path) -> None:
    blank = tmp_path / "blank.json"
    blank.write_text('{"name": "  "}', encoding="utf-8")
    typo = tmp_path / "typo.json"
    typo.write_text('{"dependncies": []}', encoding="utf-8")

    with pytest.raises(MalformedInputError, match="non-empty string"):
        load_manifest(blank)
    with pytest.raises(MalformedInputError, match="dependncies"):
        load_manifest(typo)
