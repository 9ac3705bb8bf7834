"""
stage-planner — end-to-end smoke test

File: tests/smoke/test_end_to_end.py
Last updated: 2026-10-17

Purpose
- Plan a realistic repository checkout in-process, from discovery to pipeline outputs.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from stage_planner.config import load_config
from stage_planner.domain.models import SelectionReason
from stage_planner.outputs import build_pipeline_outputs
from stage_planner.planner import PlannerOptions, plan_repository, scan_repository


def _seed_repo(root: Path) -> None:
    layout: dict[str, str] = {
        "src/Shared/project.yaml": "name: shared\nwatch:\n  - 'schemas/*.json'\n",
        "src/Data/project.yaml": "name: data\ndependencies: [shared]\n",
        "src/Api/project.yml": "name: api\ndependencies:\n  - data\n  - shared\n",
        "src/Api/Tests/project.json": '{"name": "api-tests", "dependencies": ["api"]}',
        "src/Worker/project.json": '{"name": "worker", "dependencies": ["data"]}',
        "tools/lint/project.json": "{}",
        "node_modules/left-pad/project.json": '{"name": "left-pad"}',
        "build-settings.json": '{"buildAllPatterns": ["Directory.Build.*"]}',
    }
    for relative, text in layout.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")


@pytest.mark.smoke
def test_end_to_end_plan_for_changed_files(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _seed_repo(repo_root)
    options = PlannerOptions.from_config(load_config(base_dir=repo_root, environ={}))

    snapshot = scan_repository(repo_root, options)
    assert [project.name for project in snapshot.projects] == [
        "api",
        "api-tests",
        "data",
        "shared",
        "worker",
        "tools/lint",
    ]

    plan = plan_repository(repo_root, options, modified_files=["src/Data/Repository.cs"])

    assert plan.selection.reason is SelectionReason.CHANGED_FILES
    assert plan.selection.projects == ("data",)
    assert plan.closure.added == ("api", "api-tests", "worker")
    assert plan.build_order.to_json_mapping() == {
        "1": ["data"],
        "2": ["api", "worker"],
        "3": ["api-tests"],
    }

    outputs = build_pipeline_outputs(plan)
    assert outputs["projects5Json"] == '["api-tests"]'
    assert outputs["projects4Json"] == '["api","worker"]'
    assert outputs["projects3Json"] == '["data"]'
    assert json.loads(outputs["ProjectDependenciesJson"])["api"] == ["data", "shared"]


@pytest.mark.smoke
def test_end_to_end_watch_glob_and_build_all_pattern(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _seed_repo(repo_root)
    options = PlannerOptions()

    watched = plan_repository(repo_root, options, modified_files=["schemas/order.json"])
    assert watched.selection.projects == ("shared",)
    assert watched.depth == 4
    assert watched.stages[0].projects == ("api-tests",)
    assert watched.stages[-1].stage_index == 1
    assert watched.stages[-1].projects == ()

    everything = plan_repository(
        repo_root, options, modified_files=["Directory.Build.props", "README.md"]
    )
    assert everything.selection.reason is SelectionReason.BUILD_ALL_PATTERN
    assert everything.selection.triggers == ("Directory.Build.props",)
    universe = {project.name for project in scan_repository(repo_root, options).projects}
    assert set(everything.projects) == universe
