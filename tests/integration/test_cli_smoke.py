"""
stage-planner — CLI subprocess smoke contracts

File: tests/integration/test_cli_smoke.py
Last updated: 2026-10-17

Purpose
- Enforce CLI behavior for `python -m stage_planner` plan/levels/projects/stages.
- Verify exit codes, the pipeline output format, and stream separation.
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"

pytestmark = pytest.mark.integration


def _run_cli(
    repo_root: Path,
    *args: str,
    stdin: str | None = None,
    extra_env: dict[str, str] | None = None,
) -> subprocess.CompletedProcess[str]:
    env = os.environ.copy()
    existing_pythonpath = env.get("PYTHONPATH")
    src_pythonpath = str(SRC_PATH)
    env["PYTHONPATH"] = (
        src_pythonpath if not existing_pythonpath else f"{src_pythonpath}:{existing_pythonpath}"
    )
    env["NO_COLOR"] = "1"
    for name in list(env):
        if name == "GITHUB_OUTPUT" or name.startswith("PLANNER_"):
            del env[name]
    env.update(extra_env or {})
    return subprocess.run(
        [sys.executable, "-m", "stage_planner", *args],
        cwd=repo_root,
        input=stdin,
        text=True,
        capture_output=True,
        check=False,
        env=env,
    )


def _project(root: Path, relative: str, payload: dict[str, object] | None = None) -> None:
    folder = root / relative
    folder.mkdir(parents=True, exist_ok=True)
    (folder / "project.json").write_text(json.dumps(payload or {}), encoding="utf-8")


def _outputs(text: str) -> dict[str, str]:
    pairs = [line.split("=", 1) for line in text.splitlines() if line]
    return {key: value for key, value in pairs}


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    _project(root, "libs/core", {"name": "core"})
    _project(root, "services/api", {"name": "api", "dependencies": ["core"]})
    _project(root, "services/web", {"name": "web", "dependencies": ["api"]})
    _project(root, "docs", {"name": "docs"})
    (root / "planner.toml").write_text(
        '[observability]\nlog_dir = ".planner-logs"\n', encoding="utf-8"
    )
    return root


def test_plan_writes_outputs_to_stdout_and_summary_to_stderr(repo: Path) -> None:
    completed = _run_cli(repo, "plan", "--changed-file", "libs/core/src/lib.c", "--output", "-")

    assert completed.returncode == 0, completed.stderr
    outputs = _outputs(completed.stdout)
    assert outputs["ProjectsJson"] == '["core","api","web"]'
    assert outputs["BuildOrderJson"] == '{"1":["core"],"2":["api"],"3":["web"]}'
    assert outputs["ProjectDependenciesJson"] == '{"core":[],"api":["core"],"web":["api"]}'
    assert outputs["projects5Json"] == '["web"]'
    assert outputs["projects3Json"] == '["core"]'
    assert outputs["projects1Count"] == "0"
    assert "Selection: changed-files" in completed.stderr


def test_plan_appends_to_github_output(repo: Path, tmp_path: Path) -> None:
    result_file = tmp_path / "github_output"
    result_file.write_text("existing=1\n", encoding="utf-8")

    completed = _run_cli(
        repo,
        "plan",
        "--changed-files",
        "-",
        stdin="services/web/index.ts\n\n",
        extra_env={"GITHUB_OUTPUT": str(result_file)},
    )

    assert completed.returncode == 0, completed.stderr
    text = result_file.read_text(encoding="utf-8")
    assert text.startswith("existing=1\n")
    outputs = _outputs(text)
    assert outputs["ProjectsJson"] == '["web"]'
    assert outputs["projects5Json"] == '["web"]'
    assert "ProjectsJson" not in completed.stdout
    assert "Stages:" in completed.stdout


def test_plan_respects_capacity_and_upstream_flags(repo: Path) -> None:
    completed = _run_cli(
        repo,
        "plan",
        "--changed-file",
        "services/web/index.ts",
        "--include-upstream",
        "--capacity",
        "3",
        "--output",
        "-",
    )

    assert completed.returncode == 0, completed.stderr
    outputs = _outputs(completed.stdout)
    assert outputs["ProjectsJson"] == '["web","core","api"]'
    assert outputs["projects3Json"] == '["web"]'
    assert outputs["projects1Json"] == '["core"]'
    assert "projects4Json" not in outputs


def test_plan_over_capacity_exits_with_plan_rejected(repo: Path) -> None:
    completed = _run_cli(repo, "plan", "--all", "--capacity", "2", "--output", "-")

    assert completed.returncode == 1
    assert completed.stdout == ""
    assert "exceeds pipeline stage capacity 2" in completed.stderr


def test_cycle_exits_with_plan_rejected(repo: Path) -> None:
    _project(repo, "libs/core", {"name": "core", "dependencies": ["web"]})

    completed = _run_cli(repo, "plan", "--all", "--output", "-")

    assert completed.returncode == 1
    assert "dependency cycle(s) detected" in completed.stderr


def test_malformed_manifest_exits_with_input_error(repo: Path) -> None:
    _project(repo, "services/api", {"name": "api", "dependencies": ["ghost"]})

    completed = _run_cli(repo, "projects")

    assert completed.returncode == 3
    assert "ghost" in completed.stderr


def test_invalid_config_exits_with_config_error(repo: Path) -> None:
    (repo / "planner.toml").write_text("[pipeline]\ncapacity = 0\n", encoding="utf-8")

    completed = _run_cli(repo, "levels")

    assert completed.returncode == 2
    assert "pipeline.capacity" in completed.stderr


def test_env_override_reaches_the_planner(repo: Path) -> None:
    completed = _run_cli(
        repo,
        "plan",
        "--all",
        "--output",
        "-",
        extra_env={"PLANNER_PIPELINE_CAPACITY": "2"},
    )

    assert completed.returncode == 1


def test_levels_and_projects_json(repo: Path) -> None:
    levels = _run_cli(repo, "levels", "--json")
    projects = _run_cli(repo, "projects", "--json")

    assert levels.returncode == 0, levels.stderr
    assert json.loads(levels.stdout) == {"1": ["docs", "core"], "2": ["api"], "3": ["web"]}
    assert projects.returncode == 0, projects.stderr
    assert json.loads(projects.stdout) == {
        "projects": ["docs", "core", "api", "web"],
        "dependencies": {"docs": [], "core": [], "api": ["core"], "web": ["api"]},
    }


def test_levels_table_is_human_readable(repo: Path) -> None:
    completed = _run_cli(repo, "levels", "--no-color")

    assert completed.returncode == 0, completed.stderr
    assert "Depth: 3" in completed.stdout
    assert "docs, core" in completed.stdout


def test_stages_reemits_a_stored_build_order(repo: Path) -> None:
    completed = _run_cli(
        repo,
        "stages",
        "--build-order",
        "-",
        "--capacity",
        "3",
        "--output",
        "-",
        stdin='{"1":["core"],"2":["api","web"]}',
    )

    assert completed.returncode == 0, completed.stderr
    assert completed.stdout.splitlines() == [
        'projects3Json=["api","web"]',
        "projects3Count=2",
        'projects2Json=["core"]',
        "projects2Count=1",
        "projects1Json=[]",
        "projects1Count=0",
    ]


@pytest.mark.parametrize(
    "document",
    ['{"first":["a"]}', '{"\\u00b2":["a"]}', '{"1":["a"],"01":["b"]}'],
)
def test_stages_rejects_malformed_build_order(repo: Path, document: str) -> None:
    completed = _run_cli(repo, "stages", "--build-order", "-", stdin=document)

    assert completed.returncode == 3
    assert "Traceback" not in completed.stderr


def test_missing_repo_root_is_reported(repo: Path) -> None:
    completed = _run_cli(repo, "projects", "--repo-root", str(repo / "missing"))

    assert completed.returncode == 2
    assert "repo root is not a directory" in completed.stderr


def test_file_logs_are_written_under_the_configured_directory(repo: Path) -> None:
    completed = _run_cli(repo, "levels", "--json", "--verbose")

    assert completed.returncode == 0, completed.stderr
    logs = list((repo / ".planner-logs").glob("*/planner.jsonl"))
    assert len(logs) == 1
    records = [json.loads(line) for line in logs[0].read_text(encoding="utf-8").splitlines()]
    assert any(record["message"] == "computed build levels" for record in records)
