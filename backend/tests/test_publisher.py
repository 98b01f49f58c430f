from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from scorecard.config import BatchConfig
from scorecard.publisher import (
    GitClient,
    GitCommandError,
    MergeResult,
    PublishConfig,
    PullRequestMergeProcessor,
    generate_pr_comment,
)


class FakeGit(GitClient):
    def __init__(self, repo_dir: Path, *, diff: Optional[str] = "", status: str = " M all.json\n") -> None:
        super().__init__(repo_dir)
        self.diff = diff
        self.status = status
        self.fail_push = False
        self.commands: List[tuple[str, ...]] = []

    def run(self, *args: str) -> str:
        self.commands.append(args)
        if args[0] == "diff":
            if self.diff is None:
                raise GitCommandError("fatal: ambiguous argument 'HEAD~1'")
            return self.diff
        if args[0] == "status":
            return self.status
        if args[0] == "push" and self.fail_push:
            raise GitCommandError("rejected")
        return ""

    def ran(self, verb: str) -> bool:
        return any(verb in command for command in self.commands)


def _record(name: str, percent: Any = 80, success: str = "success") -> Dict[str, Any]:
    return {
        "entityRef": {"kind": "component", "name": name},
        "generatedDateTimeUtc": "2024-05-01T10:00:00Z",
        "areaScores": [
            {
                "id": 1,
                "title": "Quality",
                "scoreEntries": [
                    {"id": 1, "title": "Tests", "details": "", "scoreSuccess": success, "scorePercent": percent}
                ],
            }
        ],
    }


def _setup(tmp_path: Path, files: Dict[str, Dict[str, Any]]) -> BatchConfig:
    records_dir = tmp_path / "entity-scores"
    records_dir.mkdir()
    for filename, payload in files.items():
        (records_dir / filename).write_text(json.dumps(payload), encoding="utf-8")
    return BatchConfig(entity_scores_dir=records_dir, output_file=tmp_path / "all.json")


def test_changed_record_files_filters_to_existing_top_level_json(tmp_path: Path) -> None:
    config = _setup(tmp_path, {"orders.json": _record("orders")})
    git = FakeGit(
        tmp_path,
        diff="entity-scores/orders.json\nREADME.md\nentity-scores/nested/x.json\nentity-scores/deleted.json\n",
    )

    files = PullRequestMergeProcessor(config, git=git).changed_record_files()

    assert files == [tmp_path / "entity-scores" / "orders.json"]


def test_changed_record_files_falls_back_to_all_when_git_fails(tmp_path: Path) -> None:
    config = _setup(tmp_path, {"a.json": _record("a"), "b.json": _record("b")})
    git = FakeGit(tmp_path, diff=None)

    files = PullRequestMergeProcessor(config, git=git).changed_record_files()

    assert [path.name for path in files] == ["a.json", "b.json"]


def test_changed_record_files_when_records_live_at_repo_root(tmp_path: Path) -> None:
    (tmp_path / "orders.json").write_text(json.dumps(_record("orders")), encoding="utf-8")
    config = BatchConfig(entity_scores_dir=tmp_path, output_file=tmp_path / "out" / "all.json")
    git = FakeGit(tmp_path, diff="orders.json\nnested/x.json\nmissing.json\n")

    files = PullRequestMergeProcessor(config, git=git).changed_record_files()

    assert files == [tmp_path / "orders.json"]


def test_empty_diff_processes_every_record_file(tmp_path: Path) -> None:
    config = _setup(tmp_path, {"a.json": _record("a"), "b.json": _record("b")})
    git = FakeGit(tmp_path, diff="")

    files = PullRequestMergeProcessor(config, git=git).changed_record_files()

    assert [path.name for path in files] == ["a.json", "b.json"]


def test_process_without_changes_is_a_noop(tmp_path: Path) -> None:
    config = _setup(tmp_path, {"a.json": _record("a")})
    git = FakeGit(tmp_path, diff="docs/index.md\n")

    result = PullRequestMergeProcessor(config, git=git).process()

    assert result.success is True
    assert result.message == "No score files to process"
    assert not config.output_file.exists()
    assert not git.ran("commit")


def test_process_stops_on_validation_errors(tmp_path: Path) -> None:
    config = _setup(tmp_path, {"bad.json": _record("bad", percent=140)})
    git = FakeGit(tmp_path, diff="entity-scores/bad.json\n")

    result = PullRequestMergeProcessor(config, git=git).process()

    assert result.success is False
    assert result.error is not None and "failed validation" in result.error
    assert [outcome.source for outcome in result.invalid_files] == [str(tmp_path / "entity-scores" / "bad.json")]
    assert not config.output_file.exists()
    assert not git.ran("commit")


def test_process_recalculates_and_publishes(tmp_path: Path) -> None:
    config = _setup(tmp_path, {"orders.json": _record("orders"), "billing.json": _record("billing", 60, "partial")})
    git = FakeGit(tmp_path, diff="entity-scores/orders.json\n")
    publish = PublishConfig(branch="scores", author_name="CI", author_email="ci@example.com")

    result = PullRequestMergeProcessor(config, publish, git=git).process()

    assert result.success is True
    assert result.published is True
    assert result.updated_scores == 2
    written = json.loads(config.output_file.read_text(encoding="utf-8"))
    assert [item["entityRef"]["name"] for item in written] == ["billing", "orders"]
    assert ("add", "--", "all.json") in git.commands
    assert ("push", "origin", "HEAD:scores") in git.commands
    commit = next(command for command in git.commands if "commit" in command)
    assert "user.name=CI" in commit and "user.email=ci@example.com" in commit


def test_publish_skips_commit_when_output_unchanged(tmp_path: Path) -> None:
    config = _setup(tmp_path, {"orders.json": _record("orders")})
    git = FakeGit(tmp_path, diff="entity-scores/orders.json\n", status="")

    result = PullRequestMergeProcessor(config, git=git).process()

    assert result.success is True
    assert result.published is False
    assert not git.ran("commit")


def test_publish_failure_is_reported_not_raised(tmp_path: Path) -> None:
    config = _setup(tmp_path, {"orders.json": _record("orders")})
    git = FakeGit(tmp_path, diff="entity-scores/orders.json\n")
    git.fail_push = True

    result = PullRequestMergeProcessor(config, git=git).process()

    assert result.success is True
    assert result.published is False
    assert config.output_file.exists()


def test_unaggregatable_record_elsewhere_fails_the_run(tmp_path: Path) -> None:
    config = _setup(tmp_path, {"orders.json": _record("orders")})
    (config.entity_scores_dir / "legacy.json").write_text("[]", encoding="utf-8")
    git = FakeGit(tmp_path, diff="entity-scores/orders.json\n")

    result = PullRequestMergeProcessor(config, git=git).process()

    assert result.success is False
    assert result.updated_scores == 1
    assert [failure.kind for failure in result.record_failures] == ["content"]
    assert result.published is True


def test_git_client_wraps_process_errors(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def fake_run(command, **kwargs):  # noqa: ANN001
        raise subprocess.CalledProcessError(128, command, output="", stderr="fatal: not a git repository")

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(GitCommandError) as excinfo:
        GitClient(tmp_path).changed_files()

    assert "not a git repository" in str(excinfo.value)


def test_git_client_parses_changed_files(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    recorded: Dict[str, Any] = {}

    def fake_run(command, **kwargs):  # noqa: ANN001
        recorded["command"] = command
        recorded["cwd"] = kwargs.get("cwd")
        return subprocess.CompletedProcess(command, 0, stdout="a.json\n\nb.json\n", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)

    assert GitClient(tmp_path).changed_files() == ["a.json", "b.json"]
    assert recorded["command"] == ["git", "diff", "--name-only", "HEAD~1", "HEAD"]
    assert recorded["cwd"] == tmp_path


def test_pr_comment_reflects_outcome() -> None:
    ok = MergeResult(success=True, processed_files=["a.json", "b.json"], updated_scores=7)
    failed = MergeResult(success=False, error="One or more entity score files failed validation.")

    assert "Processed 2 entity score files" in generate_pr_comment(ok)
    assert "Updated scores for 7 entities" in generate_pr_comment(ok)
    assert "**Error:** One or more entity score files failed validation." in generate_pr_comment(failed)
