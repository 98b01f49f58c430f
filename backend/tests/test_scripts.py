from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

import pytest

from scorecard.publisher import MergeResult
from scripts import calculate_scores, process_pr_merge, validate_scores


def _record(name: str, percent: Any) -> Dict[str, Any]:
    return {
        "entityRef": {"kind": "system", "name": name},
        "generatedDateTimeUtc": "2024-05-01T10:00:00Z",
        "areaScores": [
            {
                "id": 1,
                "title": "Security",
                "scoreEntries": [
                    {
                        "id": 1,
                        "title": "Dependency scanning",
                        "details": "",
                        "scoreSuccess": "almost-failure",
                        "scorePercent": percent,
                        "selfAssessmentComments": "TODO: link the scanner report",
                    }
                ],
            }
        ],
    }


def _write(path: Path, payload: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_validate_scores_passes_with_warnings(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write(tmp_path / "ok.json", _record("ledger", 40))

    exit_code = validate_scores.main([str(path)])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "WARNING: areaScores[0].scoreEntries[0]: Self-assessment comments contain TODO placeholder" in output
    assert "Summary: 0 errors, 1 warnings" in output


def test_validate_scores_fails_on_any_invalid_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    good = _write(tmp_path / "good.json", _record("ledger", 40))
    bad = _write(tmp_path / "bad.json", _record("vault", 101))
    missing = tmp_path / "missing.json"

    exit_code = validate_scores.main([str(good), str(bad), str(missing)])

    output = capsys.readouterr().out
    assert exit_code == 1
    assert "ERROR: areaScores[0].scoreEntries[0].scorePercent must be a number between 0-100" in output
    assert f"ERROR: File not found: {missing}" in output


def test_calculate_scores_writes_output(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    records_dir = tmp_path / "scores"
    _write(records_dir / "ledger.json", _record("ledger", 40))
    _write(records_dir / "vault.json", _record("vault", 35))
    output = tmp_path / "output" / "all.json"

    exit_code = calculate_scores.main(["--entity-scores-dir", str(records_dir), "--output", str(output), "--verbose"])

    printed = capsys.readouterr().out
    assert exit_code == 0
    assert "Generated scores for 2 entities" in printed
    assert "   almost-failure: 2 entities" in printed
    assert [item["entityRef"]["name"] for item in json.loads(output.read_text(encoding="utf-8"))] == [
        "ledger",
        "vault",
    ]


def test_calculate_scores_exit_code_reflects_record_failures(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    records_dir = tmp_path / "scores"
    _write(records_dir / "ledger.json", _record("ledger", 40))
    (records_dir / "torn.json").write_text('{"entityRef":', encoding="utf-8")

    exit_code = calculate_scores.main(["--entity-scores-dir", str(records_dir), "--output", str(tmp_path / "all.json")])

    assert exit_code == 1
    assert "Error processing" in capsys.readouterr().out


def test_calculate_scores_missing_directory(tmp_path: Path) -> None:
    exit_code = calculate_scores.main(["--entity-scores-dir", str(tmp_path / "nope"), "--output", str(tmp_path / "a.json")])
    assert exit_code == 1


def test_process_pr_merge_prints_comment(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    class StubProcessor:
        def __init__(self, *args: Any, **kwargs: Any) -> None:
            pass

        def process(self) -> MergeResult:
            return MergeResult(success=False, error="One or more entity score files failed validation.")

    monkeypatch.setattr(process_pr_merge, "PullRequestMergeProcessor", StubProcessor)

    exit_code = process_pr_merge.main(["--repo-dir", "."])

    assert exit_code == 1
    assert "## Score Processing Failed" in capsys.readouterr().out


def test_serve_scores_passes_arguments_to_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    import uvicorn

    from scripts import serve_scores

    calls: Dict[str, Any] = {}
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.update(app=app, **kwargs))

    assert serve_scores.main(["--host", "0.0.0.0", "--port", "9100"]) == 0
    assert calls["app"] == "scorecard.main:app"
    assert calls["host"] == "0.0.0.0"
    assert calls["port"] == 9100
