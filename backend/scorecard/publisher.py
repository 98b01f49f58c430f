"""Pull-request merge processing: validate changed records, recalculate, publish via git."""

from __future__ import annotations

import logging
import os
import re
import subprocess
import threading
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from .config import BatchConfig, Settings
from .exceptions import InputError, ScorecardError
from .score_batch import FileValidation, RecordFailure, ScoreCalculator
from .telemetry import emit_event


logger = logging.getLogger(__name__)

# Only one publish may touch the working tree and remote at a time.
_publish_lock = threading.Lock()


class GitCommandError(ScorecardError):
    """Raised when a git invocation exits non-zero or git is unavailable."""


class GitClient:
    """Thin wrapper over the ``git`` executable for one working tree."""

    def __init__(self, repo_dir: Path = Path(".")) -> None:
        self.repo_dir = Path(repo_dir)

    def run(self, *args: str) -> str:
        command = ["git", *args]
        try:
            completed = subprocess.run(
                command,
                cwd=self.repo_dir,
                check=True,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as exc:
            raise GitCommandError("git executable not found") from exc
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or exc.stdout or "").strip()
            raise GitCommandError(f"{' '.join(command)} failed: {detail}") from exc
        return completed.stdout

    def changed_files(self, base: str = "HEAD~1", head: str = "HEAD") -> List[str]:
        output = self.run("diff", "--name-only", base, head)
        return [line.strip() for line in output.splitlines() if line.strip()]

    def has_changes(self, path: str) -> bool:
        return bool(self.run("status", "--porcelain", "--", path).strip())

    def commit(self, path: str, message: str, *, author_name: str, author_email: str) -> None:
        self.run("add", "--", path)
        self.run("-c", f"user.name={author_name}", "-c", f"user.email={author_email}", "commit", "-m", message)

    def push(self, remote: str, branch: str) -> None:
        self.run("push", remote, f"HEAD:{branch}")


class PublishConfig(BaseModel):
    remote: str = "origin"
    branch: str = "main"
    author_name: str = "Scorecard Bot"
    author_email: str = "scorecard-bot@users.noreply.github.com"
    commit_message: str = "Update aggregated scores from entity assessments [skip ci]"

    @classmethod
    def from_settings(cls, settings: Settings) -> "PublishConfig":
        return cls(
            remote=settings.git_remote,
            branch=settings.publish_branch,
            author_name=settings.git_author_name,
            author_email=settings.git_author_email,
            commit_message=settings.commit_message,
        )


class MergeResult(BaseModel):
    success: bool
    message: str = ""
    error: Optional[str] = None
    processed_files: List[str] = Field(default_factory=list)
    updated_scores: int = 0
    published: bool = False
    invalid_files: List[FileValidation] = Field(default_factory=list)
    record_failures: List[RecordFailure] = Field(default_factory=list)


class PullRequestMergeProcessor:
    """Runs the post-merge pipeline for a repository of entity score files."""

    def __init__(
        self,
        config: BatchConfig,
        publish_config: Optional[PublishConfig] = None,
        *,
        git: Optional[GitClient] = None,
        calculator: Optional[ScoreCalculator] = None,
    ) -> None:
        self.config = config
        self.publish_config = publish_config or PublishConfig()
        self.git = git or GitClient()
        self.calculator = calculator or ScoreCalculator(config)

    def _records_prefix(self) -> str:
        records_dir = self.config.entity_scores_dir
        if not records_dir.is_absolute():
            records_dir = Path.cwd() / records_dir
        relative = Path(os.path.relpath(records_dir.resolve(), self.git.repo_dir.resolve())).as_posix()
        return "" if relative == "." else relative

    def _all_record_files(self) -> List[Path]:
        try:
            return self.calculator.store.list_record_files()
        except InputError:
            return []

    def changed_record_files(self) -> List[Path]:
        """Record files touched by the last commit, or every record file when git reports none."""
        try:
            changed = self.git.changed_files()
        except GitCommandError as exc:
            logger.warning("Could not get changed files from git (%s); processing all entity score files", exc)
            return self._all_record_files()
        if not changed:
            logger.info("git reported no changed files; processing all entity score files")
            return self._all_record_files()

        prefix = self._records_prefix()
        directory = f"{prefix}/" if prefix else ""
        pattern = re.compile(rf"^{re.escape(directory)}[^/]+\.json$")
        selected = []
        for name in changed:
            path = self.git.repo_dir / name
            matches = bool(pattern.match(name))
            logger.debug("Changed file %s | pattern match: %s | exists: %s", name, matches, path.exists())
            if matches and path.exists():
                selected.append(path)
        logger.info("Found %d changed entity score files", len(selected))
        return selected

    def process(self) -> MergeResult:
        files = self.changed_record_files()
        if not files:
            logger.info("No entity score files changed")
            return MergeResult(success=True, message="No score files to process")

        processed = [str(path) for path in files]
        invalid = [outcome for outcome in self.calculator.validate_files(files) if not outcome.valid]
        if invalid:
            return MergeResult(
                success=False,
                error="One or more entity score files failed validation. Please fix the errors and try again.",
                processed_files=processed,
                invalid_files=invalid,
            )

        try:
            batch = self.calculator.calculate_all()
        except ScorecardError as exc:
            return MergeResult(
                success=False,
                error=f"Score calculation failed: {exc}",
                processed_files=processed,
            )

        published = self.publish()
        result = MergeResult(
            success=not batch.errors,
            message=f"Processed {len(files)} entity score files",
            processed_files=processed,
            updated_scores=batch.total_entities,
            published=published,
            record_failures=batch.errors,
        )
        if batch.errors:
            result.error = f"{len(batch.errors)} entity score files could not be aggregated"
        return result

    def publish(self) -> bool:
        """Commit and push the aggregated output if it changed. Returns True when pushed."""
        output = self.config.output_file
        if output.is_absolute():
            output_path = os.path.relpath(output.resolve(), self.git.repo_dir.resolve())
        else:
            output_path = output.as_posix()
        with _publish_lock:
            try:
                if not self.git.has_changes(output_path):
                    logger.info("No changes to %s, skipping commit", output_path)
                    return False
                self.git.commit(
                    output_path,
                    self.publish_config.commit_message,
                    author_name=self.publish_config.author_name,
                    author_email=self.publish_config.author_email,
                )
                self.git.push(self.publish_config.remote, self.publish_config.branch)
            except GitCommandError as exc:
                logger.warning("Could not commit updated scores automatically: %s", exc)
                logger.info("%s has been updated but needs to be committed manually", output_path)
                return False
        logger.info("Updated scores committed and pushed to %s", self.publish_config.branch)
        emit_event("scores_published", output_file=output_path, branch=self.publish_config.branch)
        return True


def generate_pr_comment(result: MergeResult) -> str:
    if not result.success:
        return (
            "## Score Processing Failed\n\n"
            f"**Error:** {result.error}\n\n"
            "Please fix the validation errors and try again."
        )
    return (
        "## Score Processing Completed\n\n"
        "**Summary:**\n"
        f"- Processed {len(result.processed_files)} entity score files\n"
        f"- Updated scores for {result.updated_scores} entities\n"
        "- The aggregated scores file has been updated with the latest scores\n"
    )


__all__ = [
    "GitClient",
    "GitCommandError",
    "MergeResult",
    "PublishConfig",
    "PullRequestMergeProcessor",
    "generate_pr_comment",
]
