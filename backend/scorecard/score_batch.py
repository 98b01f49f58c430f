"""Best-effort batch validation and aggregation over a records directory."""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable, List, Literal, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field

from .assessment_record import NormalizedRecord, ValidationReport
from .config import BatchConfig
from .exceptions import ContentError, InputError, ScorecardError
from .record_store import RecordStore
from .score_aggregation import aggregate, sort_key
from .score_validation import RecordValidator
from .telemetry import emit_event


logger = logging.getLogger(__name__)


class RecordFailure(BaseModel):
    """Per-record failure captured while the rest of the batch continues."""

    source: str
    kind: Literal["input", "content"]
    message: str
    details: List[str] = Field(default_factory=list)

    @classmethod
    def from_exception(cls, source: str, exc: ScorecardError) -> "RecordFailure":
        kind: Literal["input", "content"] = "input" if isinstance(exc, InputError) else "content"
        details = list(exc.errors) if isinstance(exc, ContentError) else []
        return cls(source=exc.source or source, kind=kind, message=str(exc), details=details)

    def describe(self) -> str:
        return f"Error processing {self.source}: {self.message}"


class ScoreSummary(BaseModel):
    total: int = 0
    average_score: float = 0.0
    by_success: Dict[str, int] = Field(default_factory=dict)
    by_label: Dict[str, int] = Field(default_factory=dict)

    def lines(self) -> List[str]:
        output = [
            "Summary Statistics:",
            f"   Total Entities: {self.total}",
            f"   Average Score: {self.average_score:.1f}%",
            "Score Distribution:",
        ]
        output.extend(f"   {category}: {count} entities" for category, count in self.by_success.items())
        output.append("Color Distribution:")
        output.extend(f"   {label}: {count} entities" for label, count in self.by_label.items())
        return output


class BatchResult(BaseModel):
    scores: List[NormalizedRecord] = Field(default_factory=list)
    errors: List[RecordFailure] = Field(default_factory=list)
    output_file: Optional[Path] = None

    @property
    def total_entities(self) -> int:
        return len(self.scores)

    @property
    def exit_code(self) -> int:
        return 1 if self.errors else 0


class FileValidation(BaseModel):
    source: str
    report: Optional[ValidationReport] = None
    input_error: Optional[str] = None

    @property
    def valid(self) -> bool:
        return self.input_error is None and self.report is not None and self.report.valid


def summarize(scores: Sequence[NormalizedRecord]) -> ScoreSummary:
    if not scores:
        return ScoreSummary()
    total = sum(score.score_percent for score in scores)
    return ScoreSummary(
        total=len(scores),
        average_score=round(total / len(scores), 1),
        by_success=dict(Counter(score.score_success for score in scores)),
        by_label=dict(Counter(score.score_label for score in scores)),
    )


def aggregate_records(
    records: Iterable[Tuple[str, Any]],
    *,
    include_unscored_areas: bool = False,
) -> Tuple[List[NormalizedRecord], List[RecordFailure]]:
    """Aggregate ``(source, record)`` pairs, collecting failures instead of raising.

    The returned scores are ordered by entity name.
    """
    scores: List[NormalizedRecord] = []
    failures: List[RecordFailure] = []
    for source, record in records:
        try:
            normalized = aggregate(record, source=source, include_unscored_areas=include_unscored_areas)
        except ContentError as exc:
            failure = RecordFailure.from_exception(source, exc)
            failures.append(failure)
            logger.error("%s", failure.describe())
            emit_event("score_record_failed", source=source, kind=failure.kind, message=failure.message)
            continue
        scores.append(normalized)
        emit_event(
            "score_record_aggregated",
            source=source,
            entity=normalized.entity_ref.name,
            score_percent=normalized.score_percent,
        )
    scores.sort(key=sort_key)
    return scores, failures


class ScoreCalculator:
    """Reads every record under the configured directory and writes the aggregated output."""

    def __init__(self, config: BatchConfig, store: Optional[RecordStore] = None) -> None:
        self.config = config
        self.store = store or RecordStore(config.entity_scores_dir, config.output_file)
        self.validator = RecordValidator(
            placeholder_marker=config.placeholder_marker,
            drift_tolerance=config.drift_tolerance,
        )

    def _load_all(self, failures: List[RecordFailure]) -> List[Tuple[str, Any]]:
        loaded: List[Tuple[str, Any]] = []
        for path in self.store.list_record_files():
            try:
                loaded.append((str(path), self.store.load(path)))
            except InputError as exc:
                failure = RecordFailure.from_exception(str(path), exc)
                failures.append(failure)
                logger.error("%s", failure.describe())
                emit_event("score_record_failed", source=str(path), kind=failure.kind, message=failure.message)
        return loaded

    def calculate_all(self, *, write: bool = True) -> BatchResult:
        """Aggregate the whole directory.

        A missing directory raises :class:`InputError`; individual unreadable
        or malformed records are reported on the result and skipped.
        """
        logger.info("Starting score calculation for %s", self.config.entity_scores_dir)
        failures: List[RecordFailure] = []
        loaded = self._load_all(failures)
        logger.info("Found %d entity score files", len(loaded) + len(failures))

        scores, content_failures = aggregate_records(
            loaded, include_unscored_areas=self.config.include_unscored_areas
        )
        failures.extend(content_failures)
        if self.config.verbose:
            for score in scores:
                logger.info("Processed: %s (%s%%)", score.entity_ref.name, score.score_percent)
        if failures:
            logger.warning("%d files had processing errors", len(failures))

        output_file = self.store.write_output(scores) if write else None
        summary = summarize(scores)
        emit_event(
            "score_batch_completed",
            total_entities=len(scores),
            failed=len(failures),
            average_score=summary.average_score,
            output_file=output_file,
        )
        return BatchResult(scores=scores, errors=failures, output_file=output_file)

    def validate_file(self, path: Union[str, Path]) -> FileValidation:
        source = str(path)
        try:
            record = self.store.load(path)
        except InputError as exc:
            return FileValidation(source=source, input_error=str(exc))
        return FileValidation(source=source, report=self.validator.validate(record, source=source))

    def validate_files(self, paths: Iterable[Union[str, Path]]) -> List[FileValidation]:
        results = []
        for path in paths:
            outcome = self.validate_file(path)
            if outcome.valid:
                logger.info("Validation passed for %s", outcome.source)
            else:
                logger.warning("Validation failed for %s", outcome.source)
            results.append(outcome)
        return results


__all__ = [
    "BatchResult",
    "FileValidation",
    "RecordFailure",
    "ScoreCalculator",
    "ScoreSummary",
    "aggregate_records",
    "summarize",
]
