"""Structural and semantic validation of entity self-assessment records.

Validation accumulates every problem it finds instead of stopping at the
first one. Errors block aggregation; warnings are advisory and never affect
``ValidationReport.valid``.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from .assessment_record import ValidationReport
from .exceptions import RecordStructureError
from .score_aggregation import coerce_record, reduce_area, reduce_overall
from .score_bands import SCORE_SUCCESS_VALUES, score_success_for


logger = logging.getLogger(__name__)

KNOWN_ENTITY_KINDS = ("component", "api", "system", "resource")
REQUIRED_RECORD_FIELDS = ("entityRef", "generatedDateTimeUtc", "areaScores")
REQUIRED_AREA_FIELDS = ("id", "title", "scoreEntries")
REQUIRED_ENTRY_FIELDS = ("id", "title", "scoreSuccess", "details")

_DATETIME = TypeAdapter(datetime)
_DATE = TypeAdapter(date)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def parses_as_instant(value: Any) -> bool:
    """Return True when ``value`` is an ISO-8601 datetime or date string."""
    if isinstance(value, (datetime, date)):
        return True
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        _DATETIME.validate_python(value)
        return True
    except ValidationError:
        pass
    try:
        _DATE.validate_python(value)
        return True
    except ValidationError:
        return False


class _Collector:
    def __init__(self, source: Optional[str]) -> None:
        self.report = ValidationReport(source=source)

    def error(self, message: str) -> None:
        self.report.errors.append(message)

    def warning(self, message: str) -> None:
        self.report.warnings.append(message)

    def require(self, payload: Mapping[str, Any], fields: Iterable[str], prefix: str = "") -> None:
        for field in fields:
            if payload.get(field) is None:
                name = f"{prefix}.{field}" if prefix else field
                self.error(f"Missing required field: {name}")

    def require_text(self, payload: Mapping[str, Any], fields: Iterable[str], prefix: str = "") -> None:
        for field in fields:
            value = payload.get(field)
            if value is not None and not isinstance(value, str):
                name = f"{prefix}.{field}" if prefix else field
                self.error(f"{name} must be a string")


class RecordValidator:
    """Validates assessment records without touching the filesystem."""

    def __init__(
        self,
        *,
        placeholder_marker: str = "TODO:",
        drift_tolerance: float = 1.0,
        known_kinds: Sequence[str] = KNOWN_ENTITY_KINDS,
    ) -> None:
        self.placeholder_marker = placeholder_marker
        self.drift_tolerance = drift_tolerance
        self.known_kinds = tuple(known_kinds)

    def validate(self, record: Any, *, source: Optional[str] = None) -> ValidationReport:
        collector = _Collector(source)
        if not isinstance(record, Mapping):
            collector.error(f"Record must be a JSON object, got {type(record).__name__}")
            return collector.report

        collector.require(record, REQUIRED_RECORD_FIELDS)
        collector.require_text(record, ("scoringReviewer",))
        self._check_entity_ref(collector, record.get("entityRef"))

        self._check_timestamp(collector, record.get("generatedDateTimeUtc"), "generatedDateTimeUtc")
        if record.get("scoringReviewDate"):
            self._check_timestamp(collector, record.get("scoringReviewDate"), "scoringReviewDate")

        areas = record.get("areaScores")
        if _is_sequence(areas):
            for index, area in enumerate(areas):
                self._check_area(collector, area, f"areaScores[{index}]")
        else:
            collector.error("areaScores must be an array")

        self._check_aggregatable(collector, record)
        self._check_overall_drift(collector, record)
        return collector.report

    def _check_entity_ref(self, collector: _Collector, entity_ref: Any) -> None:
        if not isinstance(entity_ref, Mapping):
            collector.error("entityRef must be an object")
            return
        collector.require(entity_ref, ("kind", "name"), prefix="entityRef")
        collector.require_text(entity_ref, ("kind", "name", "namespace"), prefix="entityRef")
        kind = entity_ref.get("kind")
        if kind and kind not in self.known_kinds:
            collector.warning(
                f"Unusual entity kind: {kind}. Expected one of: {', '.join(self.known_kinds)}"
            )

    @staticmethod
    def _check_timestamp(collector: _Collector, value: Any, field: str) -> None:
        if value is None:
            return
        if not parses_as_instant(value):
            collector.error(f"{field} is not a valid ISO date")

    def _check_area(self, collector: _Collector, area: Any, prefix: str) -> None:
        if not isinstance(area, Mapping):
            collector.error(f"{prefix} must be an object")
            return
        collector.require(area, REQUIRED_AREA_FIELDS, prefix=prefix)
        collector.require_text(area, ("title",), prefix=prefix)
        if not _is_number(area.get("id")):
            collector.error(f"{prefix}.id must be a number")

        entries = area.get("scoreEntries")
        if not _is_sequence(entries):
            collector.error(f"{prefix}.scoreEntries must be an array")
            return
        if not entries:
            collector.error(f"{prefix}.scoreEntries cannot be empty")
        for index, entry in enumerate(entries):
            self._check_entry(collector, entry, f"{prefix}.scoreEntries[{index}]")

    def _check_entry(self, collector: _Collector, entry: Any, prefix: str) -> None:
        if not isinstance(entry, Mapping):
            collector.error(f"{prefix} must be an object")
            return
        collector.require(entry, REQUIRED_ENTRY_FIELDS, prefix=prefix)
        collector.require_text(entry, ("title", "details", "selfAssessmentComments"), prefix=prefix)
        if entry.get("isOptional") is not None and not isinstance(entry.get("isOptional"), bool):
            collector.error(f"{prefix}.isOptional must be a boolean")
        if not _is_number(entry.get("id")):
            collector.error(f"{prefix}.id must be a number")

        percent = entry.get("scorePercent")
        percent_ok = _is_number(percent) and 0 <= percent <= 100
        if percent is not None and not percent_ok:
            collector.error(f"{prefix}.scorePercent must be a number between 0-100")

        success = entry.get("scoreSuccess")
        if success not in SCORE_SUCCESS_VALUES:
            collector.error(f"{prefix}.scoreSuccess must be one of: {', '.join(SCORE_SUCCESS_VALUES)}")

        # Category mismatch is advisory only.
        if percent_ok and success != "unknown":
            expected = score_success_for(percent)
            if expected != success:
                collector.warning(
                    f"{prefix}: scorePercent ({percent}) suggests '{expected}' but scoreSuccess is '{success}'"
                )

        comments = entry.get("selfAssessmentComments")
        if isinstance(comments, str) and self.placeholder_marker and self.placeholder_marker in comments:
            collector.warning(f"{prefix}: Self-assessment comments contain {self.placeholder_marker.rstrip(':')} placeholder")

    @staticmethod
    def _check_aggregatable(collector: _Collector, record: Mapping[str, Any]) -> None:
        """Report anything the aggregator would still reject once the field checks pass."""
        if collector.report.errors:
            return
        try:
            coerce_record(record)
        except RecordStructureError as exc:
            for message in exc.errors or [str(exc)]:
                collector.error(message)

    def _check_overall_drift(self, collector: _Collector, record: Mapping[str, Any]) -> None:
        declared = record.get("scorePercent")
        if not _is_number(declared):
            return
        calculated = calculate_overall_percent(record)
        if calculated is None:
            return
        if abs(declared - calculated) > self.drift_tolerance:
            collector.warning(
                f"Overall scorePercent ({declared}) differs from calculated value ({calculated:.1f})"
            )


def calculate_overall_percent(record: Mapping[str, Any]) -> Optional[float]:
    """Overall percent using the aggregation rules, or None if the record cannot be reduced."""
    try:
        parsed = coerce_record(record)
    except RecordStructureError as exc:
        logger.debug("Skipping overall drift check: %s", exc)
        return None
    return reduce_overall(reduce_area(area.score_entries) for area in parsed.area_scores)


_default_validator = RecordValidator()


def validate_record(record: Any, *, source: Optional[str] = None) -> ValidationReport:
    """Validate ``record`` with the default marker and drift tolerance."""
    return _default_validator.validate(record, source=source)


__all__ = [
    "KNOWN_ENTITY_KINDS",
    "RecordValidator",
    "calculate_overall_percent",
    "parses_as_instant",
    "validate_record",
]
