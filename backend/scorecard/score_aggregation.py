"""Reduce assessment records into area and overall scores."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from .assessment_record import (
    AreaSummary,
    AssessmentRecord,
    EntityRef,
    NormalizedRecord,
    ScoreEntry,
)
from .exceptions import RecordStructureError
from .score_bands import round_percent, score_label_for, score_success_for


logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"

RecordInput = Union[AssessmentRecord, Mapping[str, Any]]


def _mean(values: Sequence[float]) -> float:
    total = sum(values)
    if math.isinf(total):
        # Out-of-range percents can overflow the sum; divide first instead.
        return sum(value / len(values) for value in values)
    return total / len(values)


def reduce_area(entries: Iterable[ScoreEntry]) -> float:
    """Arithmetic mean of the scored entries, or 0.0 when none are scored.

    Unknown, optional and percent-less entries are skipped entirely rather
    than counted as zero.
    """
    percents = [float(entry.score_percent) for entry in entries if entry.is_scored]  # type: ignore[arg-type]
    if not percents:
        return 0.0
    return _mean(percents)


def reduce_overall(area_percents: Iterable[float]) -> float:
    """Mean of the area percents strictly above zero.

    An area at exactly 0 is treated as unscored and left out of the mean.
    """
    scored = [percent for percent in area_percents if percent > 0]
    if not scored:
        return 0.0
    return _mean(scored)


def coerce_record(record: RecordInput, *, source: Optional[str] = None) -> AssessmentRecord:
    if isinstance(record, AssessmentRecord):
        return record
    if not isinstance(record, Mapping):
        raise RecordStructureError(
            f"Invalid entity score structure: expected an object, got {type(record).__name__}",
            source=source,
        )
    if record.get("entityRef") is None or record.get("areaScores") is None:
        raise RecordStructureError("Invalid entity score structure", source=source)
    try:
        return AssessmentRecord.model_validate(dict(record))
    except ValidationError as exc:
        errors = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        raise RecordStructureError(
            f"Invalid entity score structure: {len(errors)} field error(s)",
            source=source,
            errors=errors,
        ) from exc


def _normalized_entity_ref(entity_ref: EntityRef) -> EntityRef:
    namespace = entity_ref.namespace
    if not namespace or namespace == DEFAULT_NAMESPACE:
        namespace = None
    return EntityRef(kind=entity_ref.kind, name=entity_ref.name, namespace=namespace)


def _utc_timestamp(now: Optional[datetime] = None) -> str:
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def aggregate(
    record: RecordInput,
    *,
    source: Optional[str] = None,
    include_unscored_areas: bool = False,
    now: Optional[datetime] = None,
) -> NormalizedRecord:
    """Build the normalized projection of a single assessment record.

    The input is never mutated. Labels and categories are derived from the
    freshly computed percents only.
    """
    parsed = coerce_record(record, source=source)

    area_percents: List[float] = []
    summaries: List[AreaSummary] = []
    for area in parsed.area_scores:
        percent = reduce_area(area.score_entries)
        area_percents.append(percent)
        summaries.append(
            AreaSummary(
                id=area.id,
                title=area.title,
                score_percent=round_percent(percent),
                score_label=score_label_for(percent),
                score_success=score_success_for(percent),
            )
        )

    overall = reduce_overall(area_percents)
    unscored_ids = None
    if include_unscored_areas:
        unscored_ids = [
            area.id for area, percent in zip(parsed.area_scores, area_percents) if percent <= 0
        ]

    normalized = NormalizedRecord(
        entity_ref=_normalized_entity_ref(parsed.entity_ref),
        generated_date_time_utc=parsed.generated_date_time_utc or _utc_timestamp(now),
        score_percent=round_percent(overall),
        score_label=score_label_for(overall),
        score_success=score_success_for(overall),
        scoring_reviewer=parsed.scoring_reviewer or None,
        scoring_review_date=parsed.scoring_review_date or None,
        area_scores=summaries,
        unscored_area_ids=unscored_ids,
    )
    logger.debug(
        "Aggregated %s: %.1f%% across %d areas",
        parsed.entity_ref.name,
        overall,
        len(summaries),
    )
    return normalized


def sort_key(record: NormalizedRecord) -> tuple[str, str]:
    name = record.entity_ref.name
    return (name.casefold(), name)


def aggregate_collection(
    records: Sequence[RecordInput],
    *,
    include_unscored_areas: bool = False,
    now: Optional[datetime] = None,
) -> List[NormalizedRecord]:
    """Aggregate every record and return them ordered by entity name.

    Raises on the first structurally invalid record; batch runners that need
    best-effort behaviour call :func:`aggregate` per record instead.
    """
    normalized = [
        aggregate(record, include_unscored_areas=include_unscored_areas, now=now)
        for record in records
    ]
    return sorted(normalized, key=sort_key)


__all__ = [
    "DEFAULT_NAMESPACE",
    "aggregate",
    "aggregate_collection",
    "coerce_record",
    "reduce_area",
    "reduce_overall",
    "sort_key",
]
