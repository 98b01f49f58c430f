"""Data models for entity self-assessment records and their normalized form."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .score_bands import ScoreLabel, ScoreSuccess


Number = Union[int, float]


class EntityRef(BaseModel):
    """Catalog reference to the entity being assessed."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    kind: str
    name: str
    namespace: Optional[str] = None


class ScoreEntry(BaseModel):
    """Single scored criterion inside an area."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Number
    title: Optional[str] = None
    details: Optional[str] = None
    score_success: ScoreSuccess = Field(alias="scoreSuccess")
    score_percent: Optional[float] = Field(default=None, alias="scorePercent", allow_inf_nan=False)
    is_optional: Optional[bool] = Field(default=None, alias="isOptional")
    self_assessment_comments: Optional[str] = Field(default=None, alias="selfAssessmentComments")

    @property
    def is_scored(self) -> bool:
        """Whether the entry takes part in the area mean."""
        return (
            self.score_success != "unknown"
            and self.score_percent is not None
            and not self.is_optional
        )


class AreaScore(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Number
    title: str
    score_entries: List[ScoreEntry] = Field(alias="scoreEntries")


class AssessmentRecord(BaseModel):
    """One entity's self-review as authored in the records directory."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    entity_ref: EntityRef = Field(alias="entityRef")
    generated_date_time_utc: Optional[str] = Field(default=None, alias="generatedDateTimeUtc")
    scoring_review_date: Optional[str] = Field(default=None, alias="scoringReviewDate")
    scoring_reviewer: Optional[str] = Field(default=None, alias="scoringReviewer")
    area_scores: List[AreaScore] = Field(alias="areaScores")


class AreaSummary(BaseModel):
    """Computed summary for one area; raw entries are not carried over."""

    model_config = ConfigDict(populate_by_name=True)

    id: Number
    title: str
    score_percent: int = Field(alias="scorePercent")
    score_label: ScoreLabel = Field(alias="scoreLabel")
    score_success: ScoreSuccess = Field(alias="scoreSuccess")


class NormalizedRecord(BaseModel):
    """Aggregated projection of an assessment record consumed by the dashboard."""

    model_config = ConfigDict(populate_by_name=True)

    entity_ref: EntityRef = Field(alias="entityRef")
    generated_date_time_utc: str = Field(alias="generatedDateTimeUtc")
    score_percent: int = Field(alias="scorePercent")
    score_label: ScoreLabel = Field(alias="scoreLabel")
    score_success: ScoreSuccess = Field(alias="scoreSuccess")
    scoring_reviewer: Optional[str] = Field(default=None, alias="scoringReviewer")
    scoring_review_date: Optional[str] = Field(default=None, alias="scoringReviewDate")
    area_scores: List[AreaSummary] = Field(default_factory=list, alias="areaScores")
    unscored_area_ids: Optional[List[Number]] = Field(default=None, alias="unscoredAreaIds")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ValidationReport(BaseModel):
    """Accumulated outcome of validating a single record."""

    source: Optional[str] = None
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_payload(self) -> Dict[str, Any]:
        payload = self.model_dump(mode="json", exclude_none=True)
        payload["valid"] = self.valid
        return payload


__all__ = [
    "AreaScore",
    "AreaSummary",
    "AssessmentRecord",
    "EntityRef",
    "NormalizedRecord",
    "ScoreEntry",
    "ValidationReport",
]
