"""Fixed percentage bands for success categories and color labels.

The two tables are kept separate on purpose: the color boundary sits at 70
while the success/almost-success split sits at 80.
"""

from __future__ import annotations

import math
from typing import List, Literal, NamedTuple, Tuple


ScoreSuccess = Literal["success", "almost-success", "partial", "almost-failure", "failure", "unknown"]
ScoreLabel = Literal["Green", "Yellow", "Red"]

SCORE_SUCCESS_VALUES: Tuple[str, ...] = (
    "success",
    "almost-success",
    "partial",
    "almost-failure",
    "failure",
    "unknown",
)


class ScoreBand(NamedTuple):
    name: str
    min: int
    max: int

    def contains(self, percent: float) -> bool:
        return self.min <= percent <= self.max


SCORE_SUCCESS_BANDS: List[ScoreBand] = [
    ScoreBand("success", 80, 100),
    ScoreBand("almost-success", 70, 79),
    ScoreBand("partial", 50, 69),
    ScoreBand("almost-failure", 30, 49),
    ScoreBand("failure", 0, 29),
]

COLOR_BANDS: List[ScoreBand] = [
    ScoreBand("Green", 70, 100),
    ScoreBand("Yellow", 30, 69),
    ScoreBand("Red", 0, 29),
]


def _lookup(bands: List[ScoreBand], percent: float, fallback: str) -> str:
    # Bands are ordered from the highest lower bound down; a fractional value
    # such as 79.5 lands in the band whose lower bound it has reached.
    for band in bands:
        if percent >= band.min:
            return band.name
    return fallback


def score_success_for(percent: float) -> ScoreSuccess:
    return _lookup(SCORE_SUCCESS_BANDS, percent, "failure")  # type: ignore[return-value]


def score_label_for(percent: float) -> ScoreLabel:
    return _lookup(COLOR_BANDS, percent, "Red")  # type: ignore[return-value]


def round_percent(percent: float) -> int:
    """Round half away from zero for non-negative values (2.5 -> 3)."""
    return int(math.floor(percent + 0.5))


__all__ = [
    "COLOR_BANDS",
    "SCORE_SUCCESS_BANDS",
    "SCORE_SUCCESS_VALUES",
    "ScoreBand",
    "ScoreLabel",
    "ScoreSuccess",
    "round_percent",
    "score_label_for",
    "score_success_for",
]
