# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Engagement predictor.

Deterministic heuristic forecast of 7-day engagement from the value vector
and fact-check verdicts. No I/O, no randomness.

Monotonicity guarantees:
- every counter is strictly increasing in `value.total` and non-decreasing
  in `value.confidence` (both factors are affine with positive slope);
- replacing a `true` verdict with a `false` one never increases a counter,
  and strictly lowers views (each false verdict scales views down).
"""

from __future__ import annotations

from dataclasses import dataclass

from kurral_core.schema.claims import Claim
from kurral_core.schema.engagement import EngagementPrediction
from kurral_core.schema.value import ValueVector
from kurral_core.schema.verdict import Verdict, VerdictValue


@dataclass(frozen=True)
class PredictionBases:
    views: float = 100.0
    bookmarks: float = 5.0
    rechirps: float = 3.0
    comments: float = 10.0

    def scaled(self, views: float, bookmarks: float, rechirps: float, comments: float) -> "PredictionBases":
        return PredictionBases(
            views=self.views * views,
            bookmarks=self.bookmarks * bookmarks,
            rechirps=self.rechirps * rechirps,
            comments=self.comments * comments,
        )


DEFAULT_BASES = PredictionBases()

# A false verdict above these confidences dampens every counter.
BLOCKING_FALSE_CONFIDENCE = 0.9
CONFIDENT_FALSE_CONFIDENCE = 0.7

BLOCKING_FALSE_SCALE = (0.2, 0.1, 0.1, 0.3)
CONFIDENT_FALSE_SCALE = (0.5, 0.3, 0.3, 0.6)


def value_factor(total: float) -> float:
    """Maps total in [0,1] to [0.1, 1.0]; a worthless post still gets some reach."""
    return 0.1 + 0.9 * total


def confidence_factor(confidence: float) -> float:
    return 0.5 + 0.5 * confidence


def false_view_factor(confidence: float) -> float:
    """Per false verdict view damping, in [0.5, 0.9]."""
    return 0.9 - 0.4 * confidence


def _relevant_false_verdicts(claims: list[Claim], verdicts: list[Verdict]) -> list[Verdict]:
    known = {c.id for c in claims}
    return [v for v in verdicts if v.claim_id in known and v.verdict == VerdictValue.FALSE]


def generate_engagement_prediction(
    value: ValueVector,
    claims: list[Claim],
    verdicts: list[Verdict],
    *,
    bases: PredictionBases = DEFAULT_BASES,
) -> EngagementPrediction:
    """
    Forecast 7-day engagement.

    Counters are expected values and stay unrounded so that any increase in
    `total` is visible in every counter.
    """
    false_verdicts = _relevant_false_verdicts(claims, verdicts)

    max_false_conf = max((v.confidence for v in false_verdicts), default=0.0)
    if max_false_conf > BLOCKING_FALSE_CONFIDENCE:
        bases = bases.scaled(*BLOCKING_FALSE_SCALE)
    elif max_false_conf > CONFIDENT_FALSE_CONFIDENCE:
        bases = bases.scaled(*CONFIDENT_FALSE_SCALE)

    views_damping = 1.0
    for v in false_verdicts:
        views_damping *= false_view_factor(v.confidence)

    factor = value_factor(value.total) * confidence_factor(value.confidence)
    return EngagementPrediction(
        expected_views_7d=bases.views * factor * views_damping,
        expected_bookmarks_7d=bases.bookmarks * factor,
        expected_rechirps_7d=bases.rechirps * factor,
        expected_comments_7d=bases.comments * factor,
    )
