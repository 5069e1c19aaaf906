# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Prediction validator.

Compares the publish-time engagement forecast with what actually happened.
Only severe, uniform underperformance is flagged: a post that overperforms
is never treated as suspicious.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass

from kurral_core.schema.engagement import (
    EngagementCounters,
    EngagementPrediction,
    PredictionValidation,
)
from kurral_core.schema.post import Post
from kurral_core.schema.serialization import utc_now

logger = logging.getLogger(__name__)

FLAG_ERROR_THRESHOLD = 0.8
UNDERPERFORMANCE_RATIO = 0.2
ACCURATE_ERROR_THRESHOLD = 0.5

VALIDATION_WINDOW = (datetime.timedelta(days=6), datetime.timedelta(days=8))
VALIDATION_BATCH_LIMIT = 200


def metric_error(predicted: float, actual: float) -> float:
    return abs(predicted - actual) / max(predicted, 1.0)


def validate_prediction(
    prediction: EngagementPrediction,
    observed: EngagementCounters,
    *,
    now: datetime.datetime | None = None,
) -> PredictionValidation:
    pb = prediction.expected_bookmarks_7d
    pr = prediction.expected_rechirps_7d
    pc = prediction.expected_comments_7d
    ab = observed.bookmark_count
    ar = observed.rechirp_count
    ac = observed.comment_count

    b_err = metric_error(pb, ab)
    r_err = metric_error(pr, ar)
    c_err = metric_error(pc, ac)
    overall = (b_err + r_err + c_err) / 3.0

    flagged = (
        overall > FLAG_ERROR_THRESHOLD
        and ab < pb * UNDERPERFORMANCE_RATIO
        and ar < pr * UNDERPERFORMANCE_RATIO
        and ac < pc * UNDERPERFORMANCE_RATIO
    )

    return PredictionValidation(
        overall_error=overall,
        flagged_for_review=flagged,
        validated_at=now or utc_now(),
        bookmark_error=b_err,
        rechirp_error=r_err,
        comment_error=c_err,
    )


def is_due_for_validation(post: Post, now: datetime.datetime) -> bool:
    if post.predicted_engagement is None:
        return False
    age = now - post.created_at
    lo, hi = VALIDATION_WINDOW
    return lo <= age <= hi


@dataclass(frozen=True)
class ValidationOutcome:
    post_id: str
    author_id: str
    validation: PredictionValidation


def validate_due_posts(
    posts: list[Post],
    now: datetime.datetime | None = None,
    *,
    limit: int = VALIDATION_BATCH_LIMIT,
) -> list[ValidationOutcome]:
    """
    Batch helper for the delayed validation job.

    Picks posts created 6 to 8 days before `now` that carry a prediction
    and validates each against its current counters, stopping after
    `limit` validations. Persisting the results is the caller's job.
    """
    now = now or utc_now()
    outcomes: list[ValidationOutcome] = []
    for post in posts:
        if len(outcomes) >= limit:
            break
        if not is_due_for_validation(post, now):
            continue
        validation = validate_prediction(post.predicted_engagement, post.counters(), now=now)
        outcomes.append(ValidationOutcome(post_id=post.id, author_id=post.author_id, validation=validation))
        logger.debug(
            "[Validation] post=%s error=%.2f flagged=%s",
            post.id, validation.overall_error, validation.flagged_for_review,
        )

    flagged = sum(1 for o in outcomes if o.validation.flagged_for_review)
    logger.info("[Validation] Validated %d posts, %d flagged", len(outcomes), flagged)
    return outcomes


@dataclass(frozen=True)
class AuthorAccuracy:
    author_id: str
    validated: int
    accurate: int
    mean_error: float

    @property
    def accuracy_rate(self) -> float:
        return self.accurate / self.validated if self.validated else 0.0


def summarize_author_accuracy(outcomes: list[ValidationOutcome]) -> dict[str, AuthorAccuracy]:
    """Per-author prediction accuracy; a prediction is accurate when its error is below 0.5."""
    errors: dict[str, list[float]] = {}
    for o in outcomes:
        errors.setdefault(o.author_id, []).append(o.validation.overall_error)

    return {
        author_id: AuthorAccuracy(
            author_id=author_id,
            validated=len(errs),
            accurate=sum(1 for e in errs if e < ACCURATE_ERROR_THRESHOLD),
            mean_error=sum(errs) / len(errs),
        )
        for author_id, errs in errors.items()
    }
