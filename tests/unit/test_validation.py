# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors

import datetime

import pytest

from kurral_core.schema.engagement import EngagementCounters, EngagementPrediction, PredictionValidation
from kurral_core.scoring.validation import (
    ValidationOutcome,
    is_due_for_validation,
    metric_error,
    summarize_author_accuracy,
    validate_due_posts,
    validate_prediction,
)

from conftest import make_post

NOW = datetime.datetime(2025, 3, 10, 12, 0, tzinfo=datetime.timezone.utc)


def _prediction(bookmarks=10.0, rechirps=5.0, comments=20.0) -> EngagementPrediction:
    return EngagementPrediction(
        expected_views_7d=100.0,
        expected_bookmarks_7d=bookmarks,
        expected_rechirps_7d=rechirps,
        expected_comments_7d=comments,
    )


def _observed(bookmarks, rechirps, comments) -> EngagementCounters:
    return EngagementCounters(bookmark_count=bookmarks, rechirp_count=rechirps, comment_count=comments)


def test_severe_underperformance_is_flagged():
    result = validate_prediction(_prediction(), _observed(1, 0, 1), now=NOW)

    assert result.bookmark_error == pytest.approx(0.9)
    assert result.rechirp_error == pytest.approx(1.0)
    assert result.comment_error == pytest.approx(0.95)
    assert result.overall_error > 0.8
    assert result.flagged_for_review is True
    assert result.validated_at == NOW


def test_close_prediction_is_not_flagged():
    result = validate_prediction(_prediction(), _observed(9, 5, 18), now=NOW)

    assert result.overall_error == pytest.approx(0.2 / 3.0)
    assert result.flagged_for_review is False


def test_overperformance_is_never_flagged():
    result = validate_prediction(_prediction(), _observed(50, 40, 100))

    assert result.overall_error > 0.8
    assert result.flagged_for_review is False


def test_mixed_underperformance_not_flagged():
    # Bookmarks collapsed but comments did fine: not uniform underperformance.
    result = validate_prediction(_prediction(), _observed(0, 0, 30))
    assert result.flagged_for_review is False


def test_per_metric_errors_recorded():
    result = validate_prediction(_prediction(), _observed(5, 5, 10))
    assert result.bookmark_error == pytest.approx(0.5)
    assert result.rechirp_error == pytest.approx(0.0)
    assert result.comment_error == pytest.approx(0.5)
    assert result.overall_error == pytest.approx(1.0 / 3.0)


def test_metric_error_floors_denominator_at_one():
    assert metric_error(0.2, 3) == pytest.approx(2.8)
    assert metric_error(0.0, 0) == 0.0


def test_due_window():
    post = make_post(created_at=NOW - datetime.timedelta(days=7), predicted_engagement=_prediction())
    assert is_due_for_validation(post, NOW)
    assert not is_due_for_validation(post, NOW + datetime.timedelta(days=2))
    assert not is_due_for_validation(post, NOW - datetime.timedelta(days=2))


def test_unpredicted_post_is_never_due():
    post = make_post(created_at=NOW - datetime.timedelta(days=7))
    assert not is_due_for_validation(post, NOW)


def test_validate_due_posts_uses_current_counters():
    week_old = NOW - datetime.timedelta(days=7)
    due = make_post(
        "p-due", created_at=week_old, predicted_engagement=_prediction(),
        bookmark_count=0, rechirp_count=0, comment_count=1,
    )
    fresh = make_post("p-fresh", created_at=NOW, predicted_engagement=_prediction())
    unpredicted = make_post("p-none", created_at=week_old)

    outcomes = validate_due_posts([due, fresh, unpredicted], NOW)

    assert [o.post_id for o in outcomes] == ["p-due"]
    assert outcomes[0].validation.flagged_for_review is True


def test_validate_due_posts_respects_limit():
    week_old = NOW - datetime.timedelta(days=7)
    posts = [make_post(f"p{i}", created_at=week_old, predicted_engagement=_prediction()) for i in range(5)]
    assert len(validate_due_posts(posts, NOW, limit=2)) == 2


def test_author_accuracy_summary():
    outcomes = [
        ValidationOutcome("p1", "alice", PredictionValidation(overall_error=0.2)),
        ValidationOutcome("p2", "alice", PredictionValidation(overall_error=0.9)),
        ValidationOutcome("p3", "bob", PredictionValidation(overall_error=0.1)),
    ]
    summary = summarize_author_accuracy(outcomes)

    assert summary["alice"].validated == 2
    assert summary["alice"].accurate == 1
    assert summary["alice"].accuracy_rate == pytest.approx(0.5)
    assert summary["alice"].mean_error == pytest.approx(0.55)
    assert summary["bob"].accuracy_rate == 1.0


def test_validate_due_posts_limit_counts_only_due_posts():
    fresh = [make_post(f"fresh-{i}", created_at=NOW, predicted_engagement=_prediction()) for i in range(200)]
    due = make_post("due", created_at=NOW - datetime.timedelta(days=7), predicted_engagement=_prediction())

    outcomes = validate_due_posts([*fresh, due], NOW)

    assert [o.post_id for o in outcomes] == ["due"]
