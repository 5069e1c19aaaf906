# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors

import datetime
import math

import pytest

from kurral_core.runtime_config import EngineRankingConfig
from kurral_core.schema.engagement import EngagementCounters, EngagementQuality, PredictionValidation
from kurral_core.scoring.ranking import (
    apply_diversity_limits,
    bookmark_boost,
    comment_boost,
    compute_ranking_score,
    rank_posts,
    ranking_breakdown,
    rechirp_boost,
)

from conftest import make_post, make_value

T0 = datetime.datetime(2025, 1, 1, tzinfo=datetime.timezone.utc)


def _counters(b=0, r=0, c=0) -> EngagementCounters:
    return EngagementCounters(bookmark_count=b, rechirp_count=r, comment_count=c)


# ─────────────────────────────────────────────────────────────────────────────
# Boost terms
# ─────────────────────────────────────────────────────────────────────────────

def test_bookmark_boost_caps():
    assert bookmark_boost(0) == 0.0
    assert bookmark_boost(5) == 15.0
    assert bookmark_boost(50) == 25.0


def test_rechirp_boost_monotonic_and_capped():
    values = [rechirp_boost(n) for n in (0, 1, 5, 10, 100, 10_000, 10**9)]
    assert values[0] == 0.0
    assert all(b >= a for a, b in zip(values, values[1:]))
    assert max(values) == 20.0
    assert rechirp_boost(9) == pytest.approx(8.0)


def test_comment_boost():
    assert comment_boost(9) == pytest.approx(5.0)
    assert comment_boost(10**6) == 20.0


# ─────────────────────────────────────────────────────────────────────────────
# Score composition
# ─────────────────────────────────────────────────────────────────────────────

def test_score_formula():
    post = make_post(value_score=make_value(total=0.5))
    score = compute_ranking_score(post, _counters(b=2, r=9, c=9))
    assert score == pytest.approx(0.5 * 40 + 6 + 8 + 5)


def test_flag_penalty_is_exactly_fifteen():
    post = make_post(value_score=make_value(total=0.8))
    counters = _counters(b=4, r=3, c=7)
    clean = compute_ranking_score(post, counters, PredictionValidation(flagged_for_review=False))
    flagged = compute_ranking_score(post, counters, PredictionValidation(flagged_for_review=True))
    assert clean - flagged == pytest.approx(15.0)


def test_unscored_post_uses_neutral_prior():
    unscored = make_post(value_score=None)
    breakdown = ranking_breakdown(unscored, _counters())
    assert breakdown.value_term == pytest.approx(20.0)
    assert breakdown.value_scored is False
    assert breakdown.score > compute_ranking_score(make_post(value_score=make_value(total=0.0)), _counters())


def test_counters_and_validation_default_to_post():
    post = make_post(
        value_score=make_value(total=0.5),
        bookmark_count=50,
        prediction_validation=PredictionValidation(flagged_for_review=True),
    )
    breakdown = ranking_breakdown(post)
    assert breakdown.bookmark_term == 25.0
    assert breakdown.penalty == 15.0


def test_explanation_reasons():
    post = make_post(value_score=make_value(total=0.9))
    breakdown = ranking_breakdown(
        post, _counters(b=10, r=100, c=100), PredictionValidation(flagged_for_review=True)
    )
    assert breakdown.explanation == (
        "Because: highly bookmarked + frequently shared + active conversation"
        " + high value content + prediction mismatch (possible gaming)"
    )


def test_explanation_for_quiet_post():
    assert ranking_breakdown(make_post(), _counters()).explanation == "Because: recent post"


def test_breakdown_to_dict_has_score():
    d = ranking_breakdown(make_post(value_score=make_value(total=0.5)), _counters(b=1)).to_dict()
    assert d["score"] == pytest.approx(23.0)
    assert d["value_scored"] is True


def test_custom_penalty_from_config():
    post = make_post(value_score=make_value(total=0.5))
    score = compute_ranking_score(
        post, _counters(), PredictionValidation(flagged_for_review=True),
        config=EngineRankingConfig(flag_penalty=5.0),
    )
    assert score == pytest.approx(15.0)


# ─────────────────────────────────────────────────────────────────────────────
# Quality-weighted variant
# ─────────────────────────────────────────────────────────────────────────────

def test_quality_weighting_scales_counts():
    post = make_post(value_score=make_value(total=0.5))
    quality = EngagementQuality(bookmark_quality=0.5, rechirp_quality=1.0, comment_quality=0.0)
    breakdown = ranking_breakdown(post, _counters(b=4, r=9, c=9), quality_weighted=True, quality=quality)

    assert breakdown.bookmark_term == pytest.approx(6.0)
    assert breakdown.rechirp_term == pytest.approx(8.0)
    assert breakdown.comment_term == 0.0


def test_quality_weighting_defaults_to_neutral():
    post = make_post(value_score=make_value(total=0.5))
    breakdown = ranking_breakdown(post, _counters(b=4), quality_weighted=True)
    assert breakdown.bookmark_term == pytest.approx(6.0)


def test_quality_weighting_uses_stored_quality():
    post = make_post(engagement_quality=EngagementQuality(bookmark_quality=1.0))
    assert ranking_breakdown(post, _counters(b=4), quality_weighted=True).bookmark_term == pytest.approx(12.0)


def test_weighted_rechirp_uses_log_of_weighted_count():
    post = make_post()
    quality = EngagementQuality(rechirp_quality=0.5)
    term = ranking_breakdown(post, _counters(r=18), quality_weighted=True, quality=quality).rechirp_term
    assert term == pytest.approx(math.log10(10) * 8)


# ─────────────────────────────────────────────────────────────────────────────
# Ordering
# ─────────────────────────────────────────────────────────────────────────────

def test_rank_orders_by_score():
    low = make_post("low", value_score=make_value(total=0.1))
    high = make_post("high", author_id="a2", value_score=make_value(total=0.9))
    ranked = rank_posts([low, high])
    assert [rp.post.id for rp in ranked] == ["high", "low"]
    assert ranked[0].score > ranked[1].score


def test_near_ties_ordered_by_recency():
    older = make_post("older", author_id="a1", created_at=T0, value_score=make_value(total=0.52))
    newer = make_post(
        "newer", author_id="a2", created_at=T0 + datetime.timedelta(hours=3), value_score=make_value(total=0.5)
    )
    ranked = rank_posts([older, newer])
    assert [rp.post.id for rp in ranked] == ["newer", "older"]


def test_clear_winner_not_reordered_by_recency():
    older = make_post("older", author_id="a1", created_at=T0, value_score=make_value(total=0.9))
    newer = make_post(
        "newer", author_id="a2", created_at=T0 + datetime.timedelta(hours=3), value_score=make_value(total=0.5)
    )
    assert [rp.post.id for rp in rank_posts([older, newer])] == ["older", "newer"]


def test_author_diversity_in_top_window():
    posts = [
        make_post(f"a-{i}", author_id="prolific", value_score=make_value(total=0.9 - i * 0.01)) for i in range(6)
    ] + [
        make_post(f"b-{i}", author_id=f"other-{i}", value_score=make_value(total=0.1)) for i in range(3)
    ]
    ranked = rank_posts(posts, limit=20)
    prolific = [rp for rp in ranked if rp.post.author_id == "prolific"]
    assert len(prolific) == 3
    assert len(ranked) == 6


def test_author_cap_relaxes_after_top_window():
    config = EngineRankingConfig(top_window=2, max_per_author_top=1, max_per_author_total=2)
    posts = [
        make_post("x1", author_id="x", value_score=make_value(total=0.9)),
        make_post("x2", author_id="x", value_score=make_value(total=0.8)),
        make_post("y1", author_id="y", value_score=make_value(total=0.7)),
        make_post("z1", author_id="z", value_score=make_value(total=0.6)),
        make_post("x3", author_id="x", value_score=make_value(total=0.5)),
    ]
    ranked = rank_posts(posts, config=config)
    # x2 is dropped inside the top window; x3 fits under the overall cap.
    assert [rp.post.id for rp in ranked] == ["x1", "y1", "z1", "x3"]


def test_limit():
    posts = [make_post(f"p{i}", author_id=f"a{i}") for i in range(10)]
    assert len(rank_posts(posts, limit=4)) == 4


def test_apply_diversity_limits_empty():
    assert apply_diversity_limits([], limit=10) == []
