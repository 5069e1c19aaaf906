# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Ranking composer.

score = value_total * 40
      + min(25, bookmarks * 3)
      + min(20, log10(rechirps + 1) * 8)
      + min(20, log10(comments + 1) * 5)
      - (flag_penalty if validation flagged else 0)

The quality-weighted variant feeds `count * contributor quality` through the
same caps and logs. A post with no value score uses a neutral prior instead
of zero. Everything here is pure and cheap: safe to call per feed read.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from kurral_core.runtime_config import EngineRankingConfig
from kurral_core.schema.engagement import EngagementCounters, EngagementQuality, PredictionValidation
from kurral_core.schema.post import Post
from kurral_core.scoring.quality_weighting import weighted_counts

VALUE_WEIGHT = 40.0
BOOKMARK_CAP = 25.0
BOOKMARK_PER_COUNT = 3.0
RECHIRP_CAP = 20.0
RECHIRP_LOG_SCALE = 8.0
COMMENT_CAP = 20.0
COMMENT_LOG_SCALE = 5.0

HIGH_VALUE_TOTAL = 0.7

DEFAULT_RANKING = EngineRankingConfig()


def bookmark_boost(count: float) -> float:
    return min(BOOKMARK_CAP, max(0.0, count) * BOOKMARK_PER_COUNT)


def rechirp_boost(count: float) -> float:
    return min(RECHIRP_CAP, math.log10(max(0.0, count) + 1.0) * RECHIRP_LOG_SCALE)


def comment_boost(count: float) -> float:
    return min(COMMENT_CAP, math.log10(max(0.0, count) + 1.0) * COMMENT_LOG_SCALE)


@dataclass(frozen=True)
class RankingBreakdown:
    post_id: str
    value_term: float
    bookmark_term: float
    rechirp_term: float
    comment_term: float
    penalty: float
    value_scored: bool
    reasons: list[str] = field(default_factory=list)

    @property
    def score(self) -> float:
        return self.value_term + self.bookmark_term + self.rechirp_term + self.comment_term - self.penalty

    @property
    def explanation(self) -> str:
        return "Because: " + (" + ".join(self.reasons) if self.reasons else "recent post")

    def to_dict(self) -> dict:
        return {
            "post_id": self.post_id,
            "score": self.score,
            "value_term": self.value_term,
            "bookmark_term": self.bookmark_term,
            "rechirp_term": self.rechirp_term,
            "comment_term": self.comment_term,
            "penalty": self.penalty,
            "value_scored": self.value_scored,
            "explanation": self.explanation,
        }


def ranking_breakdown(
    post: Post,
    counters: EngagementCounters | None = None,
    validation: PredictionValidation | None = None,
    *,
    config: EngineRankingConfig = DEFAULT_RANKING,
    quality_weighted: bool = False,
    quality: EngagementQuality | None = None,
) -> RankingBreakdown:
    """
    Itemized ranking score for one post.

    `counters` and `validation` default to the values persisted on the post.
    """
    counters = counters or post.counters()
    validation = validation if validation is not None else post.prediction_validation

    if quality_weighted:
        bookmarks, rechirps, comments = weighted_counts(counters, quality or post.engagement_quality)
    else:
        bookmarks = float(counters.bookmark_count)
        rechirps = float(counters.rechirp_count)
        comments = float(counters.comment_count)

    value = post.value_score
    total = value.total if value is not None else config.unscored_value_prior
    flagged = bool(validation and validation.flagged_for_review)

    b = bookmark_boost(bookmarks)
    r = rechirp_boost(rechirps)
    c = comment_boost(comments)

    reasons: list[str] = []
    if b > 10:
        reasons.append("highly bookmarked")
    if r > 5:
        reasons.append("frequently shared")
    if c > 5:
        reasons.append("active conversation")
    if value is not None and total >= HIGH_VALUE_TOTAL:
        reasons.append("high value content")
    if flagged:
        reasons.append("prediction mismatch (possible gaming)")

    return RankingBreakdown(
        post_id=post.id,
        value_term=total * VALUE_WEIGHT,
        bookmark_term=b,
        rechirp_term=r,
        comment_term=c,
        penalty=config.flag_penalty if flagged else 0.0,
        value_scored=value is not None,
        reasons=reasons,
    )


def compute_ranking_score(
    post: Post,
    counters: EngagementCounters | None = None,
    validation: PredictionValidation | None = None,
    *,
    config: EngineRankingConfig = DEFAULT_RANKING,
    quality_weighted: bool = False,
    quality: EngagementQuality | None = None,
) -> float:
    return ranking_breakdown(
        post,
        counters,
        validation,
        config=config,
        quality_weighted=quality_weighted,
        quality=quality,
    ).score


@dataclass(frozen=True)
class RankedPost:
    post: Post
    breakdown: RankingBreakdown

    @property
    def score(self) -> float:
        return self.breakdown.score


def _tie_threshold(a: float, b: float, config: EngineRankingConfig) -> float:
    return max(config.tie_threshold_min, max(abs(a), abs(b)) * config.tie_threshold_ratio)


def _order_with_recency_ties(items: list[RankedPost], config: EngineRankingConfig) -> list[RankedPost]:
    """
    Sort by score, then reorder by recency inside tie bands.

    A band starts at its highest-scored post and takes every following post
    whose score is within the tie threshold of that head.
    """
    by_score = sorted(items, key=lambda rp: (rp.score, rp.post.created_at), reverse=True)
    ordered: list[RankedPost] = []
    i = 0
    while i < len(by_score):
        head = by_score[i]
        j = i + 1
        while j < len(by_score) and head.score - by_score[j].score < _tie_threshold(
            head.score, by_score[j].score, config
        ):
            j += 1
        ordered.extend(sorted(by_score[i:j], key=lambda rp: rp.post.created_at, reverse=True))
        i = j
    return ordered


def apply_diversity_limits(
    items: list[RankedPost],
    *,
    limit: int,
    config: EngineRankingConfig = DEFAULT_RANKING,
) -> list[RankedPost]:
    results: list[RankedPost] = []
    per_author: dict[str, int] = {}
    for rp in items:
        if len(results) >= limit:
            break
        author = rp.post.author_id
        count = per_author.get(author, 0)
        cap = config.max_per_author_top if len(results) < config.top_window else config.max_per_author_total
        if count >= cap:
            continue
        results.append(rp)
        per_author[author] = count + 1
    return results


def rank_posts(
    posts: list[Post],
    *,
    limit: int = 50,
    config: EngineRankingConfig = DEFAULT_RANKING,
    quality_weighted: bool = False,
) -> list[RankedPost]:
    """Rank posts by their persisted counters and validation, with author diversity caps."""
    scored = [
        RankedPost(post=p, breakdown=ranking_breakdown(p, config=config, quality_weighted=quality_weighted))
        for p in posts
    ]
    return apply_diversity_limits(_order_with_recency_ties(scored, config), limit=limit, config=config)
