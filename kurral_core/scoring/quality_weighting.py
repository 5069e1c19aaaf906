# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Contributor-quality weighting for engagement counts.

Bookmarks and rechirps are weighted by the reputation score (0-100) of the
users behind them; comments are weighted by the per-comment value
contribution assigned during discussion analysis. Each kind reduces to a
mean quality in [0, 1], and the weighted count is `count * quality`.
"""

from __future__ import annotations

from collections.abc import Iterable

from kurral_core.schema.engagement import EngagementCounters, EngagementQuality
from kurral_core.schema.post import Comment
from kurral_core.schema.serialization import clamp_unit
from kurral_core.schema.value import CommentInsight

DEFAULT_CONTRIBUTOR_SCORE = 50.0
NEUTRAL_QUALITY = 0.5


def average_contributor_quality(scores: Iterable[float | None]) -> float:
    """
    Mean normalized reputation of contributors.

    Missing scores count as the default reputation (50). Returns 0.0 when
    there are no contributors at all.
    """
    values = [DEFAULT_CONTRIBUTOR_SCORE if s is None else float(s) for s in scores]
    if not values:
        return 0.0
    return min(1.0, max(0.0, sum(v / 100.0 for v in values) / len(values)))


def comment_quality(comments: list[Comment]) -> float:
    """Mean value contribution per unique commenter; unscored comments count as neutral."""
    by_author: dict[str, list[float]] = {}
    for c in comments:
        key = c.author_id or c.id
        vc = NEUTRAL_QUALITY if c.value_contribution is None else clamp_unit(c.value_contribution)
        by_author.setdefault(key, []).append(vc)
    if not by_author:
        return 0.0
    per_author = [sum(v) / len(v) for v in by_author.values()]
    return sum(per_author) / len(per_author)


def apply_comment_insights(comments: list[Comment], insights: list[CommentInsight]) -> list[Comment]:
    """Copies of `comments` carrying the role and value contribution from matching insights."""
    by_id = {i.comment_id: i for i in insights}
    out = []
    for c in comments:
        insight = by_id.get(c.id)
        if insight is None:
            out.append(c)
            continue
        out.append(c.model_copy(update={
            "value_contribution": insight.value_contribution,
            "discussion_role": insight.role,
        }))
    return out


def refresh_comment_quality(previous: EngagementQuality | None, comments: list[Comment]) -> EngagementQuality:
    """
    Recompute comment quality after discussion analysis.

    Bookmark and rechirp quality come from contributor reputations the
    pipeline never sees, so they carry over from `previous`.
    """
    base = previous or EngagementQuality()
    return base.model_copy(update={"comment_quality": comment_quality(comments)})


def build_engagement_quality(
    *,
    bookmarker_scores: Iterable[float | None] = (),
    rechirper_scores: Iterable[float | None] = (),
    comments: list[Comment] | None = None,
) -> EngagementQuality:
    return EngagementQuality(
        bookmark_quality=average_contributor_quality(bookmarker_scores),
        rechirp_quality=average_contributor_quality(rechirper_scores),
        comment_quality=comment_quality(comments or []),
    )


def weighted_counts(
    counters: EngagementCounters,
    quality: EngagementQuality | None,
) -> tuple[float, float, float]:
    """(bookmarks, rechirps, comments) scaled by contributor quality."""
    q = quality or EngagementQuality()
    return (
        counters.bookmark_count * q.bookmark_quality,
        counters.rechirp_count * q.rechirp_quality,
        counters.comment_count * q.comment_quality,
    )
