# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""In-process content store used by tests and the CLI."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from kurral_core.pipeline.errors import StaleRunError
from kurral_core.schema.post import Comment, Post
from kurral_core.schema.value import CommentInsight
from kurral_core.scoring.quality_weighting import apply_comment_insights
from kurral_core.store.base import PostNotFoundError

logger = logging.getLogger(__name__)

# Fields the pipeline may write. Anything else in an update is a bug.
ANNOTATION_FIELDS = frozenset({
    "trust_status",
    "claims",
    "verdicts",
    "value_score",
    "value_explanation",
    "discussion_quality",
    "predicted_engagement",
    "prediction_validation",
    "engagement_quality",
    "pipeline_state",
    "pipeline_run_id",
    "stage_revisions",
})


class InMemoryContentStore:
    """
    Dict-backed ContentStore.

    Partial updates replace only the named fields, so concurrent counter
    updates survive an annotation write. Writes carrying an older run id
    than the stored one are rejected (last run wins, not last writer).
    """

    def __init__(self, posts: list[Post] | None = None, comments: list[Comment] | None = None):
        self._posts: dict[str, Post] = {p.id: p for p in posts or []}
        self._comments: dict[str, list[Comment]] = {}
        self._run_ids: dict[str, int] = {}
        self._lock = asyncio.Lock()
        for c in comments or []:
            self._comments.setdefault(c.post_id, []).append(c)
        self.writes: list[tuple[str, dict[str, Any]]] = []

    def add_post(self, post: Post) -> None:
        self._posts[post.id] = post

    def add_comment(self, comment: Comment) -> None:
        self._comments.setdefault(comment.post_id, []).append(comment)

    def delete_post(self, post_id: str) -> None:
        self._posts.pop(post_id, None)
        self._comments.pop(post_id, None)

    def set_counters(self, post_id: str, *, bookmarks: int, rechirps: int, comments: int) -> None:
        post = self._require(post_id)
        self._posts[post_id] = post.model_copy(
            update={"bookmark_count": bookmarks, "rechirp_count": rechirps, "comment_count": comments}
        )

    def _require(self, post_id: str) -> Post:
        post = self._posts.get(post_id)
        if post is None:
            raise PostNotFoundError(post_id)
        return post

    async def get_post(self, post_id: str) -> Post | None:
        return self._posts.get(post_id)

    async def load_comments(self, post_id: str) -> list[Comment]:
        return sorted(self._comments.get(post_id, []), key=lambda c: c.created_at)

    async def next_run_id(self, post_id: str) -> int:
        async with self._lock:
            post = self._require(post_id)
            run_id = max(self._run_ids.get(post_id, 0), post.pipeline_run_id) + 1
            self._run_ids[post_id] = run_id
            return run_id

    async def save_annotations(self, post_id: str, update: dict[str, Any], *, run_id: int) -> None:
        unknown = set(update) - ANNOTATION_FIELDS
        if unknown:
            raise ValueError(f"Not annotation fields: {sorted(unknown)}")

        async with self._lock:
            post = self._require(post_id)
            if run_id < post.pipeline_run_id:
                raise StaleRunError(post_id, run_id, post.pipeline_run_id)

            data = post.model_dump()
            data.update(update)
            data["pipeline_run_id"] = run_id
            self._posts[post_id] = Post.model_validate(data)
            self.writes.append((post_id, dict(update)))
            logger.debug("[MemoryStore] post=%s run=%d fields=%s", post_id, run_id, sorted(update))

    async def save_comment_insights(
        self, post_id: str, insights: list[CommentInsight], *, run_id: int
    ) -> None:
        async with self._lock:
            post = self._require(post_id)
            if run_id < post.pipeline_run_id:
                raise StaleRunError(post_id, run_id, post.pipeline_run_id)

            comments = self._comments.get(post_id, [])
            self._comments[post_id] = apply_comment_insights(comments, insights)
            matched = {c.id for c in comments} & {i.comment_id for i in insights}
            logger.debug("[MemoryStore] post=%s run=%d scored %d comments", post_id, run_id, len(matched))
