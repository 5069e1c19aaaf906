# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Content store boundary.

The store owns posts, comments and engagement counters. The pipeline only
reads them and writes annotation fields back through `save_annotations`,
one partial update per run. Per-comment discussion insights go back
through `save_comment_insights`.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from kurral_core.schema.post import Comment, Post
from kurral_core.schema.value import CommentInsight


class PostNotFoundError(LookupError):
    def __init__(self, post_id: str):
        self.post_id = post_id
        super().__init__(f"Post not found: {post_id}")


@runtime_checkable
class ContentStore(Protocol):
    async def get_post(self, post_id: str) -> Post | None:
        ...

    async def load_comments(self, post_id: str) -> list[Comment]:
        ...

    async def save_annotations(self, post_id: str, update: dict[str, Any], *, run_id: int) -> None:
        """
        Apply a partial update to the post's annotation fields.

        Fields not named in `update` must be left untouched. Implementations
        raise StaleRunError when `run_id` is older than the stored run id.
        """
        ...

    async def save_comment_insights(
        self, post_id: str, insights: list[CommentInsight], *, run_id: int
    ) -> None:
        """
        Set `value_contribution` and `discussion_role` on the post's comments.

        Comments without a matching insight are left untouched. Same
        staleness rule as `save_annotations`.
        """
        ...

    async def next_run_id(self, post_id: str) -> int:
        """Allocate a run id strictly greater than any previous one for the post."""
        ...
