# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from kurral_core.pipeline.constants import STAGE_DISCUSSION
from kurral_core.pipeline.core import PipelineContext
from kurral_core.pipeline.executor import StageExecutor


@dataclass
class DiscussionStep:
    """
    Score the comment thread. Not run for posts without comments; on
    failure the value is absent (no fabricated thread quality).
    """

    agent: Any  # PipelineAgent
    executor: StageExecutor
    name: str = STAGE_DISCUSSION

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        if not ctx.comments:
            return ctx.with_skipped(self.name, "no comments")

        post, comments = ctx.post, ctx.comments
        result = await self.executor.run(
            self.name,
            lambda: self.agent.analyze_discussion(post, comments),
            state=ctx.stage_state(self.name),
        )
        return ctx.with_result(self.name, result)
