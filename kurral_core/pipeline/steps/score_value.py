# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from kurral_core.pipeline.constants import (
    STAGE_DISCUSSION,
    STAGE_EXTRACT_CLAIMS,
    STAGE_SCORE_VALUE,
    STAGE_VERIFY_CLAIMS,
)
from kurral_core.pipeline.core import PipelineContext
from kurral_core.pipeline.executor import StageExecutor


@dataclass
class ScoreValueStep:
    """
    Score the post's value vector.

    On failure the value is absent rather than zero: "not scored yet" is a
    valid state that ranking handles with a neutral prior.
    """

    agent: Any  # PipelineAgent
    executor: StageExecutor
    name: str = STAGE_SCORE_VALUE

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        post = ctx.post
        claims = ctx.value(STAGE_EXTRACT_CLAIMS, [])
        verdicts = ctx.value(STAGE_VERIFY_CLAIMS, [])
        discussion = ctx.value(STAGE_DISCUSSION)

        result = await self.executor.run(
            self.name,
            lambda: self.agent.score_value(post, claims, verdicts, discussion),
            state=ctx.stage_state(self.name),
        )
        return ctx.with_result(self.name, result)
