# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from kurral_core.agents.skills.explanation import fallback_explanation
from kurral_core.pipeline.constants import (
    STAGE_DISCUSSION,
    STAGE_EXPLANATION,
    STAGE_EXTRACT_CLAIMS,
    STAGE_SCORE_VALUE,
    STAGE_VERIFY_CLAIMS,
)
from kurral_core.pipeline.core import PipelineContext
from kurral_core.pipeline.executor import StageExecutor


@dataclass
class ExplanationStep:
    """
    Human-readable explanation of the value score.

    Non-authoritative: on failure the templated explanation built from the
    numeric fields is used, so this stage never blocks publication.
    """

    agent: Any  # PipelineAgent
    executor: StageExecutor
    name: str = STAGE_EXPLANATION

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        value = ctx.value(STAGE_SCORE_VALUE)
        if value is None:
            return ctx.with_skipped(self.name, "no value score to explain")

        post = ctx.post
        claims = ctx.value(STAGE_EXTRACT_CLAIMS, [])
        verdicts = ctx.value(STAGE_VERIFY_CLAIMS, [])
        discussion = ctx.value(STAGE_DISCUSSION)

        result = await self.executor.run(
            self.name,
            lambda: self.agent.explain(post, value, claims, verdicts, discussion),
            fallback=lambda _reason: fallback_explanation(value, claims, verdicts, discussion),
            state=ctx.stage_state(self.name),
        )
        return ctx.with_result(self.name, result)
