# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from kurral_core.pipeline.constants import STAGE_EXTRACT_CLAIMS, STAGE_PRECHECK
from kurral_core.pipeline.core import PipelineContext
from kurral_core.pipeline.executor import StageExecutor
from kurral_core.utils.trace import Trace

logger = logging.getLogger(__name__)


@dataclass
class ExtractClaimsStep:
    """
    Extract checkable claims from the post.

    Skipped (empty list) when pre-check decided no fact-check is needed.
    Falls back to an empty list on failure.

    Context Input:
        - results[precheck]

    Context Output:
        - results[extract_claims]: StageResult[list[Claim]]
    """

    agent: Any  # PipelineAgent
    executor: StageExecutor
    name: str = STAGE_EXTRACT_CLAIMS

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        precheck = ctx.value(STAGE_PRECHECK)
        if precheck is not None and not precheck.needs_fact_check:
            return ctx.with_skipped(self.name, "precheck: no fact-check needed", value=[])

        post = ctx.post
        result = await self.executor.run(
            self.name,
            lambda: self.agent.extract_claims(post),
            fallback=lambda _reason: [],
            state=ctx.stage_state(self.name),
        )
        claims = result.value or []
        Trace.event(
            "extract_claims.completed",
            {"post_id": post.id, "outcome": result.outcome.value, "claims": len(claims)},
        )
        return ctx.with_result(self.name, result)
