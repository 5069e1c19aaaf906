# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from kurral_core.pipeline.constants import STAGE_PRECHECK
from kurral_core.pipeline.core import PipelineContext
from kurral_core.pipeline.executor import StageExecutor
from kurral_core.schema.precheck import PrecheckResult

logger = logging.getLogger(__name__)


@dataclass
class PrecheckStep:
    """
    Decide whether the post needs fact-checking at all.

    Fails open: if the classifier is unavailable the fallback says
    "check it", so a service outage never silently skips verification.

    Context Output:
        - results[precheck]: StageResult[PrecheckResult]
    """

    agent: Any  # PipelineAgent
    executor: StageExecutor
    name: str = STAGE_PRECHECK

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        post = ctx.post
        result = await self.executor.run(
            self.name,
            lambda: self.agent.precheck(post),
            fallback=PrecheckResult.fallback,
            state=ctx.stage_state(self.name),
        )
        value = result.value
        logger.debug(
            "[Precheck] post=%s outcome=%s needs_fact_check=%s",
            post.id, result.outcome.value, value.needs_fact_check if value else None,
        )
        return ctx.with_result(self.name, result)
