# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from kurral_core.pipeline.constants import STAGE_EXTRACT_CLAIMS, STAGE_POLICY, STAGE_VERIFY_CLAIMS
from kurral_core.pipeline.core import PipelineContext
from kurral_core.schema.policy import TrustPolicy, TrustStatus
from kurral_core.schema.result import StageResult
from kurral_core.scoring.policy_engine import evaluate_policy
from kurral_core.utils.trace import Trace

logger = logging.getLogger(__name__)


@dataclass
class PolicyStep:
    """
    Deterministic trust decision from claims and verdicts. Always runs;
    a skipped fact-check path yields no claims and therefore `clean`.
    """

    policy: TrustPolicy = field(default_factory=TrustPolicy)
    name: str = STAGE_POLICY

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        state = ctx.stage_state(self.name)
        if state is not None:
            state.mark_running(timestamp=time.monotonic())

        claims = ctx.value(STAGE_EXTRACT_CLAIMS, [])
        verdicts = ctx.value(STAGE_VERIFY_CLAIMS, [])
        decision = evaluate_policy(claims, verdicts, self.policy)

        if state is not None:
            state.mark_succeeded(timestamp=time.monotonic(), attempts=1)

        if decision.status == TrustStatus.BLOCKED:
            logger.warning("[Policy] post=%s blocked: %s", ctx.post.id, "; ".join(decision.reasons))
        Trace.event(
            "policy.decision",
            {"post_id": ctx.post.id, **decision.to_dict()},
        )
        return ctx.with_result(self.name, StageResult.ok(decision))
