# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

from kurral_core.pipeline.constants import (
    CLAIM_RESULTS_KEY,
    STAGE_EXTRACT_CLAIMS,
    STAGE_VERIFY_CLAIMS,
)
from kurral_core.pipeline.core import PipelineContext
from kurral_core.pipeline.executor import StageExecutor
from kurral_core.schema.claims import Claim
from kurral_core.schema.result import StageResult
from kurral_core.schema.verdict import Verdict
from kurral_core.utils.trace import Trace

logger = logging.getLogger(__name__)


@dataclass
class VerifyClaimsStep:
    """
    Verify every claim concurrently, bounded by a semaphore.

    Each claim resolves independently to a real verdict or its tagged
    fallback; one claim failing never aborts its siblings. The stage is
    degraded when at least one claim fell back.

    Context Input:
        - results[extract_claims]

    Context Output:
        - results[verify_claims]: StageResult[list[Verdict]] (claim order kept)
        - extras[claim_results]: per-claim StageResult summaries
    """

    agent: Any  # PipelineAgent
    executor: StageExecutor
    concurrency: int = 4
    timeout_sec: float | None = None
    name: str = STAGE_VERIFY_CLAIMS

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        claims_result = ctx.result(STAGE_EXTRACT_CLAIMS)
        if claims_result is not None and claims_result.is_not_run:
            return ctx.with_skipped(self.name, "claim extraction did not run", value=[])

        claims: list[Claim] = ctx.value(STAGE_EXTRACT_CLAIMS, [])
        if not claims:
            return ctx.with_skipped(self.name, "no claims to verify", value=[])

        post = ctx.post
        state = ctx.stage_state(self.name)
        if state is not None:
            state.mark_running(timestamp=time.monotonic())

        sem = asyncio.Semaphore(max(1, int(self.concurrency)))

        async def verify_one(claim: Claim) -> StageResult[Verdict]:
            async with sem:
                return await self.executor.run(
                    self.name,
                    lambda: self.agent.verify_claim(claim, post),
                    fallback=lambda reason: Verdict.fallback(claim.id, reason=reason),
                    timeout=self.timeout_sec,
                    label=claim.id,
                )

        per_claim = await asyncio.gather(*(verify_one(c) for c in claims))

        verdicts = [r.value for r in per_claim if r.value is not None]
        failed = [(c.id, r) for c, r in zip(claims, per_claim) if r.is_degraded]
        attempts = sum(r.attempts for r in per_claim)

        if failed:
            kinds = {r.failure_kind for _, r in failed}
            reason = f"{len(failed)} of {len(claims)} claims fell back"
            result: StageResult[list[Verdict]] = StageResult.degraded(
                verdicts,
                reason,
                failure_kind=kinds.pop() if len(kinds) == 1 else "mixed",
                attempts=attempts,
            )
            logger.warning("[VerifyClaims] post=%s %s", post.id, reason)
            if state is not None:
                state.mark_degraded(
                    timestamp=time.monotonic(),
                    error=reason,
                    failure_kind=result.failure_kind,
                    attempts=attempts,
                )
        else:
            result = StageResult.ok(verdicts, attempts=attempts)
            if state is not None:
                state.mark_succeeded(timestamp=time.monotonic(), attempts=attempts)

        Trace.event(
            "verify_claims.completed",
            {
                "post_id": post.id,
                "claims": len(claims),
                "fallbacks": len(failed),
                "attempts": attempts,
            },
        )
        summaries = {c.id: r.to_dict() for c, r in zip(claims, per_claim)}
        return ctx.with_result(self.name, result).set_extra(CLAIM_RESULTS_KEY, summaries)
