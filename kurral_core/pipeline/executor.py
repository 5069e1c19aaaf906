# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Stage executor.

Runs one external call with a timeout and the retry policy, and resolves it
to a StageResult. Skills raise; this is the single place that decides
between retrying, failing fast and falling back.

- transient failures (connection, timeout, rate limit, provider 5xx,
  invalid JSON) are retried with capped exponential backoff
- non-retryable failures (auth, bad request, schema) fail fast and raise
  an operational alert (critical log + trace event), then fall back
- cancellation always propagates; it is never turned into a fallback
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from kurral_core.llm.failures import classify_llm_failure, failure_kind_to_trace_data, is_retryable
from kurral_core.pipeline.constants import ALERT_NON_RETRYABLE
from kurral_core.pipeline.execution_state import StageExecutionState
from kurral_core.runtime_config import EnginePipelineConfig
from kurral_core.schema.result import StageResult
from kurral_core.utils.trace import Trace

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StageExecutor:
    def __init__(
        self,
        config: EnginePipelineConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or EnginePipelineConfig()
        self._sleep = sleep
        self._clock = clock

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number `attempt` (1-based)."""
        base = float(self.config.retry_base_delay_sec)
        return min(float(self.config.retry_max_delay_sec), base * (2 ** (attempt - 1)))

    async def run(
        self,
        stage: str,
        call: Callable[[], Awaitable[T]],
        *,
        fallback: Callable[[str], T | None] | None = None,
        timeout: float | None = None,
        state: StageExecutionState | None = None,
        label: str | None = None,
    ) -> StageResult[T]:
        """
        Execute `call` under the stage policy.

        Args:
            stage: Stage name used in logs, traces and alerts
            call: Zero-arg coroutine factory; invoked once per attempt
            fallback: Builds the fallback value from the failure reason
            timeout: Per-attempt timeout (defaults to the stage timeout)
            state: Execution state to update, if tracked
            label: Extra identifier for logs (e.g. claim id)
        """
        timeout = float(timeout if timeout is not None else self.config.stage_timeout_sec)
        max_retries = int(self.config.max_retries)
        where = f"{stage}[{label}]" if label else stage

        if state is not None:
            state.mark_running(timestamp=self._clock())

        attempt = 0
        while True:
            attempt += 1
            try:
                value = await asyncio.wait_for(call(), timeout=timeout)
            except asyncio.CancelledError:
                logger.info("[Executor] %s cancelled on attempt %d", where, attempt)
                raise
            except Exception as exc:
                kind = classify_llm_failure(exc)
                trace_data = {"stage": stage, "label": label, "attempt": attempt,
                              **failure_kind_to_trace_data(kind, exc)}

                if is_retryable(kind) and attempt <= max_retries:
                    delay = self.backoff_delay(attempt)
                    logger.warning(
                        "[Executor] %s transient failure (%s), retry %d/%d in %.2fs",
                        where, kind.value, attempt, max_retries, delay,
                    )
                    Trace.event(f"{stage}.retry", {**trace_data, "delay_s": delay})
                    await self._sleep(delay)
                    continue

                if is_retryable(kind):
                    logger.error("[Executor] %s failed after %d attempts: %s", where, attempt, exc)
                    Trace.event(f"{stage}.exhausted", trace_data)
                else:
                    # Non-retryable: the whole stage is likely down, not just this call.
                    logger.critical(
                        "[Executor] NON-RETRYABLE failure in %s (%s): %s",
                        where, kind.value if kind else "unclassified", exc,
                    )
                    Trace.event(ALERT_NON_RETRYABLE, trace_data)

                kind_value = kind.value if kind else None
                reason = f"{kind_value or 'unclassified'}: {exc}"
                fallback_value = fallback(reason) if fallback is not None else None
                if state is not None:
                    state.mark_degraded(
                        timestamp=self._clock(), error=exc, failure_kind=kind_value, attempts=attempt
                    )
                return StageResult.degraded(
                    fallback_value, reason, failure_kind=kind_value, attempts=attempt
                )

            if state is not None:
                state.mark_succeeded(timestamp=self._clock(), attempts=attempt)
            if attempt > 1:
                logger.info("[Executor] %s succeeded on attempt %d", where, attempt)
            return StageResult.ok(value, attempts=attempt)
