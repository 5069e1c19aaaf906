# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Unit tests for StageExecutor: timeouts, retry policy, fallbacks, alerts.
"""

import asyncio
import logging

import pytest

from kurral_core.llm import LLMCallError, LLMFailureKind
from kurral_core.pipeline.constants import STAGE_STATUS_DEGRADED, STAGE_STATUS_SUCCEEDED
from kurral_core.pipeline.execution_state import StageExecutionState
from kurral_core.pipeline.executor import StageExecutor
from kurral_core.runtime_config import EnginePipelineConfig
from kurral_core.schema.verdict import Verdict, VerdictValue


class FakeSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FlakyCall:
    """Raises the queued errors in order, then returns `value`."""

    def __init__(self, errors, value="ok"):
        self.errors = list(errors)
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.value


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def executor(fake_sleep):
    config = EnginePipelineConfig(max_retries=2, retry_base_delay_sec=1.0, retry_max_delay_sec=8.0, stage_timeout_sec=1.0)
    return StageExecutor(config, sleep=fake_sleep)


@pytest.mark.asyncio
async def test_success_first_try(executor, fake_sleep):
    call = FlakyCall([], value={"x": 1})
    state = StageExecutionState(name="precheck")

    result = await executor.run("precheck", call, state=state)

    assert result.is_ok
    assert result.value == {"x": 1}
    assert result.attempts == 1
    assert call.calls == 1
    assert fake_sleep.delays == []
    assert state.status == STAGE_STATUS_SUCCEEDED


@pytest.mark.asyncio
async def test_transient_failure_is_retried_with_backoff(executor, fake_sleep):
    call = FlakyCall([
        LLMCallError("overloaded", kind=LLMFailureKind.PROVIDER_ERROR),
        LLMCallError("bad json", kind=LLMFailureKind.INVALID_JSON),
    ])

    result = await executor.run("score_value", call)

    assert result.is_ok
    assert result.attempts == 3
    assert fake_sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_retries_exhausted_degrades_with_fallback(executor, fake_sleep):
    errors = [LLMCallError("rate limited", kind=LLMFailureKind.RATE_LIMITED) for _ in range(5)]
    call = FlakyCall(errors)
    state = StageExecutionState(name="extract_claims")

    result = await executor.run("extract_claims", call, fallback=lambda _reason: [], state=state)

    assert result.is_degraded
    assert result.value == []
    assert result.failure_kind == "rate_limited"
    assert result.attempts == 3
    assert call.calls == 3
    assert state.status == STAGE_STATUS_DEGRADED
    assert state.failure_kind == "rate_limited"


@pytest.mark.asyncio
async def test_non_retryable_fails_fast_and_alerts(executor, fake_sleep, caplog):
    call = FlakyCall([LLMCallError("invalid api key", kind=LLMFailureKind.AUTHENTICATION)])

    with caplog.at_level(logging.CRITICAL, logger="kurral_core.pipeline.executor"):
        result = await executor.run("precheck", call)

    assert result.is_degraded
    assert result.attempts == 1
    assert call.calls == 1
    assert fake_sleep.delays == []
    assert result.failure_kind == "authentication"
    assert any("NON-RETRYABLE" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_unclassified_error_is_not_retried(executor):
    call = FlakyCall([KeyError("prompts.unknown")])

    result = await executor.run("explanation", call, fallback=lambda reason: f"fallback ({reason})")

    assert result.is_degraded
    assert call.calls == 1
    assert result.failure_kind is None
    assert result.value.startswith("fallback (unclassified:")


@pytest.mark.asyncio
async def test_timeout_is_classified_and_retried(fake_sleep):
    executor = StageExecutor(
        EnginePipelineConfig(max_retries=1, retry_base_delay_sec=0.0, stage_timeout_sec=0.01), sleep=fake_sleep
    )
    calls = 0

    async def slow():
        nonlocal calls
        calls += 1
        await asyncio.sleep(5)

    result = await executor.run("discussion", slow)

    assert result.is_degraded
    assert result.failure_kind == "timeout"
    assert calls == 2
    assert result.value is None


@pytest.mark.asyncio
async def test_per_call_timeout_override(executor):
    async def slow():
        await asyncio.sleep(5)

    result = await executor.run("verify_claims", slow, timeout=0.01, fallback=lambda r: Verdict.fallback("c1", reason=r))

    assert result.is_degraded
    verdict = result.value
    assert verdict.verdict == VerdictValue.UNKNOWN
    assert verdict.confidence == 0.25
    assert verdict.degraded is True
    assert any(c.startswith("timeout:") for c in verdict.caveats)


@pytest.mark.asyncio
async def test_cancellation_propagates(executor):
    started = asyncio.Event()
    fallback_called = False

    async def hang():
        started.set()
        await asyncio.sleep(60)

    def fallback(_reason):
        nonlocal fallback_called
        fallback_called = True

    task = asyncio.create_task(executor.run("precheck", hang, fallback=fallback, timeout=30))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert fallback_called is False


def test_backoff_is_capped():
    executor = StageExecutor(EnginePipelineConfig(retry_base_delay_sec=1.0, retry_max_delay_sec=5.0))
    assert [executor.backoff_delay(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 5.0]
