# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Pipeline Core

Defines the Step protocol and Pipeline executor.

Design Principles:
- Steps are composable units of work with a single run() method
- Pipeline executes steps in order, threading context through
- Steps are stateless; state lives in PipelineContext
- Each step records exactly one StageResult under its stage name

Usage:
    from kurral_core.pipeline import Pipeline, PipelineContext

    class MyStep:
        name = "my_step"

        async def run(self, ctx: PipelineContext) -> PipelineContext:
            return ctx.with_result(self.name, StageResult.ok(value))

    pipeline = Pipeline(name="annotate", steps=[MyStep()])
    result = await pipeline.run(initial_context)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from kurral_core.pipeline.errors import PipelineExecutionError
from kurral_core.pipeline.execution_state import RunExecutionState, StageExecutionState
from kurral_core.schema.post import Comment, Post
from kurral_core.schema.result import StageResult
from kurral_core.utils.trace import Trace

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Pipeline Context
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class PipelineContext:
    """
    Immutable context passed through pipeline steps.

    Each step receives context, does work, and returns new context.
    Context is never mutated in place; the execution state object is the
    one shared, append-only exception.

    Attributes:
        post: Post being annotated (as read at the start of the run)
        comments: Comment thread snapshot
        run_id: Pipeline run id for this post
        results: StageResult per stage name
        execution: Timing and status per stage
        extras: Arbitrary additional data
    """

    post: Post
    comments: list[Comment] = field(default_factory=list)
    run_id: int = 0
    results: dict[str, StageResult[Any]] = field(default_factory=dict)
    execution: RunExecutionState | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    def with_update(self, **kwargs: Any) -> PipelineContext:
        current = {
            "post": self.post,
            "comments": self.comments,
            "run_id": self.run_id,
            "results": self.results,
            "execution": self.execution,
            "extras": self.extras,
        }
        current.update(kwargs)
        return PipelineContext(**current)

    def with_result(self, stage: str, result: StageResult[Any]) -> PipelineContext:
        return self.with_update(results={**self.results, stage: result})

    def with_skipped(self, stage: str, reason: str, *, value: Any = None) -> PipelineContext:
        """Record a deliberate skip (not_run) for `stage`."""
        state = self.stage_state(stage)
        if state is not None:
            state.mark_skipped(timestamp=time.monotonic(), reason=reason)
        return self.with_result(stage, StageResult.not_run(reason, value=value))

    def stage_state(self, stage: str) -> StageExecutionState | None:
        if self.execution is None:
            return None
        return self.execution.ensure_stage(stage)

    def result(self, stage: str) -> StageResult[Any] | None:
        return self.results.get(stage)

    def value(self, stage: str, default: Any = None) -> Any:
        """Value of a stage result, or `default` if the stage has none."""
        res = self.results.get(stage)
        if res is None or res.value is None:
            return default
        return res.value

    def set_extra(self, key: str, value: Any) -> PipelineContext:
        new_extras = {**self.extras, key: value}
        return self.with_update(extras=new_extras)

    def get_extra(self, key: str, default: Any = None) -> Any:
        return self.extras.get(key, default)


# ─────────────────────────────────────────────────────────────────────────────
# Step Protocol
# ─────────────────────────────────────────────────────────────────────────────


@runtime_checkable
class Step(Protocol):
    """
    Protocol for pipeline steps.

    A step must always record a result for its stage: ok, degraded with the
    documented fallback, or not_run. Expected failures never escape a step.
    """

    name: str

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        ...


# ─────────────────────────────────────────────────────────────────────────────
# Pipeline Executor
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class Pipeline:
    """
    Executes a sequence of steps, threading context through.

    Unexpected step exceptions are wrapped in PipelineExecutionError carrying
    the last good context. Cancellation is not an Exception and passes
    straight through.
    """

    name: str
    steps: list[Step]

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        Trace.event(
            "pipeline.start",
            {
                "pipeline": self.name,
                "post_id": ctx.post.id,
                "run_id": ctx.run_id,
                "step_names": [s.name for s in self.steps],
            },
        )

        current_ctx = ctx
        for i, step in enumerate(self.steps):
            step_name = step.name
            Trace.event("pipeline.step_start", {"step": step_name, "index": i})
            try:
                current_ctx = await step.run(current_ctx)
            except PipelineExecutionError:
                raise
            except Exception as e:
                Trace.event(
                    "pipeline.step_error",
                    {"step": step_name, "index": i, "error": str(e), "error_type": type(e).__name__},
                )
                raise PipelineExecutionError(step_name, str(e), cause=e, context=current_ctx) from e

            res = current_ctx.result(step_name)
            Trace.event(
                "pipeline.step_end",
                {"step": step_name, "index": i, "outcome": res.outcome.value if res else None},
            )

        Trace.event("pipeline.end", {"pipeline": self.name, "post_id": ctx.post.id})
        return current_ctx

    def __repr__(self) -> str:
        step_names = [s.name for s in self.steps]
        return f"Pipeline(name={self.name}, steps={step_names})"
