# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Pipeline orchestrator.

Sequences the stages for one post and is the only writer of the post's
annotation fields. Every run ends in a terminal state (completed or
failed) with one batched annotation update; readers never see a
half-annotated post.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from kurral_core.pipeline.constants import (
    LLM_STAGES,
    STAGE_DISCUSSION,
    STAGE_EXPLANATION,
    STAGE_EXTRACT_CLAIMS,
    STAGE_ORDER,
    STAGE_POLICY,
    STAGE_PRECHECK,
    STAGE_PREDICTION,
    STAGE_SCORE_VALUE,
    STAGE_VERIFY_CLAIMS,
)
from kurral_core.pipeline.core import Pipeline, PipelineContext
from kurral_core.pipeline.errors import PipelineExecutionError, StaleRunError
from kurral_core.pipeline.execution_state import RunExecutionState
from kurral_core.pipeline.factory import PipelineFactory
from kurral_core.runtime_config import EngineRuntimeConfig
from kurral_core.schema.annotated import AnnotatedPost
from kurral_core.schema.policy import PolicyDecision, TrustStatus
from kurral_core.schema.post import Comment, PipelineState, Post
from kurral_core.schema.precheck import PrecheckResult
from kurral_core.schema.result import StageResult
from kurral_core.scoring.quality_weighting import apply_comment_insights, refresh_comment_quality
from kurral_core.store.base import ContentStore, PostNotFoundError
from kurral_core.utils.trace import Trace

logger = logging.getLogger(__name__)

PIPELINE_ERROR_KIND = "pipeline_error"


def _aborted_result(stage: str, reason: str) -> StageResult[Any]:
    """Degraded stand-in for a stage the run never reached."""
    if stage == STAGE_PRECHECK:
        value: Any = PrecheckResult.fallback(reason)
    elif stage in (STAGE_EXTRACT_CLAIMS, STAGE_VERIFY_CLAIMS):
        value = []
    elif stage == STAGE_POLICY:
        value = PolicyDecision(status=TrustStatus.NEEDS_REVIEW, reasons=[reason])
    else:
        value = None
    return StageResult.degraded(value, reason, failure_kind=PIPELINE_ERROR_KIND)


def resolve_pipeline_state(results: dict[str, StageResult[Any]], aborted: bool) -> PipelineState:
    """
    Failed when the run aborted, or when every completion-backed stage that
    actually ran fell back. Otherwise completed (possibly with degraded stages).
    """
    if aborted:
        return PipelineState.FAILED
    ran = [results[s] for s in LLM_STAGES if s in results and not results[s].is_not_run]
    if ran and all(r.is_degraded for r in ran):
        return PipelineState.FAILED
    return PipelineState.COMPLETED


def build_annotated_post(
    ctx: PipelineContext,
    *,
    failure: PipelineExecutionError | None = None,
) -> AnnotatedPost:
    results = dict(ctx.results)
    if failure is not None:
        reason = f"pipeline aborted at '{failure.step_name}'"
        for stage in STAGE_ORDER:
            if stage not in results:
                results[stage] = _aborted_result(stage, reason)

    def get(stage: str) -> StageResult[Any]:
        return results.get(stage) or StageResult.not_run("stage not scheduled")

    discussion = get(STAGE_DISCUSSION).value
    scored_comments = apply_comment_insights(ctx.comments, discussion.comment_insights if discussion else [])

    return AnnotatedPost(
        post_id=ctx.post.id,
        run_id=ctx.run_id,
        precheck=get(STAGE_PRECHECK),
        claims=get(STAGE_EXTRACT_CLAIMS),
        verdicts=get(STAGE_VERIFY_CLAIMS),
        discussion=get(STAGE_DISCUSSION),
        policy=get(STAGE_POLICY),
        value=get(STAGE_SCORE_VALUE),
        explanation=get(STAGE_EXPLANATION),
        prediction=get(STAGE_PREDICTION),
        engagement_quality=refresh_comment_quality(ctx.post.engagement_quality, scored_comments),
        pipeline_state=resolve_pipeline_state(results, aborted=failure is not None),
        execution=ctx.execution.to_dict() if ctx.execution else {},
    )


class PipelineOrchestrator:
    """
    Runs the annotate pipeline for posts.

    `run()` is the pure part (no store I/O) and returns an AnnotatedPost.
    `run_pipeline()` is the fire-and-forget entry point: it schedules a task
    that allocates a run id, marks the post in progress, loads comments,
    runs the stages, writes per-comment insights back and then writes the
    single batched post update.
    """

    def __init__(
        self,
        agent: Any,
        store: ContentStore | None = None,
        runtime: EngineRuntimeConfig | None = None,
        *,
        pipeline: Pipeline | None = None,
    ):
        self.agent = agent
        self.store = store
        self.runtime = runtime or EngineRuntimeConfig()
        self.pipeline = pipeline or PipelineFactory(agent=agent, runtime=self.runtime).build()
        self._tasks: dict[str, asyncio.Task] = {}

    async def run(
        self,
        post: Post,
        comments: list[Comment] | None = None,
        *,
        run_id: int = 0,
    ) -> AnnotatedPost:
        execution = RunExecutionState(post_id=post.id, run_id=run_id, started_at=time.monotonic())
        ctx = PipelineContext(post=post, comments=list(comments or []), run_id=run_id, execution=execution)

        failure: PipelineExecutionError | None = None
        try:
            ctx = await self.pipeline.run(ctx)
        except PipelineExecutionError as e:
            logger.error("[Orchestrator] post=%s run=%d aborted: %s", post.id, run_id, e, exc_info=True)
            Trace.event("orchestrator.aborted", {"post_id": post.id, "run_id": run_id, "error": str(e)})
            failure = e
            if isinstance(e.context, PipelineContext):
                ctx = e.context
        execution.completed_at = time.monotonic()

        annotated = build_annotated_post(ctx, failure=failure)
        logger.info(
            "[Orchestrator] post=%s run=%d state=%s trust=%s degraded=%s",
            post.id, run_id, annotated.pipeline_state.value,
            annotated.trust_status.value, annotated.degraded_stages,
        )
        return annotated

    # ─────────────────────────────────────────────────────────────────────
    # Fire-and-forget entry point
    # ─────────────────────────────────────────────────────────────────────

    def run_pipeline(self, post: Post) -> asyncio.Task:
        """
        Schedule a run for `post` and return immediately.

        A newer run for the same post cancels the one in flight.
        """
        if self.store is None:
            raise RuntimeError("run_pipeline requires a content store")

        previous = self._tasks.get(post.id)
        if previous is not None and not previous.done():
            logger.info("[Orchestrator] post=%s superseding in-flight run", post.id)
            previous.cancel()

        task = asyncio.create_task(self.process(post), name=f"kurral-pipeline-{post.id}")
        self._tasks[post.id] = task
        task.add_done_callback(lambda t, pid=post.id: self._on_task_done(pid, t))
        return task

    def cancel(self, post_id: str) -> bool:
        """Cancel the in-flight run for a post (e.g. the post was deleted)."""
        task = self._tasks.get(post_id)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def wait_idle(self) -> None:
        tasks = [t for t in self._tasks.values() if not t.done()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def shutdown(self) -> None:
        for task in list(self._tasks.values()):
            if not task.done():
                task.cancel()
        await self.wait_idle()

    def _on_task_done(self, post_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(post_id) is task:
            del self._tasks[post_id]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("[Orchestrator] post=%s run task crashed: %s", post_id, exc, exc_info=exc)

    async def process(self, post: Post) -> AnnotatedPost | None:
        store = self.store
        run_id = await store.next_run_id(post.id)
        await store.save_annotations(
            post.id, {"pipeline_state": PipelineState.IN_PROGRESS.value}, run_id=run_id
        )

        Trace.start(f"{post.id}-run{run_id}", runtime=self.runtime, post_id=post.id, run_id=run_id)
        try:
            comments = await store.load_comments(post.id)
            annotated = await self.run(post, comments, run_id=run_id)
            if annotated.comment_insights:
                await store.save_comment_insights(post.id, annotated.comment_insights, run_id=run_id)
            await store.save_annotations(post.id, annotated.to_annotation_update(), run_id=run_id)
            return annotated
        except StaleRunError as e:
            logger.info("[Orchestrator] %s; dropping result", e)
            Trace.event("orchestrator.stale_run", e.to_trace_dict())
            return None
        except PostNotFoundError:
            logger.info("[Orchestrator] post=%s deleted during run %d", post.id, run_id)
            return None
        except asyncio.CancelledError:
            logger.info("[Orchestrator] post=%s run=%d cancelled", post.id, run_id)
            await self._mark_failed(post.id, run_id)
            raise
        except Exception as e:
            logger.error("[Orchestrator] post=%s run=%d crashed: %s", post.id, run_id, e, exc_info=True)
            await self._mark_failed(post.id, run_id)
            return None
        finally:
            Trace.stop()

    async def _mark_failed(self, post_id: str, run_id: int) -> None:
        """Move the post out of in_progress. No-op if the post is gone or a newer run owns it."""
        try:
            await self.store.save_annotations(
                post_id, {"pipeline_state": PipelineState.FAILED.value}, run_id=run_id
            )
        except (StaleRunError, PostNotFoundError) as e:
            logger.info("[Orchestrator] post=%s not marked failed: %s", post_id, e)
