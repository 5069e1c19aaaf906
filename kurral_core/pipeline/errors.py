# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Pipeline Errors

Custom exceptions for pipeline execution.
"""

from __future__ import annotations

from typing import Any


class PipelineExecutionError(Exception):
    """
    Raised when a step fails in a way the stage executor did not absorb.

    Stage-level failures never get here: the executor turns them into a
    degraded result. This covers bugs and broken invariants inside step
    code. `context` holds the last context reached before the failure so
    the orchestrator can still persist what was produced.
    """

    def __init__(
        self,
        step_name: str,
        message: str,
        cause: Exception | None = None,
        context: Any | None = None,
    ):
        self.step_name = step_name
        self.cause = cause
        self.context = context
        full_msg = f"Pipeline execution failed at '{step_name}': {message}"
        if cause:
            full_msg += f" (caused by: {cause})"
        super().__init__(full_msg)


class StaleRunError(Exception):
    """A write from an older pipeline run lost to a newer one."""

    def __init__(self, post_id: str, run_id: int, current_run_id: int):
        self.post_id = post_id
        self.run_id = run_id
        self.current_run_id = current_run_id
        super().__init__(
            f"Stale annotation write for post '{post_id}': run {run_id} < current run {current_run_id}"
        )

    def to_trace_dict(self) -> dict[str, Any]:
        return {
            "error": "stale_run",
            "post_id": self.post_id,
            "run_id": self.run_id,
            "current_run_id": self.current_run_id,
        }
