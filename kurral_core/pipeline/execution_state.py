# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""Stage-level execution state for pipeline runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kurral_core.pipeline.constants import (
    STAGE_STATUS_DEGRADED,
    STAGE_STATUS_PENDING,
    STAGE_STATUS_RUNNING,
    STAGE_STATUS_SKIPPED,
    STAGE_STATUS_SUCCEEDED,
)


@dataclass
class StageExecutionState:
    """Execution status and timing for a single stage."""

    name: str
    status: str = STAGE_STATUS_PENDING
    started_at: float | None = None
    completed_at: float | None = None
    attempts: int = 0
    error: str | None = None
    error_type: str | None = None
    failure_kind: str | None = None
    skip_reason: str | None = None

    def mark_running(self, *, timestamp: float) -> None:
        self.status = STAGE_STATUS_RUNNING
        if self.started_at is None:
            self.started_at = timestamp

    def mark_succeeded(self, *, timestamp: float, attempts: int) -> None:
        self.status = STAGE_STATUS_SUCCEEDED
        self.completed_at = timestamp
        self.attempts = attempts

    def mark_degraded(
        self,
        *,
        timestamp: float,
        error: BaseException | str,
        failure_kind: str | None,
        attempts: int,
    ) -> None:
        self.status = STAGE_STATUS_DEGRADED
        self.completed_at = timestamp
        self.attempts = attempts
        self.error = str(error)
        self.error_type = error.__class__.__name__ if isinstance(error, BaseException) else None
        self.failure_kind = failure_kind

    def mark_skipped(self, *, timestamp: float, reason: str | None = None) -> None:
        self.status = STAGE_STATUS_SKIPPED
        self.completed_at = timestamp
        self.skip_reason = reason

    def to_dict(self) -> dict[str, Any]:
        duration = None
        if self.started_at is not None and self.completed_at is not None:
            duration = self.completed_at - self.started_at
        return {
            "name": self.name,
            "status": self.status,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "duration_s": duration,
            "attempts": self.attempts,
            "error": self.error,
            "error_type": self.error_type,
            "failure_kind": self.failure_kind,
            "skip_reason": self.skip_reason,
        }


@dataclass
class RunExecutionState:
    """Execution state and timing for one pipeline run of one post."""

    post_id: str
    run_id: int
    stages: dict[str, StageExecutionState] = field(default_factory=dict)
    started_at: float | None = None
    completed_at: float | None = None

    def ensure_stage(self, name: str) -> StageExecutionState:
        state = self.stages.get(name)
        if state is None:
            state = StageExecutionState(name=name)
            self.stages[name] = state
        return state

    def to_dict(self) -> dict[str, Any]:
        duration = None
        if self.started_at is not None and self.completed_at is not None:
            duration = self.completed_at - self.started_at
        return {
            "post_id": self.post_id,
            "run_id": self.run_id,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "duration_s": duration,
            "stages": {name: s.to_dict() for name, s in self.stages.items()},
        }
