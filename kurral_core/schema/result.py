# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Three-state stage result.

Every pipeline stage resolves to exactly one of:

- ``ok``       the stage ran and produced a real value
- ``degraded`` the stage could not complete; ``value`` is the documented
               fallback and ``reason`` / ``failure_kind`` say why
- ``not_run``  the stage was skipped on purpose (e.g. pre-check said no
               fact-check is needed); ``value`` is the neutral default

Nullable values are never used to mean "failed".
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class StageOutcome(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    NOT_RUN = "not_run"


@dataclass(frozen=True)
class StageResult(Generic[T]):
    outcome: StageOutcome
    value: T | None = None
    reason: str | None = None
    failure_kind: str | None = None
    attempts: int = 0

    @classmethod
    def ok(cls, value: T, *, attempts: int = 1) -> "StageResult[T]":
        return cls(outcome=StageOutcome.OK, value=value, attempts=attempts)

    @classmethod
    def degraded(
        cls,
        value: T | None,
        reason: str,
        *,
        failure_kind: str | None = None,
        attempts: int = 0,
    ) -> "StageResult[T]":
        return cls(
            outcome=StageOutcome.DEGRADED,
            value=value,
            reason=reason,
            failure_kind=failure_kind,
            attempts=attempts,
        )

    @classmethod
    def not_run(cls, reason: str, *, value: T | None = None) -> "StageResult[T]":
        return cls(outcome=StageOutcome.NOT_RUN, value=value, reason=reason)

    @property
    def is_ok(self) -> bool:
        return self.outcome == StageOutcome.OK

    @property
    def is_degraded(self) -> bool:
        return self.outcome == StageOutcome.DEGRADED

    @property
    def is_not_run(self) -> bool:
        return self.outcome == StageOutcome.NOT_RUN

    def unwrap_or(self, default: T) -> T:
        return self.value if self.value is not None else default

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "reason": self.reason,
            "failure_kind": self.failure_kind,
            "attempts": self.attempts,
        }
