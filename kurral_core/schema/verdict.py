# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Verdict and evidence models.

A verdict produced by the fallback path carries `degraded=True` so that
"the model said unknown" and "we could not ask the model" never look the
same to operators or to the policy engine.
"""

from __future__ import annotations

import datetime
from enum import Enum

from pydantic import Field, field_validator

from kurral_core.schema.serialization import SchemaModel, clamp_unit, utc_now

FALLBACK_VERDICT_CONFIDENCE = 0.25
FALLBACK_VERDICT_CAVEAT = "automatic fallback: unable to verify claim"


class VerdictValue(str, Enum):
    TRUE = "true"
    FALSE = "false"
    MIXED = "mixed"
    UNKNOWN = "unknown"


class Evidence(SchemaModel):
    """One supporting or refuting source for a verdict."""

    source: str = ""
    url: str | None = None
    snippet: str = ""
    quality: float = Field(default=0.5, ge=0.0, le=1.0)

    @field_validator("quality", mode="before")
    @classmethod
    def _clamp_quality(cls, v: object) -> float:
        return clamp_unit(v, default=0.5)


class Verdict(SchemaModel):
    """Outcome of checking one claim against evidence."""

    id: str
    claim_id: str
    verdict: VerdictValue = VerdictValue.UNKNOWN
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    evidence: list[Evidence] = Field(default_factory=list)
    caveats: list[str] = Field(default_factory=list)
    checked_at: datetime.datetime = Field(default_factory=utc_now)
    degraded: bool = False

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v: object) -> float:
        return clamp_unit(v, default=0.0)

    @field_validator("verdict", mode="before")
    @classmethod
    def _sanitize_verdict(cls, v: object) -> VerdictValue:
        if isinstance(v, VerdictValue):
            return v
        try:
            return VerdictValue(str(v or "").strip().lower())
        except ValueError:
            return VerdictValue.UNKNOWN

    @classmethod
    def fallback(cls, claim_id: str, *, reason: str | None = None) -> "Verdict":
        caveats = [FALLBACK_VERDICT_CAVEAT]
        if reason:
            caveats.append(reason)
        return cls(
            id=f"{claim_id}-fallback",
            claim_id=claim_id,
            verdict=VerdictValue.UNKNOWN,
            confidence=FALLBACK_VERDICT_CONFIDENCE,
            evidence=[],
            caveats=caveats,
            degraded=True,
        )
