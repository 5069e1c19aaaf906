# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
from __future__ import annotations

from enum import Enum

from pydantic import Field, field_validator

from kurral_core.schema.serialization import SchemaModel, clamp_unit

DEGRADED_PRECHECK_CAVEAT = "pre-check unavailable: defaulting to fact-check (degraded mode)"


class ContentType(str, Enum):
    FACTUAL = "factual"
    NEWS = "news"
    OPINION = "opinion"
    EXPERIENCE = "experience"
    QUESTION = "question"
    HUMOR = "humor"
    OTHER = "other"


class PrecheckResult(SchemaModel):
    """Cheap gate: does this content plausibly need fact-checking?"""

    needs_fact_check: bool = True
    confidence: float = 0.0
    content_type: ContentType = ContentType.OTHER
    reasoning: str = ""
    caveats: list[str] = Field(default_factory=list)
    risk_score: float | None = None
    signals: list[str] = Field(default_factory=list)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, v: object) -> float:
        return clamp_unit(v, default=0.0)

    @field_validator("content_type", mode="before")
    @classmethod
    def _sanitize_type(cls, v: object) -> ContentType:
        if isinstance(v, ContentType):
            return v
        try:
            return ContentType(str(v or "").strip().lower())
        except ValueError:
            return ContentType.OTHER

    @classmethod
    def fallback(cls, reason: str | None = None) -> "PrecheckResult":
        caveats = [DEGRADED_PRECHECK_CAVEAT]
        if reason:
            caveats.append(reason)
        return cls(
            needs_fact_check=True,
            confidence=0.0,
            content_type=ContentType.OTHER,
            reasoning="Pre-check failed; content will be checked.",
            caveats=caveats,
        )

    @classmethod
    def empty_content(cls) -> "PrecheckResult":
        return cls(
            needs_fact_check=False,
            confidence=1.0,
            content_type=ContentType.OTHER,
            reasoning="Empty content",
        )
