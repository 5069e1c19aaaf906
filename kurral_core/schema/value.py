# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Value vector and discussion quality models.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field, field_validator

from kurral_core.schema.serialization import SchemaModel, clamp_unit

VALUE_DIMENSIONS: tuple[str, ...] = ("epistemic", "insight", "practical", "relational", "effort")


class ValueWeights(SchemaModel):
    """Relative weight of each dimension in the roll-up. Normalized on use."""

    epistemic: float = Field(default=0.30, ge=0.0)
    insight: float = Field(default=0.25, ge=0.0)
    practical: float = Field(default=0.20, ge=0.0)
    relational: float = Field(default=0.15, ge=0.0)
    effort: float = Field(default=0.10, ge=0.0)

    def normalized(self) -> dict[str, float]:
        raw = {dim: float(getattr(self, dim)) for dim in VALUE_DIMENSIONS}
        s = sum(raw.values())
        if s <= 0:
            return {dim: 1.0 / len(VALUE_DIMENSIONS) for dim in VALUE_DIMENSIONS}
        return {dim: w / s for dim, w in raw.items()}


def combine_dimensions(dimensions: dict[str, float], weights: ValueWeights) -> float:
    """Weighted roll-up of the five dimensions. Pure; result in [0, 1]."""
    norm = weights.normalized()
    total = sum(clamp_unit(dimensions.get(dim), default=0.5) * w for dim, w in norm.items())
    return clamp_unit(total, default=0.5)


class ValueVector(SchemaModel):
    """
    Five-dimension value score for a post.

    Every numeric field is clamped to [0, 1] on construction. Build with
    `from_dimensions` so `total` is always derived from the dimensions.
    """

    epistemic: float = 0.5
    insight: float = 0.5
    practical: float = 0.5
    relational: float = 0.5
    effort: float = 0.5
    total: float = 0.5
    confidence: float = 0.7
    drivers: list[str] = Field(default_factory=list)

    @field_validator(
        "epistemic", "insight", "practical", "relational", "effort", "total", "confidence",
        mode="before",
    )
    @classmethod
    def _clamp(cls, v: object) -> float:
        return clamp_unit(v, default=0.5)

    @classmethod
    def from_dimensions(
        cls,
        dimensions: dict[str, float],
        weights: ValueWeights,
        *,
        confidence: float,
        drivers: list[str] | None = None,
    ) -> "ValueVector":
        dims = {dim: clamp_unit(dimensions.get(dim), default=0.5) for dim in VALUE_DIMENSIONS}
        return cls(
            **dims,
            total=combine_dimensions(dims, weights),
            confidence=confidence,
            drivers=list(drivers or []),
        )

    def dimensions(self) -> dict[str, float]:
        return {dim: float(getattr(self, dim)) for dim in VALUE_DIMENSIONS}


class DiscussionRole(str, Enum):
    """Role a single comment plays in its thread."""
    QUESTION = "question"
    ANSWER = "answer"
    EVIDENCE = "evidence"
    OPINION = "opinion"
    MODERATION = "moderation"
    OTHER = "other"


class CommentInsight(SchemaModel):
    comment_id: str
    role: DiscussionRole = DiscussionRole.OTHER
    value_contribution: float = 0.5

    @field_validator("value_contribution", mode="before")
    @classmethod
    def _clamp(cls, v: object) -> float:
        return clamp_unit(v, default=0.5)

    @field_validator("role", mode="before")
    @classmethod
    def _sanitize_role(cls, v: object) -> DiscussionRole:
        if isinstance(v, DiscussionRole):
            return v
        try:
            return DiscussionRole(str(v or "").strip().lower())
        except ValueError:
            return DiscussionRole.OTHER


class DiscussionQuality(SchemaModel):
    """Scores for a post's comment thread."""

    informativeness: float = 0.5
    civility: float = 0.5
    reasoning_depth: float = 0.5
    cross_perspective: float = 0.5
    summary: str = ""
    comment_insights: list[CommentInsight] = Field(default_factory=list)

    @field_validator(
        "informativeness", "civility", "reasoning_depth", "cross_perspective",
        mode="before",
    )
    @classmethod
    def _clamp(cls, v: object) -> float:
        return clamp_unit(v, default=0.5)

    def mean_score(self) -> float:
        return (self.informativeness + self.civility + self.reasoning_depth + self.cross_perspective) / 4.0
