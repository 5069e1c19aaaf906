# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Claim models.

Claims are produced once per pipeline run by the extractor and never
mutated afterwards; verdicts reference them by id.
"""

from __future__ import annotations

import datetime
from enum import Enum

from pydantic import ConfigDict, Field, field_validator

from kurral_core.schema.serialization import SchemaModel, clamp_unit, utc_now


class ClaimType(str, Enum):
    """What kind of assertion a claim is."""
    FACT = "fact"
    """Checkable against evidence."""

    OPINION = "opinion"
    """A value judgement; never blocks, may be reviewed."""

    PREDICTION = "prediction"
    """A forward-looking statement; cannot be settled yet."""


class ClaimDomain(str, Enum):
    """Subject area of the claim. Drives value weighting."""
    HEALTH = "health"
    FINANCE = "finance"
    POLITICS = "politics"
    TECHNOLOGY = "technology"
    SCIENCE = "science"
    SOCIETY = "society"
    GENERAL = "general"


class RiskLevel(str, Enum):
    """Harm potential if the claim is wrong."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Weight of a claim when picking the dominant domain of a post.
RISK_WEIGHTS: dict[RiskLevel, float] = {
    RiskLevel.HIGH: 2.0,
    RiskLevel.MEDIUM: 1.5,
    RiskLevel.LOW: 1.0,
}


class Claim(SchemaModel):
    """An atomic, checkable assertion pulled out of a post."""

    model_config = ConfigDict(frozen=True)

    id: str
    post_id: str
    text: str
    type: ClaimType = ClaimType.FACT
    domain: ClaimDomain = ClaimDomain.GENERAL
    risk_level: RiskLevel = RiskLevel.LOW
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    extracted_at: datetime.datetime = Field(default_factory=utc_now)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v: object) -> float:
        return clamp_unit(v, default=0.5)
