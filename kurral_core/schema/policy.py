# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Trust status and trust policy thresholds.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from kurral_core.schema.serialization import SchemaModel


class TrustStatus(str, Enum):
    """Tri-state policy outcome for a post."""

    CLEAN = "clean"
    NEEDS_REVIEW = "needs_review"
    BLOCKED = "blocked"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    TrustStatus.CLEAN: 0,
    TrustStatus.NEEDS_REVIEW: 1,
    TrustStatus.BLOCKED: 2,
}


class TrustPolicy(SchemaModel):
    """Configuration-driven thresholds for the policy engine."""

    # A high-risk claim judged false at or above this confidence blocks the post.
    block_confidence: float = Field(default=0.7, ge=0.0, le=1.0)

    # A true verdict below this confidence is not enough to call a claim clean.
    min_true_confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    # Blocked posts are queued for a human moderator.
    escalate_blocked: bool = True


DEFAULT_POLICY = TrustPolicy()


class PolicyDecision(SchemaModel):
    status: TrustStatus = TrustStatus.CLEAN
    reasons: list[str] = Field(default_factory=list)
    escalate_to_human: bool = False
