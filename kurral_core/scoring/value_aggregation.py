# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Value vector aggregation.

Turns raw per-dimension scores into a `ValueVector`:

1. sanitize (non-finite -> 0.5, clamp to [0, 1])
2. apply the fact-check penalty (fallback and orphan verdicts do not count)
3. pick roll-up weights from the post's dominant domain
4. derive `total` as the weighted sum

All functions here are pure.
"""

from __future__ import annotations

import math
from collections import defaultdict
from typing import Any

from pydantic import Field

from kurral_core.schema.claims import RISK_WEIGHTS, Claim, ClaimDomain
from kurral_core.schema.serialization import SchemaModel, clamp_unit
from kurral_core.schema.value import VALUE_DIMENSIONS, ValueVector, ValueWeights
from kurral_core.schema.verdict import Verdict, VerdictValue

DEFAULT_CONFIDENCE = 0.7

# No verification at all: epistemic rigor cannot be credited above this.
UNVERIFIED_EPISTEMIC_CAP = 0.35

CONFIDENT_FALSE_THRESHOLD = 0.7
PENALTY_PER_FALSE = 0.25
MAX_FALSE_PENALTY = 0.8
INSIGHT_PENALTY_SHARE = 0.3

_EVIDENCE_FIRST = ValueWeights(epistemic=0.35, insight=0.25, practical=0.2, relational=0.1, effort=0.1)
_INSIGHT_FIRST = ValueWeights(epistemic=0.25, insight=0.35, practical=0.2, relational=0.1, effort=0.1)
_PRACTICAL_FIRST = ValueWeights(epistemic=0.2, insight=0.25, practical=0.35, relational=0.1, effort=0.1)


def _default_domain_weights() -> dict[str, ValueWeights]:
    return {
        "health": _EVIDENCE_FIRST,
        "politics": _EVIDENCE_FIRST,
        "technology": _INSIGHT_FIRST,
        "startups": _INSIGHT_FIRST,
        "ai": _INSIGHT_FIRST,
        "productivity": _PRACTICAL_FIRST,
        "design": _PRACTICAL_FIRST,
    }


class ValueWeightPolicy(SchemaModel):
    """Which roll-up weights apply to which dominant domain."""

    default: ValueWeights = Field(default_factory=ValueWeights)
    by_domain: dict[str, ValueWeights] = Field(default_factory=_default_domain_weights)

    def weights_for(self, domain: str | None) -> ValueWeights:
        return self.by_domain.get((domain or "").strip().lower(), self.default)


def sanitize_dimensions(raw: dict[str, Any]) -> dict[str, float]:
    return {dim: clamp_unit(raw.get(dim), default=0.5) for dim in VALUE_DIMENSIONS}


def dominant_domain(claims: list[Claim], topic: str | None = None) -> str:
    """
    Risk-weighted most frequent claim domain.

    `general` claims don't vote. Falls back to the post topic, then `general`.
    A claim domain that disagrees with an explicit topic loses to the topic.
    """
    normalized_topic = (topic or "").strip().lower() or ClaimDomain.GENERAL.value
    counts: dict[str, float] = defaultdict(float)
    for claim in claims:
        if claim.domain == ClaimDomain.GENERAL:
            continue
        counts[claim.domain.value] += RISK_WEIGHTS[claim.risk_level]
    if not counts:
        return normalized_topic
    top = max(counts.items(), key=lambda kv: kv[1])[0]
    if normalized_topic == ClaimDomain.GENERAL.value or top == normalized_topic:
        return top
    if top in normalized_topic or normalized_topic in top:
        return top
    return normalized_topic


def verified_verdicts(verdicts: list[Verdict], claims: list[Claim] | None = None) -> list[Verdict]:
    """
    Verdicts that count as verification: not a degraded fallback and, when
    `claims` is given, attached to one of them.
    """
    known = None if claims is None else {c.id for c in claims}
    return [
        v for v in verdicts
        if not v.degraded and (known is None or v.claim_id in known)
    ]


def apply_fact_check_penalty(
    dimensions: dict[str, float],
    verdicts: list[Verdict],
    claims: list[Claim] | None = None,
) -> tuple[dict[str, float], list[str]]:
    """Returns penalized dimensions plus the driver notes it produced."""
    dims = dict(dimensions)
    notes: list[str] = []
    verdicts = verified_verdicts(verdicts, claims)
    if not verdicts:
        if dims["epistemic"] > UNVERIFIED_EPISTEMIC_CAP:
            dims["epistemic"] = UNVERIFIED_EPISTEMIC_CAP
            notes.append("no verified claims")
        return dims, notes

    confident_false = sum(
        1 for v in verdicts
        if v.verdict == VerdictValue.FALSE and v.confidence > CONFIDENT_FALSE_THRESHOLD
    )
    if confident_false == 0:
        return dims, notes

    penalty = min(MAX_FALSE_PENALTY, confident_false * PENALTY_PER_FALSE)
    dims["epistemic"] = clamp_unit(dims["epistemic"] * (1 - penalty))
    dims["insight"] = clamp_unit(dims["insight"] * (1 - penalty * INSIGHT_PENALTY_SHARE))
    notes.append(f"{confident_false} claim(s) judged false")
    return dims, notes


def build_value_vector(
    raw_dimensions: dict[str, Any],
    *,
    confidence: Any,
    claims: list[Claim],
    verdicts: list[Verdict],
    topic: str | None = None,
    policy: ValueWeightPolicy | None = None,
    drivers: list[str] | None = None,
) -> ValueVector:
    policy = policy or ValueWeightPolicy()
    dims = sanitize_dimensions(raw_dimensions)
    dims, notes = apply_fact_check_penalty(dims, verdicts, claims)
    weights = policy.weights_for(dominant_domain(claims, topic))

    conf = DEFAULT_CONFIDENCE
    try:
        c = float(confidence)
        if math.isfinite(c) and c > 0:
            conf = c
    except (TypeError, ValueError):
        pass

    all_drivers = [d.strip() for d in (drivers or []) if isinstance(d, str) and d.strip()]
    return ValueVector.from_dimensions(dims, weights, confidence=conf, drivers=all_drivers + notes)
