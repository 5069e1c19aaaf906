# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Trust policy engine.

Pure function of (claims, verdicts, policy) -> PolicyDecision. Re-evaluated
from scratch on every run; there is no state carried between runs.

Per-claim outcome:
- blocked       high-risk claim, verdict false, confidence >= block_confidence
- needs_review  verdict mixed/unknown, degraded (fallback) verdict, false that
                does not block, true below min_true_confidence, or no verdict
- clean         otherwise

Post status is the most severe per-claim outcome.
"""

from __future__ import annotations

from kurral_core.schema.claims import Claim, RiskLevel
from kurral_core.schema.policy import DEFAULT_POLICY, PolicyDecision, TrustPolicy, TrustStatus
from kurral_core.schema.verdict import Verdict, VerdictValue

NO_CLAIMS_REASON = "No extractable claims"


def _index_verdicts(claims: list[Claim], verdicts: list[Verdict]) -> dict[str, Verdict]:
    """Latest verdict per known claim id; orphan verdicts are dropped."""
    known = {c.id for c in claims}
    by_claim: dict[str, Verdict] = {}
    for v in verdicts:
        if v.claim_id not in known:
            continue
        prev = by_claim.get(v.claim_id)
        # A real verdict always beats a fallback for the same claim
        if prev is None or (prev.degraded and not v.degraded) or (
            prev.degraded == v.degraded and v.checked_at >= prev.checked_at
        ):
            by_claim[v.claim_id] = v
    return by_claim


def evaluate_claim(claim: Claim, verdict: Verdict | None, policy: TrustPolicy) -> tuple[TrustStatus, str | None]:
    if verdict is None:
        return TrustStatus.NEEDS_REVIEW, f"Claim {claim.id} has no verdict"

    if verdict.degraded:
        return TrustStatus.NEEDS_REVIEW, f"Claim {claim.id} could not be verified (fallback verdict)"

    if verdict.verdict == VerdictValue.FALSE:
        if claim.risk_level == RiskLevel.HIGH and verdict.confidence >= policy.block_confidence:
            return (
                TrustStatus.BLOCKED,
                f"High-risk claim {claim.id} judged false (confidence {verdict.confidence:.2f})",
            )
        return TrustStatus.NEEDS_REVIEW, f"Claim {claim.id} judged false (confidence {verdict.confidence:.2f})"

    if verdict.verdict in (VerdictValue.MIXED, VerdictValue.UNKNOWN):
        return TrustStatus.NEEDS_REVIEW, f"Claim {claim.id} verdict is {verdict.verdict.value}"

    if verdict.confidence < policy.min_true_confidence:
        return (
            TrustStatus.NEEDS_REVIEW,
            f"Claim {claim.id} judged true with low confidence ({verdict.confidence:.2f})",
        )

    return TrustStatus.CLEAN, None


def evaluate_policy(
    claims: list[Claim],
    verdicts: list[Verdict],
    policy: TrustPolicy | None = None,
) -> PolicyDecision:
    policy = policy or DEFAULT_POLICY
    if not claims:
        return PolicyDecision(status=TrustStatus.CLEAN, reasons=[NO_CLAIMS_REASON])

    by_claim = _index_verdicts(claims, verdicts)
    status = TrustStatus.CLEAN
    reasons: list[str] = []
    for claim in claims:
        claim_status, reason = evaluate_claim(claim, by_claim.get(claim.id), policy)
        if reason:
            reasons.append(reason)
        if claim_status.severity > status.severity:
            status = claim_status

    if status == TrustStatus.CLEAN:
        reasons.append(f"All {len(claims)} claims verified")

    return PolicyDecision(
        status=status,
        reasons=reasons,
        escalate_to_human=status == TrustStatus.BLOCKED and policy.escalate_blocked,
    )
