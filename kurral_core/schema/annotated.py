# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
AnnotatedPost: everything one pipeline run produced for a post.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kurral_core import PROMPT_VERSION, SCORING_VERSION
from kurral_core.schema.claims import Claim
from kurral_core.schema.engagement import EngagementPrediction, EngagementQuality
from kurral_core.schema.policy import PolicyDecision, TrustStatus
from kurral_core.schema.post import PipelineState
from kurral_core.schema.precheck import PrecheckResult
from kurral_core.schema.result import StageResult
from kurral_core.schema.value import CommentInsight, DiscussionQuality, ValueVector
from kurral_core.schema.verdict import Verdict


@dataclass
class AnnotatedPost:
    post_id: str
    run_id: int
    precheck: StageResult[PrecheckResult]
    claims: StageResult[list[Claim]]
    verdicts: StageResult[list[Verdict]]
    discussion: StageResult[DiscussionQuality]
    policy: StageResult[PolicyDecision]
    value: StageResult[ValueVector]
    explanation: StageResult[str]
    prediction: StageResult[EngagementPrediction] = field(
        default_factory=lambda: StageResult.not_run("not scheduled")
    )
    engagement_quality: EngagementQuality | None = None
    pipeline_state: PipelineState = PipelineState.COMPLETED
    execution: dict[str, Any] = field(default_factory=dict)

    def stages(self) -> dict[str, StageResult[Any]]:
        return {
            "precheck": self.precheck,
            "extract_claims": self.claims,
            "verify_claims": self.verdicts,
            "discussion": self.discussion,
            "policy": self.policy,
            "score_value": self.value,
            "explanation": self.explanation,
            "prediction": self.prediction,
        }

    @property
    def degraded_stages(self) -> list[str]:
        return [name for name, res in self.stages().items() if res.is_degraded]

    @property
    def trust_status(self) -> TrustStatus:
        decision = self.policy.value
        return decision.status if decision else TrustStatus.NEEDS_REVIEW

    @property
    def comment_insights(self) -> list[CommentInsight]:
        discussion = self.discussion.value
        return list(discussion.comment_insights) if discussion else []

    @property
    def value_score(self) -> ValueVector | None:
        return self.value.value

    def to_annotation_update(self) -> dict[str, Any]:
        """
        Partial update for the content store: one batched write per run.

        Absent values are written as None so a stale score from an older run
        never survives next to fresh claims and verdicts.
        """
        discussion = self.discussion.value
        prediction = self.prediction.value
        value = self.value.value
        quality = self.engagement_quality
        return {
            "trust_status": self.trust_status.value,
            "claims": [c.to_dict() for c in self.claims.unwrap_or([])],
            "verdicts": [v.to_dict() for v in self.verdicts.unwrap_or([])],
            "value_score": value.to_dict() if value else None,
            "value_explanation": self.explanation.value,
            "discussion_quality": discussion.to_dict() if discussion else None,
            "predicted_engagement": prediction.to_dict() if prediction else None,
            "engagement_quality": quality.to_dict() if quality else None,
            "pipeline_state": self.pipeline_state.value,
            "pipeline_run_id": self.run_id,
            "stage_revisions": {name: self.run_id for name in self.stages()},
        }

    def to_dict(self) -> dict[str, Any]:
        out = self.to_annotation_update()
        out["post_id"] = self.post_id
        out["stages"] = {name: res.to_dict() for name, res in self.stages().items()}
        out["degraded_stages"] = self.degraded_stages
        policy = self.policy.value
        if policy:
            out["policy"] = policy.to_dict()
        precheck = self.precheck.value
        if precheck:
            out["precheck"] = precheck.to_dict()
        out["execution"] = self.execution
        out["versions"] = {"prompt": PROMPT_VERSION, "scoring": SCORING_VERSION}
        return out
