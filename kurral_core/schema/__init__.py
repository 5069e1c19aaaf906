# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Schema models for the content trust and value pipeline.
"""

from kurral_core.schema.annotated import AnnotatedPost
from kurral_core.schema.claims import Claim, ClaimDomain, ClaimType, RiskLevel, RISK_WEIGHTS
from kurral_core.schema.engagement import (
    EngagementCounters,
    EngagementPrediction,
    EngagementQuality,
    PredictionValidation,
)
from kurral_core.schema.policy import DEFAULT_POLICY, PolicyDecision, TrustPolicy, TrustStatus
from kurral_core.schema.post import Comment, PipelineState, Post
from kurral_core.schema.precheck import ContentType, PrecheckResult
from kurral_core.schema.result import StageOutcome, StageResult
from kurral_core.schema.serialization import SchemaModel, clamp_unit, dump_schema, load_schema, utc_now
from kurral_core.schema.value import (
    VALUE_DIMENSIONS,
    CommentInsight,
    DiscussionQuality,
    DiscussionRole,
    ValueVector,
    ValueWeights,
    combine_dimensions,
)
from kurral_core.schema.verdict import (
    FALLBACK_VERDICT_CAVEAT,
    FALLBACK_VERDICT_CONFIDENCE,
    Evidence,
    Verdict,
    VerdictValue,
)

__all__ = [
    "AnnotatedPost",
    "Claim",
    "ClaimDomain",
    "ClaimType",
    "RiskLevel",
    "RISK_WEIGHTS",
    "EngagementCounters",
    "EngagementPrediction",
    "EngagementQuality",
    "PredictionValidation",
    "DEFAULT_POLICY",
    "PolicyDecision",
    "TrustPolicy",
    "TrustStatus",
    "Comment",
    "PipelineState",
    "Post",
    "ContentType",
    "PrecheckResult",
    "StageOutcome",
    "StageResult",
    "SchemaModel",
    "clamp_unit",
    "dump_schema",
    "load_schema",
    "utc_now",
    "VALUE_DIMENSIONS",
    "CommentInsight",
    "DiscussionQuality",
    "DiscussionRole",
    "ValueVector",
    "ValueWeights",
    "combine_dimensions",
    "FALLBACK_VERDICT_CAVEAT",
    "FALLBACK_VERDICT_CONFIDENCE",
    "Evidence",
    "Verdict",
    "VerdictValue",
]
