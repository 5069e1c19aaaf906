# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Post and comment models as read from (and written back to) the content store.

Only the pipeline orchestrator writes the annotation fields.
"""

from __future__ import annotations

import datetime
from enum import Enum

from pydantic import Field

from kurral_core.schema.claims import Claim
from kurral_core.schema.engagement import (
    EngagementCounters,
    EngagementPrediction,
    EngagementQuality,
    PredictionValidation,
)
from kurral_core.schema.policy import TrustStatus
from kurral_core.schema.serialization import SchemaModel, utc_now
from kurral_core.schema.value import DiscussionQuality, DiscussionRole, ValueVector
from kurral_core.schema.verdict import Verdict


class PipelineState(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.COMPLETED, PipelineState.FAILED)


class Comment(SchemaModel):
    id: str
    post_id: str
    author_id: str = ""
    text: str = ""
    created_at: datetime.datetime = Field(default_factory=utc_now)
    value_contribution: float | None = None
    discussion_role: DiscussionRole | None = None


class Post(SchemaModel):
    """A short post plus every pipeline-derived annotation."""

    id: str
    author_id: str
    created_at: datetime.datetime = Field(default_factory=utc_now)
    text: str = ""
    image_url: str | None = None
    topic: str | None = None

    bookmark_count: int = Field(default=0, ge=0)
    rechirp_count: int = Field(default=0, ge=0)
    comment_count: int = Field(default=0, ge=0)

    trust_status: TrustStatus | None = None
    claims: list[Claim] = Field(default_factory=list)
    verdicts: list[Verdict] = Field(default_factory=list)
    value_score: ValueVector | None = None
    value_explanation: str | None = None
    discussion_quality: DiscussionQuality | None = None
    predicted_engagement: EngagementPrediction | None = None
    prediction_validation: PredictionValidation | None = None
    engagement_quality: EngagementQuality | None = None
    pipeline_state: PipelineState = PipelineState.PENDING
    pipeline_run_id: int = 0
    stage_revisions: dict[str, int] = Field(default_factory=dict)

    def counters(self) -> EngagementCounters:
        return EngagementCounters(
            bookmark_count=self.bookmark_count,
            rechirp_count=self.rechirp_count,
            comment_count=self.comment_count,
        )

    def has_content(self) -> bool:
        return bool((self.text or "").strip() or self.image_url)
