# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
from __future__ import annotations

import datetime

from pydantic import Field, field_validator

from kurral_core.schema.serialization import SchemaModel, clamp_unit, utc_now


class EngagementCounters(SchemaModel):
    """Observed interaction counts. Owned by the content store, read-only here."""

    bookmark_count: int = Field(default=0, ge=0)
    rechirp_count: int = Field(default=0, ge=0)
    comment_count: int = Field(default=0, ge=0)


class EngagementPrediction(SchemaModel):
    """
    Expected 7-day engagement.

    Counters are expected values (floats), not rounded counts, so that
    small score differences stay visible; use `as_counts()` for display.
    """

    expected_views_7d: float = Field(default=0.0, ge=0.0)
    expected_bookmarks_7d: float = Field(default=0.0, ge=0.0)
    expected_rechirps_7d: float = Field(default=0.0, ge=0.0)
    expected_comments_7d: float = Field(default=0.0, ge=0.0)
    predicted_at: datetime.datetime = Field(default_factory=utc_now)

    def as_counts(self) -> dict[str, int]:
        return {
            "views": round(self.expected_views_7d),
            "bookmarks": round(self.expected_bookmarks_7d),
            "rechirps": round(self.expected_rechirps_7d),
            "comments": round(self.expected_comments_7d),
        }


class PredictionValidation(SchemaModel):
    overall_error: float = Field(default=0.0, ge=0.0)
    flagged_for_review: bool = False
    validated_at: datetime.datetime = Field(default_factory=utc_now)
    bookmark_error: float | None = None
    rechirp_error: float | None = None
    comment_error: float | None = None


class EngagementQuality(SchemaModel):
    """
    Mean contributor quality per engagement kind, each in [0, 1].

    Used by the quality-weighted ranking variant, where a raw count is
    replaced by `count * quality`. Unknown contributors count as 0.5.
    """

    bookmark_quality: float = 0.5
    rechirp_quality: float = 0.5
    comment_quality: float = 0.5

    @field_validator("bookmark_quality", "rechirp_quality", "comment_quality", mode="before")
    @classmethod
    def _clamp(cls, v: object) -> float:
        return clamp_unit(v, default=0.5)
