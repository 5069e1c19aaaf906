# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors

import math

import pytest
from pydantic import ValidationError

from kurral_core.schema import (
    Claim,
    EngagementQuality,
    PipelineState,
    Post,
    PrecheckResult,
    StageResult,
    TrustStatus,
    ValueVector,
    ValueWeights,
    Verdict,
    VerdictValue,
)
from kurral_core.schema.serialization import clamp_unit
from kurral_core.schema.verdict import FALLBACK_VERDICT_CAVEAT, FALLBACK_VERDICT_CONFIDENCE


class TestClampUnit:
    @pytest.mark.parametrize(
        "raw,expected",
        [(0.3, 0.3), (-2, 0.0), (7, 1.0), ("0.25", 0.25), (None, 0.5), ("abc", 0.5), (math.nan, 0.5), (math.inf, 0.5)],
    )
    def test_clamps_and_defaults(self, raw, expected):
        assert clamp_unit(raw) == expected

    def test_custom_default(self):
        assert clamp_unit(None, default=0.0) == 0.0


class TestValueVector:
    def test_out_of_range_dimensions_are_clamped(self):
        vec = ValueVector(epistemic=1.7, insight=-0.2, practical="x", total=3, confidence=-1)
        assert vec.epistemic == 1.0
        assert vec.insight == 0.0
        assert vec.practical == 0.5
        assert vec.total == 1.0
        assert vec.confidence == 0.0

    def test_from_dimensions_derives_total(self):
        weights = ValueWeights(epistemic=1, insight=0, practical=0, relational=0, effort=0)
        vec = ValueVector.from_dimensions(
            {"epistemic": 0.8, "insight": 0.1, "practical": 0.1, "relational": 0.1, "effort": 0.1},
            weights,
            confidence=0.9,
        )
        assert vec.total == pytest.approx(0.8)
        assert vec.confidence == 0.9

    def test_from_dimensions_ignores_supplied_garbage(self):
        vec = ValueVector.from_dimensions({"epistemic": math.nan}, ValueWeights(), confidence=0.7)
        for dim in vec.dimensions().values():
            assert 0.0 <= dim <= 1.0
        assert 0.0 <= vec.total <= 1.0

    def test_zero_weights_fall_back_to_uniform(self):
        norm = ValueWeights(epistemic=0, insight=0, practical=0, relational=0, effort=0).normalized()
        assert all(w == pytest.approx(0.2) for w in norm.values())


class TestVerdict:
    def test_unknown_label_becomes_unknown(self):
        v = Verdict(id="v1", claim_id="c1", verdict="Probably", confidence=0.4)
        assert v.verdict == VerdictValue.UNKNOWN

    def test_label_is_case_insensitive(self):
        assert Verdict(id="v1", claim_id="c1", verdict=" FALSE ").verdict == VerdictValue.FALSE

    def test_confidence_clamped(self):
        assert Verdict(id="v1", claim_id="c1", confidence=4).confidence == 1.0

    def test_fallback_is_tagged(self):
        v = Verdict.fallback("c1", reason="timeout: slow")
        assert v.verdict == VerdictValue.UNKNOWN
        assert v.confidence == FALLBACK_VERDICT_CONFIDENCE == 0.25
        assert v.degraded is True
        assert v.caveats[0] == FALLBACK_VERDICT_CAVEAT
        assert "timeout: slow" in v.caveats
        assert v.evidence == []


class TestClaim:
    def test_claim_is_immutable(self):
        claim = Claim(id="c1", post_id="p1", text="Water boils at 100C")
        with pytest.raises(ValidationError):
            claim.text = "changed"

    def test_camel_case_document_loads(self):
        claim = Claim.from_dict({"id": "c1", "postId": "p1", "text": "t", "riskLevel": "high"})
        assert claim.post_id == "p1"
        assert claim.risk_level.value == "high"


class TestPost:
    def test_store_document_round_trip_uses_camel_case(self):
        post = Post(id="p1", author_id="a1", text="hello", bookmark_count=3)
        doc = post.to_document()
        assert doc["authorId"] == "a1"
        assert doc["bookmarkCount"] == 3
        assert Post.from_dict(doc).bookmark_count == 3

    def test_defaults(self):
        post = Post(id="p1", author_id="a1")
        assert post.pipeline_state == PipelineState.PENDING
        assert post.trust_status is None
        assert post.value_score is None
        assert not post.has_content()

    def test_image_only_post_has_content(self):
        assert Post(id="p1", author_id="a1", image_url="https://img.example/x.png").has_content()

    def test_negative_counter_rejected(self):
        with pytest.raises(ValidationError):
            Post(id="p1", author_id="a1", rechirp_count=-1)

    def test_extra_fields_ignored(self):
        post = Post.from_dict({"id": "p1", "authorId": "a1", "legacyField": 1})
        assert post.id == "p1"


def test_pipeline_state_terminal():
    assert PipelineState.COMPLETED.is_terminal
    assert PipelineState.FAILED.is_terminal
    assert not PipelineState.IN_PROGRESS.is_terminal
    assert not PipelineState.PENDING.is_terminal


def test_trust_status_severity_order():
    assert TrustStatus.CLEAN.severity < TrustStatus.NEEDS_REVIEW.severity < TrustStatus.BLOCKED.severity


def test_precheck_fallback_fails_open():
    res = PrecheckResult.fallback("timeout: x")
    assert res.needs_fact_check is True
    assert res.confidence == 0.0
    assert "timeout: x" in res.caveats


def test_engagement_quality_clamped():
    q = EngagementQuality(bookmark_quality=2, rechirp_quality=-1)
    assert q.bookmark_quality == 1.0
    assert q.rechirp_quality == 0.0
    assert q.comment_quality == 0.5


class TestStageResult:
    def test_ok(self):
        res = StageResult.ok([1, 2], attempts=2)
        assert res.is_ok and not res.is_degraded and not res.is_not_run
        assert res.attempts == 2

    def test_degraded_keeps_fallback_value(self):
        res = StageResult.degraded([], "timeout: x", failure_kind="timeout", attempts=3)
        assert res.is_degraded
        assert res.value == []
        assert res.to_dict() == {"outcome": "degraded", "reason": "timeout: x", "failure_kind": "timeout", "attempts": 3}

    def test_not_run_unwrap(self):
        res = StageResult.not_run("no comments")
        assert res.is_not_run
        assert res.unwrap_or("default") == "default"
