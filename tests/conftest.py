# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors

import datetime

import pytest
from unittest.mock import AsyncMock, MagicMock

from kurral_core.agents.llm_client import LLMClient
from kurral_core.config import KurralConfig
from kurral_core.runtime_config import (
    EngineFeatureFlags,
    EnginePipelineConfig,
    EngineRuntimeConfig,
)
from kurral_core.schema.claims import Claim, ClaimDomain, RiskLevel
from kurral_core.schema.post import Comment, Post
from kurral_core.schema.value import ValueVector
from kurral_core.schema.verdict import Verdict, VerdictValue


@pytest.fixture(autouse=True)
def _no_local_trace(monkeypatch):
    """Keep the JSONL trace sink off so tests never write to data/trace."""
    for var in ("KURRAL_ENV", "ENV", "FIRESTORE_EMULATOR_HOST", "FUNCTIONS_EMULATOR"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def runtime_config():
    """Runtime tunables with zero backoff so retry tests don't sleep."""
    return EngineRuntimeConfig(
        features=EngineFeatureFlags(trace_enabled=False),
        pipeline=EnginePipelineConfig(
            stage_timeout_sec=2.0,
            verify_timeout_sec=2.0,
            max_retries=2,
            retry_base_delay_sec=0.0,
            retry_max_delay_sec=0.0,
        ),
    )


@pytest.fixture
def kurral_config(runtime_config):
    return KurralConfig(openai_api_key="test-key", runtime=runtime_config)


@pytest.fixture
def mock_llm_client():
    """Matches the interface of LLMClient, returning AsyncMocks."""
    client = MagicMock(spec=LLMClient)
    client.complete = AsyncMock(return_value={})
    client.close = AsyncMock()
    return client


# ─────────────────────────────────────────────────────────────────────────────
# Domain object builders
# ─────────────────────────────────────────────────────────────────────────────

def make_post(post_id: str = "post-1", **kwargs) -> Post:
    data = {
        "id": post_id,
        "author_id": "author-1",
        "text": "According to a 2023 study, 40% of adults take vitamin D daily.",
        "topic": "health",
    }
    data.update(kwargs)
    return Post(**data)


def make_claim(claim_id: str = "post-1-claim-1", *, risk: RiskLevel = RiskLevel.LOW, **kwargs) -> Claim:
    data = {
        "id": claim_id,
        "post_id": "post-1",
        "text": "40% of adults take vitamin D daily",
        "domain": ClaimDomain.HEALTH,
        "risk_level": risk,
        "confidence": 0.8,
    }
    data.update(kwargs)
    return Claim(**data)


def make_verdict(
    claim_id: str = "post-1-claim-1",
    verdict: VerdictValue = VerdictValue.TRUE,
    confidence: float = 0.9,
    **kwargs,
) -> Verdict:
    return Verdict(
        id=f"{claim_id}-verdict",
        claim_id=claim_id,
        verdict=verdict,
        confidence=confidence,
        **kwargs,
    )


def make_value(total: float = 0.6, confidence: float = 0.8) -> ValueVector:
    return ValueVector(
        epistemic=total,
        insight=total,
        practical=total,
        relational=total,
        effort=total,
        total=total,
        confidence=confidence,
    )


def make_comment(comment_id: str, *, post_id: str = "post-1", author_id: str = "commenter-1", **kwargs) -> Comment:
    return Comment(
        id=comment_id,
        post_id=post_id,
        author_id=author_id,
        text=kwargs.pop("text", "Source: https://www.cdc.gov/nutrition"),
        created_at=kwargs.pop("created_at", datetime.datetime(2025, 1, 1, tzinfo=datetime.timezone.utc)),
        **kwargs,
    )


@pytest.fixture
def sample_post():
    return make_post()


@pytest.fixture
def high_risk_claim():
    return make_claim(risk=RiskLevel.HIGH)
