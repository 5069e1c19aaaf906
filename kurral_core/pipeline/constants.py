# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""Pipeline stage names and execution metadata constants."""

STAGE_PRECHECK = "precheck"
STAGE_EXTRACT_CLAIMS = "extract_claims"
STAGE_VERIFY_CLAIMS = "verify_claims"
STAGE_DISCUSSION = "discussion"
STAGE_POLICY = "policy"
STAGE_SCORE_VALUE = "score_value"
STAGE_EXPLANATION = "explanation"
STAGE_PREDICTION = "prediction"

STAGE_ORDER = (
    STAGE_PRECHECK,
    STAGE_EXTRACT_CLAIMS,
    STAGE_VERIFY_CLAIMS,
    STAGE_DISCUSSION,
    STAGE_POLICY,
    STAGE_SCORE_VALUE,
    STAGE_EXPLANATION,
    STAGE_PREDICTION,
)

# Stages backed by the completion service. A run where every one of these
# that actually ran fell back is reported as failed.
LLM_STAGES = frozenset({
    STAGE_PRECHECK,
    STAGE_EXTRACT_CLAIMS,
    STAGE_VERIFY_CLAIMS,
    STAGE_DISCUSSION,
    STAGE_SCORE_VALUE,
    STAGE_EXPLANATION,
})

STAGE_STATUS_PENDING = "pending"
STAGE_STATUS_RUNNING = "running"
STAGE_STATUS_SUCCEEDED = "succeeded"
STAGE_STATUS_DEGRADED = "degraded"
STAGE_STATUS_SKIPPED = "skipped"

EXECUTION_STATE_KEY = "execution_state"
CLAIM_RESULTS_KEY = "claim_results"

ALERT_NON_RETRYABLE = "alert.non_retryable"
