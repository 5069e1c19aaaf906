# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Pipeline steps, one per stage, in execution order.
"""

from kurral_core.pipeline.steps.precheck import PrecheckStep
from kurral_core.pipeline.steps.extract_claims import ExtractClaimsStep
from kurral_core.pipeline.steps.verify_claims import VerifyClaimsStep
from kurral_core.pipeline.steps.discussion import DiscussionStep
from kurral_core.pipeline.steps.policy import PolicyStep
from kurral_core.pipeline.steps.score_value import ScoreValueStep
from kurral_core.pipeline.steps.explanation import ExplanationStep
from kurral_core.pipeline.steps.prediction import PredictionStep

__all__ = [
    "PrecheckStep",
    "ExtractClaimsStep",
    "VerifyClaimsStep",
    "DiscussionStep",
    "PolicyStep",
    "ScoreValueStep",
    "ExplanationStep",
    "PredictionStep",
]
