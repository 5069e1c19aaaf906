# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Pipeline Factory

Usage:
    from kurral_core.pipeline.factory import PipelineFactory

    factory = PipelineFactory(agent=agent, runtime=runtime)
    pipeline = factory.build()
    ctx = await pipeline.run(ctx)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from kurral_core.pipeline.core import Pipeline, Step
from kurral_core.pipeline.executor import StageExecutor
from kurral_core.pipeline.steps import (
    DiscussionStep,
    ExplanationStep,
    ExtractClaimsStep,
    PolicyStep,
    PrecheckStep,
    PredictionStep,
    ScoreValueStep,
    VerifyClaimsStep,
)
from kurral_core.runtime_config import EngineRuntimeConfig

logger = logging.getLogger(__name__)

ANNOTATE_PIPELINE = "annotate"


@dataclass
class PipelineFactory:
    """
    The one place where the stage sequence is defined.

    Attributes:
        agent: PipelineAgent for completion-backed stages
        runtime: Tunables (timeouts, retries, concurrency, policy)
        executor: Shared stage executor; built from runtime if omitted
    """

    agent: Any  # PipelineAgent
    runtime: EngineRuntimeConfig = field(default_factory=EngineRuntimeConfig)
    executor: StageExecutor | None = None

    def build(self) -> Pipeline:
        executor = self.executor or StageExecutor(self.runtime.pipeline)
        pipeline_cfg = self.runtime.pipeline

        steps: list[Step] = [
            # Fact-check path
            PrecheckStep(agent=self.agent, executor=executor),
            ExtractClaimsStep(agent=self.agent, executor=executor),
            VerifyClaimsStep(
                agent=self.agent,
                executor=executor,
                concurrency=pipeline_cfg.verify_concurrency,
                timeout_sec=pipeline_cfg.verify_timeout_sec,
            ),
            # Thread + value
            DiscussionStep(agent=self.agent, executor=executor),
            PolicyStep(policy=self.runtime.policy),
            ScoreValueStep(agent=self.agent, executor=executor),
            ExplanationStep(agent=self.agent, executor=executor),
            # Forecast
            PredictionStep(),
        ]

        logger.debug(
            "[PipelineFactory] Built %s pipeline with %d steps: %s",
            ANNOTATE_PIPELINE,
            len(steps),
            [s.name for s in steps],
        )
        return Pipeline(name=ANNOTATE_PIPELINE, steps=steps)
