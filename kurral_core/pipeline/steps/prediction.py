# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors

from __future__ import annotations

import time
from dataclasses import dataclass

from kurral_core.pipeline.constants import (
    STAGE_EXTRACT_CLAIMS,
    STAGE_PREDICTION,
    STAGE_SCORE_VALUE,
    STAGE_VERIFY_CLAIMS,
)
from kurral_core.pipeline.core import PipelineContext
from kurral_core.schema.result import StageResult
from kurral_core.scoring.prediction import generate_engagement_prediction


@dataclass
class PredictionStep:
    """Publish-time engagement forecast; needs a value vector."""

    name: str = STAGE_PREDICTION

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        value = ctx.value(STAGE_SCORE_VALUE)
        if value is None:
            return ctx.with_skipped(self.name, "no value score")

        prediction = generate_engagement_prediction(
            value,
            ctx.value(STAGE_EXTRACT_CLAIMS, []),
            ctx.value(STAGE_VERIFY_CLAIMS, []),
        )
        state = ctx.stage_state(self.name)
        if state is not None:
            now = time.monotonic()
            state.mark_running(timestamp=now)
            state.mark_succeeded(timestamp=now, attempts=1)
        return ctx.with_result(self.name, StageResult.ok(prediction))
