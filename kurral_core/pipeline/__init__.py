# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Kurral Pipeline Module

Step-based annotate pipeline for posts.

Usage:
    from kurral_core.pipeline import PipelineFactory, PipelineContext

    pipeline = PipelineFactory(agent=agent, runtime=runtime).build()
    ctx = await pipeline.run(PipelineContext(post=post, comments=comments))

The orchestrator (store I/O, fire-and-forget runs) lives in
`kurral_core.pipeline.orchestrator`.
"""

from kurral_core.pipeline.core import Pipeline, PipelineContext, Step
from kurral_core.pipeline.errors import PipelineExecutionError, StaleRunError
from kurral_core.pipeline.execution_state import RunExecutionState, StageExecutionState
from kurral_core.pipeline.executor import StageExecutor
from kurral_core.pipeline.factory import PipelineFactory

__all__ = [
    # Core
    "Pipeline",
    "PipelineContext",
    "Step",
    "StageExecutor",
    "PipelineFactory",
    # State
    "RunExecutionState",
    "StageExecutionState",
    # Errors
    "PipelineExecutionError",
    "StaleRunError",
]
