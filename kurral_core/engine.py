# Kurral Engine - main entry point

import asyncio
import json
import logging
from typing import Optional

from kurral_core.agents.llm_client import LLMClient
from kurral_core.agents.pipeline_agent import PipelineAgent
from kurral_core.config import KurralConfig
from kurral_core.pipeline.orchestrator import PipelineOrchestrator
from kurral_core.schema.annotated import AnnotatedPost
from kurral_core.schema.engagement import (
    EngagementCounters,
    EngagementPrediction,
    EngagementQuality,
    PredictionValidation,
)
from kurral_core.schema.post import Comment, Post
from kurral_core.scoring.prediction import generate_engagement_prediction
from kurral_core.scoring.ranking import RankedPost, RankingBreakdown, rank_posts, ranking_breakdown
from kurral_core.scoring.validation import validate_prediction
from kurral_core.store.base import ContentStore

logger = logging.getLogger(__name__)


class KurralEngine:
    """The main entry point for the Kurral content trust and value engine."""

    def __init__(
        self,
        config: KurralConfig,
        store: Optional[ContentStore] = None,
        llm_client: Optional[LLMClient] = None,
    ):
        self.runtime = config.resolved_runtime()
        self.config = config.model_copy(update={"runtime": self.runtime})
        self.store = store
        self.agent = PipelineAgent(self.config, llm_client=llm_client)
        self.orchestrator = PipelineOrchestrator(self.agent, store, self.runtime)
        logger.debug("Effective config: %s", json.dumps(self.runtime.to_safe_log_dict(), ensure_ascii=False))

    # ─────────────────────────────────────────────────────────────────────
    # Pipeline
    # ─────────────────────────────────────────────────────────────────────

    def run_pipeline(self, post: Post) -> asyncio.Task:
        """Fire-and-forget: annotate `post` in the background and persist the result."""
        return self.orchestrator.run_pipeline(post)

    def cancel_pipeline(self, post_id: str) -> bool:
        return self.orchestrator.cancel(post_id)

    async def annotate(self, post: Post, comments: Optional[list[Comment]] = None) -> AnnotatedPost:
        """Run every stage for `post` and return the result without writing it anywhere."""
        return await self.orchestrator.run(post, comments)

    # ─────────────────────────────────────────────────────────────────────
    # Pure scoring
    # ─────────────────────────────────────────────────────────────────────

    def predict_engagement(self, post: Post) -> Optional[EngagementPrediction]:
        if post.value_score is None:
            return None
        return generate_engagement_prediction(post.value_score, post.claims, post.verdicts)

    def validate_prediction(
        self,
        post: Post,
        observed: Optional[EngagementCounters] = None,
    ) -> Optional[PredictionValidation]:
        """
        Compare the stored forecast with observed counters (defaults to the
        post's own counters). Returns None if the post was never predicted.
        """
        if post.predicted_engagement is None:
            return None
        return validate_prediction(post.predicted_engagement, observed or post.counters())

    def compute_ranking_score(
        self,
        post: Post,
        counters: Optional[EngagementCounters] = None,
        validation: Optional[PredictionValidation] = None,
        quality: Optional[EngagementQuality] = None,
    ) -> float:
        return self.ranking_breakdown(post, counters, validation, quality).score

    def ranking_breakdown(
        self,
        post: Post,
        counters: Optional[EngagementCounters] = None,
        validation: Optional[PredictionValidation] = None,
        quality: Optional[EngagementQuality] = None,
    ) -> RankingBreakdown:
        return ranking_breakdown(
            post,
            counters,
            validation,
            config=self.runtime.ranking,
            quality_weighted=self.runtime.features.quality_weighted_ranking,
            quality=quality,
        )

    def rank(self, posts: list[Post], limit: int = 50) -> list[RankedPost]:
        return rank_posts(
            posts,
            limit=limit,
            config=self.runtime.ranking,
            quality_weighted=self.runtime.features.quality_weighted_ranking,
        )

    async def close(self) -> None:
        await self.orchestrator.shutdown()
        await self.agent.close()
