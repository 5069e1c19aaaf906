"""
Kurral Scoring Module.

Deterministic scoring: trust policy, value aggregation, engagement
prediction and validation, and feed ranking. No I/O.
"""

# Policy
from kurral_core.scoring.policy_engine import evaluate_policy

# Value aggregation
from kurral_core.scoring.value_aggregation import (
    ValueWeightPolicy,
    apply_fact_check_penalty,
    build_value_vector,
)

# Evidence quality
from kurral_core.scoring.source_quality import score_evidence_quality

# Engagement prediction / validation
from kurral_core.scoring.prediction import generate_engagement_prediction
from kurral_core.scoring.validation import (
    summarize_author_accuracy,
    validate_due_posts,
    validate_prediction,
)

# Ranking
from kurral_core.scoring.quality_weighting import build_engagement_quality, weighted_counts
from kurral_core.scoring.ranking import (
    RankedPost,
    RankingBreakdown,
    compute_ranking_score,
    rank_posts,
    ranking_breakdown,
)

__all__ = [
    # Functions
    "evaluate_policy",
    "apply_fact_check_penalty",
    "build_value_vector",
    "score_evidence_quality",
    "generate_engagement_prediction",
    "validate_prediction",
    "validate_due_posts",
    "summarize_author_accuracy",
    "build_engagement_quality",
    "weighted_counts",
    "compute_ranking_score",
    "ranking_breakdown",
    "rank_posts",
    # Classes
    "ValueWeightPolicy",
    "RankedPost",
    "RankingBreakdown",
]
