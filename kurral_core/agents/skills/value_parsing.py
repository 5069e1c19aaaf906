import logging
from typing import Any

from kurral_core.schema.value import VALUE_DIMENSIONS

logger = logging.getLogger(__name__)


def _all_numeric(data: dict[str, Any], keys: list[str]) -> bool:
    return all(isinstance(data.get(k), (int, float)) and not isinstance(data.get(k), bool) for k in keys)


def extract_dimension_scores(response: Any) -> dict[str, float] | None:
    """
    Pull the five dimension scores out of a value-scoring response.

    Accepted shapes:
    1. nested            {"scores": {"epistemic": ..., ...}, "confidence": ...}
    2. flat lowercase    {"epistemic": ..., "insight": ..., ...}
    3. flat capitalized  {"Epistemic": ..., "Insight": ..., ...}

    Returns None when none of the shapes match.
    """
    if not isinstance(response, dict):
        return None

    nested = response.get("scores")
    if isinstance(nested, dict):
        return {dim: nested.get(dim) for dim in VALUE_DIMENSIONS}

    lower = list(VALUE_DIMENSIONS)
    if _all_numeric(response, lower):
        logger.warning("[ValueScoring] Received flat response format (lowercase)")
        return {dim: response[dim] for dim in lower}

    capitalized = [dim.capitalize() for dim in VALUE_DIMENSIONS]
    if _all_numeric(response, capitalized):
        logger.warning("[ValueScoring] Received flat response format (capitalized)")
        return {dim: response[dim.capitalize()] for dim in VALUE_DIMENSIONS}

    return None
