from kurral_core.agents.prompts import get_prompt
from kurral_core.llm.errors import LLMCallError
from kurral_core.llm.failures import LLMFailureKind
from kurral_core.schema.claims import Claim, RiskLevel
from kurral_core.schema.post import Post
from kurral_core.schema.value import DiscussionQuality, ValueVector
from kurral_core.schema.verdict import Verdict
from kurral_core.scoring.value_aggregation import ValueWeightPolicy, build_value_vector
from kurral_core.utils.security import sanitize_input
from kurral_core.utils.trace import Trace

from .base_skill import BaseSkill, logger
from .value_parsing import extract_dimension_scores


def build_value_summary(
    post: Post,
    claims: list[Claim],
    verdicts: list[Verdict],
    discussion: DiscussionQuality | None,
) -> str:
    if claims:
        risky = sum(1 for c in claims if c.risk_level != RiskLevel.LOW)
        claim_summary = f"{len(claims)} claims ({risky} medium/high risk)."
    else:
        claim_summary = "No explicit extracted claims."

    if verdicts:
        fact_summary = "; ".join(
            f"{v.verdict.value} ({v.confidence:.2f}) on claim {v.claim_id}"
            + (" [fallback]" if v.degraded else "")
            for v in verdicts[:5]
        )
    else:
        fact_summary = "No fact checks."

    if discussion:
        discussion_summary = (
            f"Discussion quality -> inform:{discussion.informativeness:.2f}, "
            f"civility:{discussion.civility:.2f}, reasoning:{discussion.reasoning_depth:.2f}, "
            f"perspective:{discussion.cross_perspective:.2f}; "
            f"{len(discussion.comment_insights)} scored comments"
        )
    else:
        discussion_summary = "No discussion data yet."

    return "\n".join([
        f"<post>\n{sanitize_input(post.text, max_len=700)}\n</post>",
        claim_summary,
        fact_summary,
        discussion_summary,
    ])


class ValueScoringSkill(BaseSkill):
    stage_name = "score_value"

    async def score(
        self,
        post: Post,
        claims: list[Claim],
        verdicts: list[Verdict],
        discussion: DiscussionQuality | None,
    ) -> ValueVector:
        response = await self.llm_client.complete(
            get_prompt("prompts.value_system"),
            build_value_summary(post, claims, verdicts, discussion),
            response_schema={"type": "object"},
            model=self.model,
            timeout=self.runtime.llm.timeout_sec,
            max_output_tokens=self.max_output_tokens,
            trace_kind="value_scoring",
        )
        raw = extract_dimension_scores(response)
        if raw is None:
            raise LLMCallError(
                "Value response has no recognizable score shape",
                kind=LLMFailureKind.SCHEMA_VALIDATION_FAILED,
            )

        drivers = response.get("drivers") if isinstance(response.get("drivers"), list) else []
        vector = build_value_vector(
            raw,
            confidence=response.get("confidence"),
            claims=claims,
            verdicts=verdicts,
            topic=post.topic,
            policy=ValueWeightPolicy(default=self.runtime.default_weights),
            drivers=drivers,
        )
        Trace.event("value_scoring.vector", {"post_id": post.id, **vector.to_dict()})
        logger.info("[ValueScoring] post=%s total=%.2f confidence=%.2f", post.id, vector.total, vector.confidence)
        return vector
