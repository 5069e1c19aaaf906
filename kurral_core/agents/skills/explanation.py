import json

from kurral_core.agents.prompts import get_prompt
from kurral_core.llm.errors import LLMCallError
from kurral_core.llm.failures import LLMFailureKind
from kurral_core.schema.claims import Claim
from kurral_core.schema.post import Post
from kurral_core.schema.value import DiscussionQuality, ValueVector
from kurral_core.schema.verdict import Verdict, VerdictValue
from kurral_core.utils.security import sanitize_input

from .base_skill import BaseSkill, logger

MAX_EXPLANATION_CHARS = 600


def fallback_explanation(
    value: ValueVector,
    claims: list[Claim],
    verdicts: list[Verdict],
    discussion: DiscussionQuality | None = None,
) -> str:
    """Templated explanation from numeric fields only. Never calls the service."""
    verified = sum(1 for v in verdicts if v.verdict == VerdictValue.TRUE and not v.degraded)
    parts = [
        f"Epistemic {value.epistemic:.2f} driven by {verified} verified claims.",
        f"Insight {value.insight:.2f} from {len(claims)} extracted claims.",
    ]
    if discussion:
        parts.append(
            f"Discussion quality {discussion.informativeness:.2f} with civility {discussion.civility:.2f}."
        )
    return " ".join(parts)


def build_explanation_prompt(
    post: Post,
    value: ValueVector,
    verdicts: list[Verdict],
    claims: list[Claim],
    discussion: DiscussionQuality | None,
) -> str:
    fact_checks = ", ".join(f"{v.claim_id}:{v.verdict.value}" for v in verdicts) or "none"
    return "\n".join([
        f"<post>\n{sanitize_input(post.text, max_len=700)}\n</post>",
        f"Value vector: {json.dumps(value.dimensions())}",
        f"Total score: {value.total:.2f} (confidence {value.confidence:.2f})",
        f"Claims analyzed: {len(claims)}",
        f"Fact checks: {fact_checks}",
        f"Discussion summary: {discussion.summary if discussion and discussion.summary else 'No discussion yet'}",
    ])


class ExplanationSkill(BaseSkill):
    stage_name = "explanation"

    async def explain(
        self,
        post: Post,
        value: ValueVector,
        claims: list[Claim],
        verdicts: list[Verdict],
        discussion: DiscussionQuality | None,
    ) -> str:
        if not self.runtime.features.explanation_llm:
            return fallback_explanation(value, claims, verdicts, discussion)

        data = await self.llm_client.complete(
            get_prompt("prompts.explanation_system"),
            build_explanation_prompt(post, value, verdicts, claims, discussion),
            response_schema={"type": "object", "required": ["summary"]},
            model=self.model,
            timeout=self.runtime.llm.timeout_sec,
            max_output_tokens=self.max_output_tokens,
            trace_kind="explanation",
        )
        summary = str(data.get("summary") or "").strip()
        if not summary:
            raise LLMCallError("Empty explanation summary", kind=LLMFailureKind.SCHEMA_VALIDATION_FAILED)
        logger.debug("[Explanation] post=%s chars=%d", post.id, len(summary))
        return summary[:MAX_EXPLANATION_CHARS]
