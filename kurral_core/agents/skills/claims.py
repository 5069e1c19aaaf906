from kurral_core.agents.prompts import get_prompt
from kurral_core.schema.claims import Claim
from kurral_core.schema.post import Post
from kurral_core.utils.security import sanitize_input
from kurral_core.utils.trace import Trace

from .base_skill import BaseSkill, logger
from .claims_parsing import parse_claims

MAX_CLAIM_INPUT_CHARS = 4000

CLAIMS_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {"claims": {"type": "array"}},
    "required": ["claims"],
}


class ClaimExtractionSkill(BaseSkill):
    stage_name = "extract_claims"

    async def extract(self, post: Post) -> list[Claim]:
        """
        Extract atomic claims. An empty list is a valid result.

        Raises on service failure; the caller decides whether to fall back.
        """
        max_claims = self.runtime.pipeline.max_claims
        system = get_prompt("prompts.claims_system").replace("{max_claims}", str(max_claims))

        parts = []
        if post.topic:
            parts.append(f"Topic: {sanitize_input(post.topic, max_len=80)}")
        if post.image_url:
            parts.append(f"Attached image: {post.image_url}")
        parts.append(f"<post>\n{sanitize_input(post.text, max_len=MAX_CLAIM_INPUT_CHARS)}\n</post>")

        data = await self.llm_client.complete(
            system,
            "\n".join(parts),
            response_schema=CLAIMS_RESPONSE_SCHEMA,
            model=self.model,
            timeout=self.runtime.llm.timeout_sec,
            max_output_tokens=self.max_output_tokens,
            trace_kind="claim_extraction",
        )
        claims = parse_claims(data, post_id=post.id, max_claims=max_claims)

        if claims:
            logger.info("[Claims] Extracted %d claims for post %s", len(claims), post.id)
        else:
            logger.info("[Claims] No checkable claims in post %s", post.id)
        Trace.event("claim_extraction.claims_extracted", {
            "post_id": post.id,
            "count": len(claims),
            "risk_levels": [c.risk_level.value for c in claims],
            "domains": [c.domain.value for c in claims],
        })
        return claims
