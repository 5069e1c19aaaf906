import re
from typing import Any

from kurral_core.agents.prompts import get_prompt
from kurral_core.schema.claims import Claim
from kurral_core.schema.post import Post
from kurral_core.schema.serialization import clamp_unit
from kurral_core.schema.verdict import Evidence, Verdict
from kurral_core.scoring.source_quality import score_evidence_quality
from kurral_core.utils.security import sanitize_input
from kurral_core.utils.trace import Trace

from .base_skill import BaseSkill, logger

MAX_EVIDENCE_ITEMS = 5
MAX_SNIPPET_CHARS = 400
MAX_CAVEATS = 5

_MD_LINK = re.compile(r"\[[^\]]+\]\((https?://[^)\s]+)\)")
_PLAIN_URL = re.compile(r"(https?://[^\s)\]]+)")

VERDICT_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "verdict": {"type": "string"},
        "confidence": {"type": "number"},
        "evidence": {"type": "array"},
        "caveats": {"type": "array"},
    },
    "required": ["verdict"],
}


def extract_url(text: str) -> str | None:
    """First URL in a markdown link or plain text."""
    if not text:
        return None
    m = _MD_LINK.search(text) or _PLAIN_URL.search(text)
    return m.group(1) if m else None


def parse_evidence(items: Any) -> list[Evidence]:
    if not isinstance(items, list):
        return []
    out: list[Evidence] = []
    for item in items[:MAX_EVIDENCE_ITEMS]:
        if isinstance(item, str):
            item = {"snippet": item}
        if not isinstance(item, dict):
            continue
        snippet = sanitize_input(str(item.get("snippet") or ""), max_len=MAX_SNIPPET_CHARS)
        source = str(item.get("source") or "").strip()
        url = str(item.get("url") or "").strip() or extract_url(source) or extract_url(snippet)
        reported = item.get("quality")
        out.append(Evidence(
            source=source or (url or "unknown"),
            url=url,
            snippet=snippet,
            quality=score_evidence_quality(url, clamp_unit(reported) if reported is not None else None),
        ))
    return out


def parse_verdict(data: Any, claim: Claim) -> Verdict:
    if not isinstance(data, dict):
        data = {}
    caveats = [str(c).strip() for c in (data.get("caveats") or []) if str(c).strip()]
    return Verdict(
        id=f"{claim.id}-verdict",
        claim_id=claim.id,
        verdict=data.get("verdict"),
        confidence=clamp_unit(data.get("confidence"), default=0.0),
        evidence=parse_evidence(data.get("evidence")),
        caveats=caveats[:MAX_CAVEATS],
        degraded=False,
    )


class FactCheckSkill(BaseSkill):
    stage_name = "verify_claims"

    async def verify(self, claim: Claim, post: Post) -> Verdict:
        """Check one claim. Raises on service failure."""
        user_prompt = (
            f"Claim domain: {claim.domain.value}; risk: {claim.risk_level.value}\n"
            f"<claim>{sanitize_input(claim.text)}</claim>\n"
            f"<post>\n{sanitize_input(post.text, max_len=1500)}\n</post>"
        )
        data = await self.llm_client.complete(
            get_prompt("prompts.fact_check_system"),
            user_prompt,
            response_schema=VERDICT_RESPONSE_SCHEMA,
            model=self.model,
            timeout=self.runtime.pipeline.verify_timeout_sec,
            max_output_tokens=self.max_output_tokens,
            trace_kind="fact_check",
        )
        verdict = parse_verdict(data, claim)

        Trace.event("fact_check.verdict", {
            "claim_id": claim.id,
            "verdict": verdict.verdict.value,
            "confidence": verdict.confidence,
            "evidence_count": len(verdict.evidence),
        })
        logger.debug(
            "[FactCheck] claim=%s verdict=%s confidence=%.2f",
            claim.id, verdict.verdict.value, verdict.confidence,
        )
        return verdict
