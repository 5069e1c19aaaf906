from kurral_core.agents.prompts import get_prompt
from kurral_core.schema.post import Post
from kurral_core.schema.precheck import PrecheckResult
from kurral_core.utils.security import sanitize_input
from kurral_core.utils.trace import Trace

from .base_skill import BaseSkill, logger
from .precheck_signals import content_risk_score, detect_signals

MAX_PRECHECK_CHARS = 2000


def build_precheck_prompt(post: Post, signals: list[str]) -> str:
    lines = [f"Content ID: {post.id}"]
    if post.topic:
        lines.append(f"Topic: {sanitize_input(post.topic, max_len=80)}")
    if signals:
        lines.append(f"Signals: {', '.join(signals)}")
    if post.image_url:
        lines.append(f"Attached image: {post.image_url}")
    text = sanitize_input(post.text, max_len=MAX_PRECHECK_CHARS)
    if text:
        lines.append(f"\n<post>\n{text}\n</post>")
    lines.append("\nDecide yes/no for fact-checking per the system rules.")
    return "\n".join(lines)


class PrecheckSkill(BaseSkill):
    stage_name = "precheck"

    async def run(self, post: Post) -> PrecheckResult:
        if not post.has_content():
            logger.debug("[Precheck] Post %s has no content; skipping model call", post.id)
            return PrecheckResult.empty_content()

        risk = content_risk_score(post.text, topic=post.topic, image_url=post.image_url)
        signals = detect_signals(post.text, topic=post.topic, image_url=post.image_url)

        data = await self.llm_client.complete(
            get_prompt("prompts.precheck_system"),
            build_precheck_prompt(post, signals),
            response_schema=PrecheckResult,
            model=self.model,
            timeout=self.runtime.llm.timeout_sec,
            max_output_tokens=self.max_output_tokens,
            trace_kind="precheck",
        )
        result = PrecheckResult.model_validate({**data, "risk_score": risk, "signals": signals})

        Trace.event("precheck.result", {
            "post_id": post.id,
            "needs_fact_check": result.needs_fact_check,
            "content_type": result.content_type.value,
            "risk_score": risk,
        })
        logger.info(
            "[Precheck] post=%s needs_fact_check=%s type=%s confidence=%.2f",
            post.id, result.needs_fact_check, result.content_type.value, result.confidence,
        )
        return result
