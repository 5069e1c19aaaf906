from typing import Any

from kurral_core.agents.prompts import get_prompt
from kurral_core.schema.post import Comment, Post
from kurral_core.schema.value import CommentInsight, DiscussionQuality
from kurral_core.utils.security import sanitize_input

from .base_skill import BaseSkill, logger

MAX_COMMENT_CHARS = 400


def build_thread_prompt(post: Post, comments: list[Comment]) -> str:
    lines = [f"<post>\n{sanitize_input(post.text, max_len=1000)}\n</post>", "<comments>"]
    for c in comments:
        lines.append(f"[{c.id}] {sanitize_input(c.text, max_len=MAX_COMMENT_CHARS)}")
    lines.append("</comments>")
    return "\n".join(lines)


def parse_discussion(data: Any, comments: list[Comment]) -> DiscussionQuality:
    if not isinstance(data, dict):
        data = {}
    thread = data.get("thread") if isinstance(data.get("thread"), dict) else data

    known_ids = {c.id for c in comments}
    insights: list[CommentInsight] = []
    for item in data.get("comments") or []:
        if not isinstance(item, dict):
            continue
        cid = str(item.get("id") or item.get("comment_id") or "").strip()
        # Ignore ids the model invented
        if cid not in known_ids:
            continue
        insights.append(CommentInsight(
            comment_id=cid,
            role=item.get("role"),
            value_contribution=item.get("value_contribution", item.get("valueContribution")),
        ))

    return DiscussionQuality(
        informativeness=thread.get("informativeness"),
        civility=thread.get("civility"),
        reasoning_depth=thread.get("reasoning_depth", thread.get("reasoningDepth")),
        cross_perspective=thread.get("cross_perspective", thread.get("crossPerspective")),
        summary=str(thread.get("summary") or "").strip(),
        comment_insights=insights,
    )


class DiscussionSkill(BaseSkill):
    stage_name = "discussion"

    async def analyze(self, post: Post, comments: list[Comment]) -> DiscussionQuality:
        window = comments[: self.runtime.pipeline.max_comments]
        data = await self.llm_client.complete(
            get_prompt("prompts.discussion_system"),
            build_thread_prompt(post, window),
            response_schema={"type": "object"},
            model=self.model,
            timeout=self.runtime.llm.timeout_sec,
            max_output_tokens=self.max_output_tokens,
            trace_kind="discussion",
        )
        quality = parse_discussion(data, window)
        logger.info(
            "[Discussion] post=%s comments=%d informativeness=%.2f civility=%.2f",
            post.id, len(window), quality.informativeness, quality.civility,
        )
        return quality
