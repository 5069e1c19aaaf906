import logging

from kurral_core.agents.llm_client import LLMClient
from kurral_core.agents.skills.claims import ClaimExtractionSkill
from kurral_core.agents.skills.discussion import DiscussionSkill
from kurral_core.agents.skills.explanation import ExplanationSkill
from kurral_core.agents.skills.fact_check import FactCheckSkill
from kurral_core.agents.skills.precheck import PrecheckSkill
from kurral_core.agents.skills.value_scoring import ValueScoringSkill
from kurral_core.config import KurralConfig
from kurral_core.schema.claims import Claim
from kurral_core.schema.post import Comment, Post
from kurral_core.schema.precheck import PrecheckResult
from kurral_core.schema.value import DiscussionQuality, ValueVector
from kurral_core.schema.verdict import Verdict

logger = logging.getLogger(__name__)


class PipelineAgent:
    """
    Facade over the completion-backed skills used by pipeline steps.
    """

    def __init__(self, config: KurralConfig | None = None, llm_client: LLMClient | None = None):
        config = config or KurralConfig()
        # Pin one runtime snapshot so every skill sees the same tunables.
        self.runtime = config.resolved_runtime()
        self.config = config.model_copy(update={"runtime": self.runtime})

        self.llm_client = llm_client or LLMClient(
            openai_api_key=self.config.openai_api_key,
            base_url=self.config.openai_base_url,
            default_model=self.config.model_for("default"),
            default_timeout=float(self.runtime.llm.timeout_sec),
            concurrency=int(self.runtime.llm.concurrency),
            log_prompts=bool(self.runtime.debug.log_prompts),
        )

        self.precheck_skill = PrecheckSkill(self.config, self.llm_client)
        self.claims_skill = ClaimExtractionSkill(self.config, self.llm_client)
        self.fact_check_skill = FactCheckSkill(self.config, self.llm_client)
        self.discussion_skill = DiscussionSkill(self.config, self.llm_client)
        self.value_skill = ValueScoringSkill(self.config, self.llm_client)
        self.explanation_skill = ExplanationSkill(self.config, self.llm_client)

    async def precheck(self, post: Post) -> PrecheckResult:
        return await self.precheck_skill.run(post)

    async def extract_claims(self, post: Post) -> list[Claim]:
        return await self.claims_skill.extract(post)

    async def verify_claim(self, claim: Claim, post: Post) -> Verdict:
        return await self.fact_check_skill.verify(claim, post)

    async def analyze_discussion(self, post: Post, comments: list[Comment]) -> DiscussionQuality:
        return await self.discussion_skill.analyze(post, comments)

    async def score_value(
        self,
        post: Post,
        claims: list[Claim],
        verdicts: list[Verdict],
        discussion: DiscussionQuality | None,
    ) -> ValueVector:
        return await self.value_skill.score(post, claims, verdicts, discussion)

    async def explain(
        self,
        post: Post,
        value: ValueVector,
        claims: list[Claim],
        verdicts: list[Verdict],
        discussion: DiscussionQuality | None,
    ) -> str:
        return await self.explanation_skill.explain(post, value, claims, verdicts, discussion)

    async def close(self) -> None:
        await self.llm_client.close()
