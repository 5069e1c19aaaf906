import logging

from kurral_core.agents.llm_client import LLMClient
from kurral_core.config import KurralConfig

logger = logging.getLogger(__name__)


class BaseSkill:
    """One completion-backed capability. Skills raise; the stage executor decides fallbacks."""

    stage_name = "llm_call"

    def __init__(self, config: KurralConfig, llm_client: LLMClient):
        self.config = config
        self.runtime = config.resolved_runtime()
        self.llm_client = llm_client

    @property
    def model(self) -> str:
        return self.config.model_for(self.stage_name)

    @property
    def max_output_tokens(self) -> int:
        return self.runtime.llm.max_output_tokens
