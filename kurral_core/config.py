from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from kurral_core.runtime_config import EngineRuntimeConfig


class KurralConfig(BaseModel):
    """
    Configuration for the Kurral core engine.
    Decouples the engine from environment variables; `runtime` falls back
    to `EngineRuntimeConfig.load_from_env()` when not given.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    # LLM Configuration
    openai_api_key: Optional[str] = Field(None, description="OpenAI API key for completion calls")
    openai_base_url: Optional[str] = Field(None, description="Override for OpenAI-compatible endpoints")
    openai_model: Optional[str] = Field(None, description="Model override for all stages")

    runtime: Optional[EngineRuntimeConfig] = Field(None, description="Tunables; loaded from env if omitted")

    def resolved_runtime(self) -> EngineRuntimeConfig:
        return self.runtime or EngineRuntimeConfig.load_from_env()

    def model_for(self, stage: str) -> str:
        if self.openai_model:
            return self.openai_model
        runtime = self.resolved_runtime()
        if stage == "precheck":
            return runtime.llm.precheck_model
        return runtime.llm.model
