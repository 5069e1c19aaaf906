from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

from kurral_core.schema.policy import TrustPolicy
from kurral_core.schema.value import ValueWeights


def _parse_bool(raw: Any, *, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    s = str(raw).strip().lower()
    if not s:
        return default
    if s in ("1", "true", "yes", "y", "on"):
        return True
    if s in ("0", "false", "no", "n", "off"):
        return False
    return default


def _parse_int(raw: Any, *, default: int, min_v: int, max_v: int) -> int:
    try:
        if raw is None:
            v = default
        elif isinstance(raw, int):
            v = raw
        else:
            v = int(str(raw).strip())
    except (TypeError, ValueError):
        v = default
    return max(min_v, min(max_v, v))


def _parse_float(raw: Any, *, default: float, min_v: float, max_v: float) -> float:
    try:
        if raw is None:
            v = default
        elif isinstance(raw, (int, float)):
            v = float(raw)
        else:
            v = float(str(raw).strip())
    except (TypeError, ValueError):
        v = default
    if v != v:  # NaN
        v = default
    return max(min_v, min(max_v, v))


def _parse_weights(raw: str | None, *, default: ValueWeights) -> ValueWeights:
    """Parse `epistemic=0.3,insight=0.25,...`; unknown keys are ignored."""
    s = (raw or "").strip()
    if not s:
        return default
    values = default.model_dump()
    for part in s.split(","):
        if "=" not in part:
            continue
        key, _, val = part.partition("=")
        key = key.strip().lower()
        if key in values:
            values[key] = _parse_float(val, default=values[key], min_v=0.0, max_v=10.0)
    return ValueWeights(**values)


@dataclass(frozen=True)
class EngineFeatureFlags:
    # Trace is a local-only debug feature; enabled by default, can be disabled via env.
    trace_enabled: bool = True
    # Relative paths resolve against the working directory.
    trace_dir: str = "data/trace"
    # Explanation via the completion service; off means template only.
    explanation_llm: bool = True
    # Ranking uses contributor-quality weighted counts instead of raw counts.
    quality_weighted_ranking: bool = False


@dataclass(frozen=True)
class EngineDebugFlags:
    engine_debug: bool = False
    log_prompts: bool = False


@dataclass(frozen=True)
class EngineLLMConfig:
    timeout_sec: float = 30.0
    concurrency: int = 8
    model: str = "gpt-4o-mini"
    precheck_model: str = "gpt-4o-mini"
    max_output_tokens: int = 900


@dataclass(frozen=True)
class EnginePipelineConfig:
    stage_timeout_sec: float = 30.0
    verify_timeout_sec: float = 45.0
    max_retries: int = 2
    retry_base_delay_sec: float = 1.0
    retry_max_delay_sec: float = 8.0
    verify_concurrency: int = 4
    max_claims: int = 5
    max_comments: int = 50


@dataclass(frozen=True)
class EngineRankingConfig:
    # Neutral value prior for posts that have no value score yet (never zero).
    unscored_value_prior: float = 0.5
    flag_penalty: float = 15.0
    tie_threshold_ratio: float = 0.05
    tie_threshold_min: float = 2.0
    max_per_author_top: int = 3
    top_window: int = 20
    max_per_author_total: int = 5


@dataclass(frozen=True)
class EngineRuntimeConfig:
    llm: EngineLLMConfig = field(default_factory=EngineLLMConfig)
    features: EngineFeatureFlags = field(default_factory=EngineFeatureFlags)
    debug: EngineDebugFlags = field(default_factory=EngineDebugFlags)
    pipeline: EnginePipelineConfig = field(default_factory=EnginePipelineConfig)
    ranking: EngineRankingConfig = field(default_factory=EngineRankingConfig)
    policy: TrustPolicy = field(default_factory=TrustPolicy)
    default_weights: ValueWeights = field(default_factory=ValueWeights)

    @staticmethod
    def load_from_env() -> "EngineRuntimeConfig":
        llm = EngineLLMConfig(
            timeout_sec=_parse_float(os.getenv("OPENAI_TIMEOUT"), default=30.0, min_v=5.0, max_v=300.0),
            concurrency=_parse_int(os.getenv("OPENAI_CONCURRENCY"), default=8, min_v=1, max_v=32),
            model=(os.getenv("KURRAL_MODEL") or "gpt-4o-mini").strip(),
            precheck_model=(os.getenv("KURRAL_PRECHECK_MODEL") or "gpt-4o-mini").strip(),
            max_output_tokens=_parse_int(
                os.getenv("KURRAL_LLM_MAX_OUTPUT_TOKENS"), default=900, min_v=200, max_v=4000
            ),
        )

        debug = EngineDebugFlags(
            engine_debug=_parse_bool(os.getenv("KURRAL_ENGINE_DEBUG"), default=False),
            log_prompts=_parse_bool(os.getenv("KURRAL_LOG_PROMPTS"), default=False),
        )

        features = EngineFeatureFlags(
            trace_enabled=not _parse_bool(os.getenv("KURRAL_TRACE_DISABLE"), default=False),
            trace_dir=(os.getenv("KURRAL_TRACE_DIR") or "data/trace").strip(),
            explanation_llm=_parse_bool(os.getenv("FEATURE_EXPLANATION_LLM"), default=True),
            quality_weighted_ranking=_parse_bool(os.getenv("FEATURE_QUALITY_WEIGHTED_RANKING"), default=False),
        )

        pipeline = EnginePipelineConfig(
            stage_timeout_sec=_parse_float(os.getenv("KURRAL_STAGE_TIMEOUT"), default=30.0, min_v=1.0, max_v=300.0),
            verify_timeout_sec=_parse_float(os.getenv("KURRAL_VERIFY_TIMEOUT"), default=45.0, min_v=1.0, max_v=300.0),
            max_retries=_parse_int(os.getenv("KURRAL_STAGE_MAX_RETRIES"), default=2, min_v=0, max_v=5),
            retry_base_delay_sec=_parse_float(
                os.getenv("KURRAL_RETRY_BASE_DELAY"), default=1.0, min_v=0.0, max_v=30.0
            ),
            retry_max_delay_sec=_parse_float(
                os.getenv("KURRAL_RETRY_MAX_DELAY"), default=8.0, min_v=0.0, max_v=120.0
            ),
            verify_concurrency=_parse_int(os.getenv("KURRAL_VERIFY_CONCURRENCY"), default=4, min_v=1, max_v=16),
            max_claims=_parse_int(os.getenv("KURRAL_MAX_CLAIMS"), default=5, min_v=1, max_v=20),
            max_comments=_parse_int(os.getenv("KURRAL_MAX_COMMENTS"), default=50, min_v=1, max_v=500),
        )

        ranking = EngineRankingConfig(
            unscored_value_prior=_parse_float(
                os.getenv("RANKING_UNSCORED_PRIOR"), default=0.5, min_v=0.0, max_v=1.0
            ),
            flag_penalty=_parse_float(os.getenv("RANKING_FLAG_PENALTY"), default=15.0, min_v=0.0, max_v=100.0),
            max_per_author_top=_parse_int(os.getenv("RANKING_MAX_PER_AUTHOR_TOP"), default=3, min_v=1, max_v=20),
            max_per_author_total=_parse_int(
                os.getenv("RANKING_MAX_PER_AUTHOR_TOTAL"), default=5, min_v=1, max_v=100
            ),
        )

        policy = TrustPolicy(
            block_confidence=_parse_float(
                os.getenv("POLICY_BLOCK_CONFIDENCE"), default=0.7, min_v=0.0, max_v=1.0
            ),
            min_true_confidence=_parse_float(
                os.getenv("POLICY_MIN_TRUE_CONFIDENCE"), default=0.5, min_v=0.0, max_v=1.0
            ),
        )

        return EngineRuntimeConfig(
            llm=llm,
            features=features,
            debug=debug,
            pipeline=pipeline,
            ranking=ranking,
            policy=policy,
            default_weights=_parse_weights(os.getenv("KURRAL_VALUE_WEIGHTS"), default=ValueWeights()),
        )

    def to_safe_log_dict(self) -> dict[str, Any]:
        return {
            "features": {
                "trace_enabled": bool(self.features.trace_enabled),
                "trace_dir": self.features.trace_dir,
                "explanation_llm": bool(self.features.explanation_llm),
                "quality_weighted_ranking": bool(self.features.quality_weighted_ranking),
            },
            "debug": {
                "engine_debug": bool(self.debug.engine_debug),
                "log_prompts": bool(self.debug.log_prompts),
            },
            "llm": {
                "timeout_sec": float(self.llm.timeout_sec),
                "concurrency": int(self.llm.concurrency),
                "model": self.llm.model,
                "precheck_model": self.llm.precheck_model,
                "max_output_tokens": int(self.llm.max_output_tokens),
            },
            "pipeline": {
                "stage_timeout_sec": float(self.pipeline.stage_timeout_sec),
                "verify_timeout_sec": float(self.pipeline.verify_timeout_sec),
                "max_retries": int(self.pipeline.max_retries),
                "retry_base_delay_sec": float(self.pipeline.retry_base_delay_sec),
                "verify_concurrency": int(self.pipeline.verify_concurrency),
                "max_claims": int(self.pipeline.max_claims),
            },
            "ranking": {
                "unscored_value_prior": float(self.ranking.unscored_value_prior),
                "flag_penalty": float(self.ranking.flag_penalty),
            },
            "policy": self.policy.to_dict(),
            "default_weights": self.default_weights.to_dict(),
        }
