# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Kurral Engine.
#
# Kurral Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# Kurral Engine is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with Kurral Engine. If not, see <https://www.gnu.org/licenses/>.

"""
Completion service client (OpenAI Chat Completions).

One call shape for every pipeline stage:

    complete(system_prompt, user_prompt, response_schema=None) -> str | dict

- Without a schema the raw text is returned.
- With a schema the response is requested as a JSON object, parsed, and
  (for pydantic schemas) validated before being returned as a dict.

Retries are NOT done here: the stage executor owns timeouts, retries and
fallbacks so that every stage gets the same failure semantics.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import time
from typing import Any

from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from kurral_core.llm.errors import LLMCallError
from kurral_core.llm.failures import LLMFailureKind
from kurral_core.utils.trace import Trace

logger = logging.getLogger(__name__)

ResponseSchema = type[BaseModel] | dict[str, Any]


def parse_json_content(content: str) -> Any:
    """Parse a JSON response, tolerating a ```json fenced block."""
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        if "```" in content:
            block = content.split("```json")[-1] if "```json" in content else content.split("```")[1]
            block = block.split("```")[0]
            try:
                return json.loads(block.strip())
            except json.JSONDecodeError:
                pass
        raise LLMCallError(f"Failed to parse JSON response: {e}", kind=LLMFailureKind.INVALID_JSON) from e


class LLMClient:
    """
    Thin async wrapper around `AsyncOpenAI` with a concurrency limit and
    trace events for every prompt / response / error.

    Example:
        client = LLMClient(openai_api_key="sk-...", default_model="gpt-4o-mini")
        data = await client.complete(
            "You classify posts.",
            "<post>...</post>",
            response_schema=PrecheckResult,
            trace_kind="precheck",
        )
    """

    def __init__(
        self,
        *,
        openai_api_key: str | None = None,
        base_url: str | None = None,
        default_model: str = "gpt-4o-mini",
        default_timeout: float = 30.0,
        concurrency: int = 8,
        log_prompts: bool = False,
        client: AsyncOpenAI | None = None,
    ):
        # SDK-level retries are disabled; the stage executor retries.
        self.client = client or AsyncOpenAI(api_key=openai_api_key, base_url=base_url, max_retries=0)
        self.default_model = default_model
        self.default_timeout = default_timeout
        self.log_prompts = log_prompts
        self._sem = asyncio.Semaphore(max(1, int(concurrency)))

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        response_schema: ResponseSchema | None = None,
        *,
        model: str | None = None,
        timeout: float | None = None,
        max_output_tokens: int | None = None,
        temperature: float | None = None,
        trace_kind: str = "llm_call",
    ) -> str | dict[str, Any]:
        """
        Execute one completion call.

        Raises:
            LLMCallError: empty response, unparseable JSON, schema mismatch
            openai.APIError subclasses: transport / provider failures (classified upstream)
        """
        model = model or self.default_model
        effective_timeout = timeout or self.default_timeout
        json_output = response_schema is not None

        params: dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "timeout": effective_timeout,
        }
        if json_output:
            params["response_format"] = {"type": "json_object"}
        if max_output_tokens:
            params["max_completion_tokens"] = int(max_output_tokens)
        if temperature is not None:
            params["temperature"] = float(temperature)

        payload_hash = hashlib.md5((system_prompt + "||" + user_prompt).encode()).hexdigest()
        Trace.event(f"{trace_kind}.prompt", {
            "model": model,
            "system_chars": len(system_prompt),
            "user_chars": len(user_prompt),
            "json_output": json_output,
            "payload_hash": payload_hash,
            "user_prompt": user_prompt if self.log_prompts else None,
        })

        start = time.monotonic()
        try:
            async with self._sem:
                response = await self.client.chat.completions.create(**params)

            content = ""
            if response.choices:
                content = response.choices[0].message.content or ""
            if not content.strip():
                finish = response.choices[0].finish_reason if response.choices else None
                raise LLMCallError(
                    f"Empty response from completion service (finish_reason={finish})",
                    kind=LLMFailureKind.PROVIDER_ERROR,
                )

            result: str | dict[str, Any] = content
            if json_output:
                parsed = parse_json_content(content)
                result = self._validate(parsed, response_schema)

            usage = getattr(response, "usage", None)
            Trace.event(f"{trace_kind}.response", {
                "model": getattr(response, "model", model),
                "content_chars": len(content),
                "latency_ms": int((time.monotonic() - start) * 1000),
                "total_tokens": getattr(usage, "total_tokens", None),
                "payload_hash": payload_hash,
            })
            return result

        except asyncio.CancelledError:
            Trace.event(f"{trace_kind}.cancelled", {"model": model, "payload_hash": payload_hash})
            raise
        except Exception as e:
            logger.debug("[LLMClient] %s call failed: %s", trace_kind, e)
            Trace.event(f"{trace_kind}.error", {
                "model": model,
                "error_type": type(e).__name__,
                "error": str(e)[:200],
                "payload_hash": payload_hash,
            })
            raise

    @staticmethod
    def _validate(parsed: Any, schema: ResponseSchema | None) -> dict[str, Any]:
        if not isinstance(parsed, dict):
            raise LLMCallError(
                f"Expected object, got {type(parsed).__name__}",
                kind=LLMFailureKind.SCHEMA_VALIDATION_FAILED,
            )
        if isinstance(schema, type) and issubclass(schema, BaseModel):
            try:
                schema.model_validate(parsed)
            except ValidationError as e:
                raise LLMCallError(
                    f"Response does not match {schema.__name__}: {e.error_count()} errors",
                    kind=LLMFailureKind.SCHEMA_VALIDATION_FAILED,
                ) from e
        elif isinstance(schema, dict):
            missing = [k for k in schema.get("required", []) if k not in parsed]
            if missing:
                raise LLMCallError(
                    f"Response missing required keys: {missing}",
                    kind=LLMFailureKind.SCHEMA_VALIDATION_FAILED,
                )
        return parsed

    async def close(self) -> None:
        await self.client.close()
