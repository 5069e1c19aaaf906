# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Kurral Engine.
#
# Kurral Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
LLM Failure Classification.

Transient kinds are retried with backoff by the stage executor:
- CONNECTION_ERROR: Network/connection issues
- TIMEOUT: Request or stage timeout
- RATE_LIMITED: 429 / quota pressure
- PROVIDER_ERROR: Provider returned 5xx / overloaded
- INVALID_JSON: Response not valid JSON

Non-retryable kinds fail fast and raise an operational alert:
- AUTHENTICATION: Bad or missing credentials, permission denied
- BAD_REQUEST: Request rejected outright (unknown model, bad params)
- SCHEMA_VALIDATION_FAILED: JSON doesn't match the required shape
"""

import asyncio
from enum import Enum
from typing import Any

import openai


class LLMFailureKind(str, Enum):
    """Classification of completion-service failures."""

    CONNECTION_ERROR = "connection_error"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    PROVIDER_ERROR = "provider_error"
    INVALID_JSON = "invalid_json"
    AUTHENTICATION = "authentication"
    BAD_REQUEST = "bad_request"
    SCHEMA_VALIDATION_FAILED = "schema_validation_failed"


TRANSIENT_KINDS = frozenset({
    LLMFailureKind.CONNECTION_ERROR,
    LLMFailureKind.TIMEOUT,
    LLMFailureKind.RATE_LIMITED,
    LLMFailureKind.PROVIDER_ERROR,
    LLMFailureKind.INVALID_JSON,
})


_AUTH_KEYWORDS = (
    "authentication",
    "unauthorized",
    "invalid api key",
    "incorrect api key",
    "api key",
    "permission denied",
    "401",
    "403",
)

_RATE_LIMIT_KEYWORDS = (
    "rate limit",
    "rate_limit",
    "ratelimit",
    "too many requests",
    "429",
    "quota",
)

_PROVIDER_ERROR_KEYWORDS = (
    "capacity",
    "overloaded",
    "unavailable",
    "service error",
    "internal server",
    "500",
    "502",
    "503",
    "504",
)

_BAD_REQUEST_KEYWORDS = (
    "bad request",
    "invalid_request",
    "model_not_found",
    "does not exist",
    "400",
    "404",
)

_JSON_ERROR_KEYWORDS = (
    "json",
    "decode",
    "unexpected token",
    "expecting value",
)

_SCHEMA_ERROR_KEYWORDS = (
    "schema",
    "validation error",
    "missing required",
    "expected object",
    "expected array",
)

_TIMEOUT_KEYWORDS = (
    "timeout",
    "timed out",
    "deadline exceeded",
)

_CONNECTION_KEYWORDS = (
    "connection",
    "network",
    "socket",
    "refused",
    "unreachable",
    "dns",
    "econnreset",
)


def _classify_openai_error(exc: Exception) -> LLMFailureKind | None:
    # Subclasses before their bases: APITimeoutError is an APIConnectionError.
    if isinstance(exc, openai.APITimeoutError):
        return LLMFailureKind.TIMEOUT
    if isinstance(exc, openai.APIConnectionError):
        return LLMFailureKind.CONNECTION_ERROR
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return LLMFailureKind.AUTHENTICATION
    if isinstance(exc, openai.RateLimitError):
        return LLMFailureKind.RATE_LIMITED
    if isinstance(exc, (openai.BadRequestError, openai.NotFoundError, openai.UnprocessableEntityError)):
        return LLMFailureKind.BAD_REQUEST
    if isinstance(exc, openai.InternalServerError):
        return LLMFailureKind.PROVIDER_ERROR
    if isinstance(exc, openai.APIStatusError):
        status = int(getattr(exc, "status_code", 0) or 0)
        if status == 429:
            return LLMFailureKind.RATE_LIMITED
        if status >= 500:
            return LLMFailureKind.PROVIDER_ERROR
        if status in (401, 403):
            return LLMFailureKind.AUTHENTICATION
        if 400 <= status < 500:
            return LLMFailureKind.BAD_REQUEST
    return None


def classify_llm_failure(exc: BaseException) -> LLMFailureKind | None:
    """
    Classify a completion-call exception into a failure kind.

    Typed errors (our own `LLMCallError`, the openai SDK hierarchy,
    asyncio timeouts) are mapped directly; anything else is matched on
    its message. Returns None when nothing matches.
    """
    kind = getattr(exc, "kind", None)
    if isinstance(kind, LLMFailureKind):
        return kind

    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return LLMFailureKind.TIMEOUT

    if isinstance(exc, Exception):
        typed = _classify_openai_error(exc)
        if typed is not None:
            return typed

    error_msg = str(exc).lower()
    exc_type = type(exc).__name__.lower()

    # Auth first: "401 ... rate" style messages are still auth problems.
    if any(kw in error_msg for kw in _AUTH_KEYWORDS):
        return LLMFailureKind.AUTHENTICATION
    if any(kw in error_msg for kw in _RATE_LIMIT_KEYWORDS):
        return LLMFailureKind.RATE_LIMITED
    if any(kw in error_msg for kw in _PROVIDER_ERROR_KEYWORDS):
        return LLMFailureKind.PROVIDER_ERROR
    if any(kw in error_msg for kw in _BAD_REQUEST_KEYWORDS):
        return LLMFailureKind.BAD_REQUEST
    if "json" in exc_type or any(kw in error_msg for kw in _JSON_ERROR_KEYWORDS):
        return LLMFailureKind.INVALID_JSON
    if any(kw in error_msg for kw in _SCHEMA_ERROR_KEYWORDS):
        return LLMFailureKind.SCHEMA_VALIDATION_FAILED
    if "timeout" in exc_type or any(kw in error_msg for kw in _TIMEOUT_KEYWORDS):
        return LLMFailureKind.TIMEOUT
    if "connection" in exc_type or any(kw in error_msg for kw in _CONNECTION_KEYWORDS):
        return LLMFailureKind.CONNECTION_ERROR

    return None


def is_retryable(kind: LLMFailureKind | None) -> bool:
    """
    Only transient kinds are retried.

    Unclassified failures are treated as non-retryable: they are usually
    programming or configuration errors that a retry will not fix.
    """
    return kind in TRANSIENT_KINDS


def failure_kind_to_trace_data(kind: LLMFailureKind | None, exc: BaseException) -> dict[str, Any]:
    return {
        "failure_kind": kind.value if kind else "unknown",
        "retryable": is_retryable(kind),
        "error_type": type(exc).__name__,
        "error_message": str(exc)[:200],
    }
