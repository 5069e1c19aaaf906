# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors

import asyncio

import pytest

from kurral_core.llm import (
    LLMCallError,
    LLMFailureKind,
    classify_llm_failure,
    failure_kind_to_trace_data,
    is_retryable,
)


@pytest.mark.parametrize(
    "exc,expected",
    [
        (asyncio.TimeoutError(), LLMFailureKind.TIMEOUT),
        (TimeoutError("read"), LLMFailureKind.TIMEOUT),
        (RuntimeError("Error code: 401 - invalid api key"), LLMFailureKind.AUTHENTICATION),
        (RuntimeError("Rate limit reached for requests"), LLMFailureKind.RATE_LIMITED),
        (RuntimeError("The server is overloaded"), LLMFailureKind.PROVIDER_ERROR),
        (RuntimeError("model_not_found: gpt-x does not exist"), LLMFailureKind.BAD_REQUEST),
        (ValueError("Expecting value: line 1 column 1"), LLMFailureKind.INVALID_JSON),
        (RuntimeError("missing required field 'verdict'"), LLMFailureKind.SCHEMA_VALIDATION_FAILED),
        (OSError("Connection refused"), LLMFailureKind.CONNECTION_ERROR),
    ],
)
def test_classify_by_type_and_message(exc, expected):
    assert classify_llm_failure(exc) == expected


def test_typed_error_kind_wins_over_message():
    exc = LLMCallError("rate limit text in a schema error", kind=LLMFailureKind.SCHEMA_VALIDATION_FAILED)
    assert classify_llm_failure(exc) == LLMFailureKind.SCHEMA_VALIDATION_FAILED


def test_unrecognized_error_is_unclassified():
    assert classify_llm_failure(KeyError("prompts.missing")) is None


def test_auth_beats_rate_limit_in_message():
    assert classify_llm_failure(RuntimeError("401 unauthorized (rate limit)")) == LLMFailureKind.AUTHENTICATION


@pytest.mark.parametrize(
    "kind",
    [
        LLMFailureKind.CONNECTION_ERROR,
        LLMFailureKind.TIMEOUT,
        LLMFailureKind.RATE_LIMITED,
        LLMFailureKind.PROVIDER_ERROR,
        LLMFailureKind.INVALID_JSON,
    ],
)
def test_transient_kinds_are_retryable(kind):
    assert is_retryable(kind)


@pytest.mark.parametrize(
    "kind",
    [
        LLMFailureKind.AUTHENTICATION,
        LLMFailureKind.BAD_REQUEST,
        LLMFailureKind.SCHEMA_VALIDATION_FAILED,
        None,
    ],
)
def test_non_retryable_kinds(kind):
    assert not is_retryable(kind)


def test_trace_data_shape():
    exc = LLMCallError("boom" * 100, kind=LLMFailureKind.TIMEOUT)
    data = failure_kind_to_trace_data(LLMFailureKind.TIMEOUT, exc)
    assert data["failure_kind"] == "timeout"
    assert data["retryable"] is True
    assert data["error_type"] == "LLMCallError"
    assert len(data["error_message"]) == 200


def test_trace_data_unclassified():
    data = failure_kind_to_trace_data(None, KeyError("x"))
    assert data["failure_kind"] == "unknown"
    assert data["retryable"] is False


def test_llm_call_error_str_includes_kind():
    assert str(LLMCallError("bad", kind=LLMFailureKind.INVALID_JSON)) == "bad (kind=invalid_json)"
    assert LLMCallError("x").kind == LLMFailureKind.PROVIDER_ERROR
