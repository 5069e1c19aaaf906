# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Kurral Engine.
#
# Kurral Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
"""
Per-run JSONL traces for local debugging.

One file per pipeline run (`<post_id>-run<run_id>.jsonl`) under the
configured trace directory. Every record carries the post and run it
belongs to. Secrets are masked and user ids hashed before anything is
written.
"""

from __future__ import annotations

import contextvars
import datetime
import hashlib
import json
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from kurral_core.runtime_config import EngineRuntimeConfig
from kurral_core.utils.runtime import is_local_run


@dataclass(frozen=True)
class TraceContext:
    trace_id: str
    enabled: bool
    post_id: str | None = None
    run_id: int | None = None
    path: Path | None = None


_context_var: contextvars.ContextVar[TraceContext | None] = contextvars.ContextVar("kurral_trace", default=None)

_SECRET_KEYS = frozenset({"authorization", "api_key", "key", "openai_api_key", "token"})
# Hashed so traces from different runs still correlate.
_USER_ID_KEYS = frozenset({"author_id", "user_id", "commenter_id", "email"})

_SECRET_PATTERNS = (
    (re.compile(r"([?&](?:key|api_key|access_token)=)[^&]+", re.IGNORECASE), r"\1***"),
    (re.compile(r"(Bearer\s+)[A-Za-z0-9._-]+"), r"\1***"),
    (re.compile(r"\bsk-[A-Za-z0-9_-]{8,}"), "sk-***"),
)

MAX_TEXT = 2000
MAX_ITEMS = 50
MAX_KEYS = 100


def _mask_secrets(text: str) -> str:
    for pattern, repl in _SECRET_PATTERNS:
        text = pattern.sub(repl, text)
    return text


def _hash_id(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:16]


def _digest_text(text: str) -> str | dict[str, Any]:
    """Long post or prompt text is kept as a digest plus both ends."""
    if len(text) <= MAX_TEXT:
        return text
    edge = min(200, MAX_TEXT // 2)
    return {
        "len": len(text),
        "sha256": hashlib.sha256(text.encode("utf-8")).hexdigest(),
        "head": text[:edge],
        "tail": text[-edge:],
    }


def _sanitize(obj: Any) -> Any:
    if obj is None or isinstance(obj, (bool, int, float)):
        return obj
    if isinstance(obj, str):
        return _digest_text(_mask_secrets(obj))
    if isinstance(obj, (list, tuple)):
        out = [_sanitize(x) for x in obj[:MAX_ITEMS]]
        if len(obj) > MAX_ITEMS:
            out.append(f"...(+{len(obj) - MAX_ITEMS} more)")
        return out
    if isinstance(obj, dict):
        res: dict[str, Any] = {}
        for key, value in list(obj.items())[:MAX_KEYS]:
            key = str(key)
            lowered = key.lower()
            if lowered in _SECRET_KEYS:
                res[key] = "***"
            elif lowered in _USER_ID_KEYS and isinstance(value, str):
                res[key] = _hash_id(value)
            else:
                res[key] = _sanitize(value)
        if len(obj) > MAX_KEYS:
            res["..."] = f"(+{len(obj) - MAX_KEYS} more keys)"
        return res
    return _sanitize(str(obj))


def _file_name(trace_id: str) -> str:
    return "".join(c if c.isalnum() or c in "._-" else "_" for c in trace_id) + ".jsonl"


def trace_enabled() -> bool:
    ctx = _context_var.get()
    return bool(ctx and ctx.enabled)


def current_trace_id() -> str | None:
    ctx = _context_var.get()
    return ctx.trace_id if ctx else None


def current_trace() -> TraceContext | None:
    return _context_var.get()


class Trace:
    """
    Local-only trace sink for pipeline runs.

    Enabled only on local/dev runs with the `trace_enabled` feature flag on.
    Write failures are swallowed; a run never fails because of its trace.
    """

    @staticmethod
    def start(
        trace_id: str,
        *,
        runtime: EngineRuntimeConfig | None = None,
        post_id: str | None = None,
        run_id: int | None = None,
    ) -> TraceContext:
        runtime = runtime or EngineRuntimeConfig.load_from_env()
        enabled = bool(is_local_run() and runtime.features.trace_enabled)
        path = Path(runtime.features.trace_dir) / _file_name(trace_id) if enabled else None
        ctx = TraceContext(trace_id=trace_id, enabled=enabled, post_id=post_id, run_id=run_id, path=path)
        _context_var.set(ctx)
        Trace.event("trace.start", {
            "started_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        })
        return ctx

    @staticmethod
    def stop() -> None:
        Trace.event("trace.stop")
        _context_var.set(None)

    @staticmethod
    def event(name: str, data: Any | None = None) -> None:
        ctx = _context_var.get()
        if ctx is None or not ctx.enabled or ctx.path is None:
            return

        rec = {
            "ts_ms": int(time.time() * 1000),
            "trace_id": ctx.trace_id,
            "post_id": ctx.post_id,
            "run_id": ctx.run_id,
            "event": str(name),
            "data": _sanitize(data),
        }
        try:
            ctx.path.parent.mkdir(parents=True, exist_ok=True)
            with ctx.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(rec, ensure_ascii=False, default=str) + "\n")
        except OSError:
            return
