# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Kurral Engine.
#
# Kurral Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

import re

# Tags used to fence user content inside prompts.
PROMPT_TAGS = ("post", "claim", "comments", "comment")


_INJECTION_PATTERNS = (
    (re.compile(r"<\|[^|]+\|>"), ""),
    (re.compile(r"\[/?INST\]", re.IGNORECASE), ""),
    (re.compile(
        r"(ignore|disregard|forget|override)\s+(all\s+)?(previous|prior|above|earlier)\s+"
        r"(instructions?|prompts?|directions?|rules?)",
        re.IGNORECASE,
    ), "[instruction removed]"),
    (re.compile(r"new\s+instructions?\s*:", re.IGNORECASE), "[instruction removed]"),
    (re.compile(r"system\s*:\s*ignore", re.IGNORECASE), "[instruction removed]"),
    (re.compile(r"(act\s+as|pretend\s+to\s+be)\s+(a|an)\s+[^.\n]+", re.IGNORECASE), "[role instruction removed]"),
    (re.compile(r"respond\s+(in|as|with)\s+(json|xml|markdown|html)", re.IGNORECASE), "[format instruction removed]"),
    (re.compile(r"\[(BEGIN|END)\s+(INSTRUCTION|PROMPT)\]", re.IGNORECASE), "[delimiter removed]"),
)


def neutralize_injection(text: str) -> str:
    """Replace common prompt-injection phrases with inert markers."""
    for pattern, replacement in _INJECTION_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def sanitize_input(text: str, *, max_len: int | None = None) -> str:
    """
    Sanitize user content before embedding it in a prompt.
    - Removes control characters.
    - Neutralizes closing tags that would break the prompt fencing.
    - Neutralizes common injection phrases.
    """
    if not text:
        return ""
    # Control chars except tab, newline, carriage return
    text = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", text)

    for tag in PROMPT_TAGS:
        text = re.sub(rf"</\s*{tag}\s*>", f"< /{tag}>", text, flags=re.IGNORECASE)

    text = neutralize_injection(text).strip()
    if max_len is not None and len(text) > max_len:
        text = text[:max_len]
    return text
