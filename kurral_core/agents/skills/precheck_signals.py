"""Deterministic content-risk signals fed to the pre-check prompt."""

import re

HIGH_RISK_TOPICS = (
    "health", "medical", "finance", "money", "invest", "stocks",
    "economy", "politics", "election", "science",
)

HIGH_RISK_KEYWORDS = (
    "vaccine", "treatment", "cancer", "covid", "virus", "pandemic",
    "inflation", "recession", "investment", "returns", "guaranteed",
    "election", "vote", "fraud", "war", "nuclear",
)

STAT_PATTERNS = (
    re.compile(r"\d+%"),
    re.compile(r"\d+ out of \d+"),
    re.compile(r"\d{4}"),
    re.compile(r"\b(million|billion|trillion)\b", re.IGNORECASE),
)

AUTHORITY_PATTERNS = (
    re.compile(r"according to", re.IGNORECASE),
    re.compile(r"study shows", re.IGNORECASE),
    re.compile(r"research indicates", re.IGNORECASE),
    re.compile(r"experts? (say|claim)", re.IGNORECASE),
    re.compile(r"scientists", re.IGNORECASE),
    re.compile(r"doctors", re.IGNORECASE),
)


def _has_keyword(haystack: str, keywords: tuple[str, ...]) -> bool:
    return any(kw in haystack for kw in keywords)


def content_risk_score(text: str | None, *, topic: str | None = None, image_url: str | None = None) -> float:
    """Heuristic 0-1 risk that the content carries checkable, harmful-if-wrong claims."""
    raw = text or ""
    lowered = raw.lower()
    score = 0.1
    if _has_keyword((topic or "").lower(), HIGH_RISK_TOPICS):
        score += 0.35
    if any(p.search(lowered) for p in STAT_PATTERNS):
        score += 0.2
    if any(p.search(lowered) for p in AUTHORITY_PATTERNS):
        score += 0.15
    if _has_keyword(lowered, HIGH_RISK_KEYWORDS):
        score += 0.2
    if len(raw) > 200:
        score += 0.1
    elif len(raw) < 40:
        score -= 0.05
    if image_url and image_url.strip():
        score += 0.05
    return max(0.0, min(1.0, score))


def detect_signals(text: str | None, *, topic: str | None = None, image_url: str | None = None) -> list[str]:
    lowered = (text or "").lower()
    signals: list[str] = []
    if any(p.search(lowered) for p in STAT_PATTERNS):
        signals.append("stats_or_numbers")
    if any(p.search(lowered) for p in AUTHORITY_PATTERNS):
        signals.append("authority_cue")
    if _has_keyword(lowered, HIGH_RISK_KEYWORDS):
        signals.append("high_risk_keywords")
    if _has_keyword((topic or "").lower(), HIGH_RISK_TOPICS):
        signals.append("high_risk_topic")
    if image_url and image_url.strip():
        signals.append("has_image")
    return signals
