# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Evidence source quality from the cited URL's domain.

Model-reported quality is not trusted when a URL is present: the domain
decides. Without a URL the model's number is kept, capped at the
no-domain prior.
"""

from __future__ import annotations

from kurral_core.utils.url_utils import get_hostname, host_matches

NO_DOMAIN_QUALITY = 0.4
BLOCKED_QUALITY = 0.0
TRUSTED_QUALITY = 0.95
GOV_EDU_QUALITY = 0.85
ORG_QUALITY = 0.7
DEFAULT_QUALITY = 0.5

TRUSTED_DOMAINS = (
    "who.int",
    "cdc.gov",
    "nih.gov",
    "fda.gov",
    "worldbank.org",
    "imf.org",
    "reuters.com",
    "apnews.com",
    "nature.com",
    "science.org",
    "ft.com",
    "nytimes.com",
    "theguardian.com",
)

# User-generated content platforms are not evidence.
BLOCKED_DOMAINS = (
    "facebook.com",
    "reddit.com",
    "tiktok.com",
    "instagram.com",
    "telegram.org",
)


def domain_quality(url: str | None) -> float | None:
    """Quality implied by the URL's domain, or None when there is no usable domain."""
    host = get_hostname(url or "")
    if not host:
        return None
    if any(host_matches(host, d) for d in BLOCKED_DOMAINS):
        return BLOCKED_QUALITY
    if any(host_matches(host, d) for d in TRUSTED_DOMAINS):
        return TRUSTED_QUALITY
    if host.endswith(".gov") or host.endswith(".edu"):
        return GOV_EDU_QUALITY
    if host.endswith(".org"):
        return ORG_QUALITY
    return DEFAULT_QUALITY


def score_evidence_quality(url: str | None, reported: float | None = None) -> float:
    by_domain = domain_quality(url)
    if by_domain is not None:
        return by_domain
    if reported is None:
        return NO_DOMAIN_QUALITY
    return max(0.0, min(NO_DOMAIN_QUALITY, float(reported)))
