from typing import Any

from kurral_core.schema.claims import Claim, ClaimDomain, ClaimType, RiskLevel
from kurral_core.schema.serialization import clamp_unit, utc_now
from kurral_core.utils.security import sanitize_input

MAX_CLAIM_CHARS = 240

CLAIM_TYPE_MAPPING: dict[str, ClaimType] = {
    "fact": ClaimType.FACT,
    "factual": ClaimType.FACT,
    "statistic": ClaimType.FACT,
    "opinion": ClaimType.OPINION,
    "experience": ClaimType.OPINION,
    "personal": ClaimType.OPINION,
    "prediction": ClaimType.PREDICTION,
    "forecast": ClaimType.PREDICTION,
}

DOMAIN_MAPPING: dict[str, ClaimDomain] = {
    "health": ClaimDomain.HEALTH,
    "medical": ClaimDomain.HEALTH,
    "medicine": ClaimDomain.HEALTH,
    "finance": ClaimDomain.FINANCE,
    "economy": ClaimDomain.FINANCE,
    "economics": ClaimDomain.FINANCE,
    "politics": ClaimDomain.POLITICS,
    "political": ClaimDomain.POLITICS,
    "technology": ClaimDomain.TECHNOLOGY,
    "tech": ClaimDomain.TECHNOLOGY,
    "ai": ClaimDomain.TECHNOLOGY,
    "science": ClaimDomain.SCIENCE,
    "society": ClaimDomain.SOCIETY,
    "social": ClaimDomain.SOCIETY,
    "culture": ClaimDomain.SOCIETY,
    "general": ClaimDomain.GENERAL,
}


def normalize_claim_type(raw: Any) -> ClaimType:
    return CLAIM_TYPE_MAPPING.get(str(raw or "").strip().lower(), ClaimType.FACT)


def normalize_domain(raw: Any) -> ClaimDomain:
    return DOMAIN_MAPPING.get(str(raw or "").strip().lower(), ClaimDomain.GENERAL)


def normalize_risk_level(raw: Any) -> RiskLevel:
    try:
        return RiskLevel(str(raw or "").strip().lower())
    except ValueError:
        return RiskLevel.LOW


def claim_id_for(post_id: str, candidate: Any, index: int) -> str:
    cand = str(candidate or "").strip()
    if cand:
        return cand if cand.startswith(f"{post_id}-") else f"{post_id}-{cand}"
    return f"{post_id}-claim-{index + 1}"


def parse_claims(data: Any, *, post_id: str, max_claims: int) -> list[Claim]:
    """
    Turn a model response into validated, de-duplicated claims.

    Accepts `{"claims": [...]}` or a bare list. Items without text are dropped.
    """
    items = data.get("claims") if isinstance(data, dict) else data
    if not isinstance(items, list):
        return []

    claims: list[Claim] = []
    seen_text: set[str] = set()
    seen_ids: set[str] = set()
    extracted_at = utc_now()
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            continue
        text = sanitize_input(str(item.get("text") or ""), max_len=MAX_CLAIM_CHARS)
        key = " ".join(text.lower().split())
        if not key or key in seen_text:
            continue
        seen_text.add(key)

        cid = claim_id_for(post_id, item.get("id"), i)
        if cid in seen_ids:
            cid = f"{post_id}-claim-{i + 1}"
        seen_ids.add(cid)

        claims.append(Claim(
            id=cid,
            post_id=post_id,
            text=text,
            type=normalize_claim_type(item.get("type")),
            domain=normalize_domain(item.get("domain")),
            risk_level=normalize_risk_level(item.get("risk_level", item.get("riskLevel"))),
            confidence=clamp_unit(item.get("confidence"), default=0.5),
            extracted_at=extracted_at,
        ))
        if len(claims) >= max_claims:
            break
    return claims
