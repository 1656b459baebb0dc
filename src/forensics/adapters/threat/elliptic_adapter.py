from __future__ import annotations

from typing import Any, Dict, List

from forensics.adapters.threat.http_provider import JsonHttpProvider
from forensics.core.dto import ProviderResult
from forensics.core.enums import RiskLevel


class EllipticAdapter(JsonHttpProvider):
    """Elliptic synchronous wallet screening (AML)."""

    name = "Elliptic"
    requires_key = True
    default_confidence = 0.8

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["x-access-key"] = str(self._api_key)
        return headers

    def _lookup(self, address: str) -> ProviderResult:
        body = {
            "subject": {"asset": "holistic", "type": "address", "hash": address},
            "type": "wallet_exposure",
        }
        data = self._call("POST", "wallet/synchronous", body)
        return self._result(
            risk=map_risk_score(data.get("risk_score")),
            categories=_categories(data.get("cluster_entities")),
        )


def map_risk_score(raw: Any) -> RiskLevel:
    """Elliptic scores run 0..10."""
    try:
        score = float(raw)
    except (TypeError, ValueError):
        return RiskLevel.LOW
    if score >= 9:
        return RiskLevel.CRITICAL
    if score >= 6:
        return RiskLevel.HIGH
    if score >= 3:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def _categories(entities: Any) -> List[str]:
    out: List[str] = []
    if not isinstance(entities, list):
        return out
    for ent in entities:
        cat = ent.get("category") if isinstance(ent, dict) else None
        if cat and cat not in out:
            out.append(str(cat))
    return out
