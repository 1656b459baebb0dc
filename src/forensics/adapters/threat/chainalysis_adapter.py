from __future__ import annotations

from typing import Any, Dict

from forensics.adapters.threat.http_provider import JsonHttpProvider
from forensics.core.dto import ProviderResult
from forensics.core.enums import RiskLevel


_RISK_MAP = {
    "severe": RiskLevel.CRITICAL,
    "critical": RiskLevel.CRITICAL,
    "high": RiskLevel.HIGH,
    "medium": RiskLevel.MEDIUM,
}


class ChainalysisAdapter(JsonHttpProvider):
    """Chainalysis KYT address risk."""

    name = "Chainalysis"
    requires_key = True

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _lookup(self, address: str) -> ProviderResult:
        data = self._call("GET", f"addresses/{address}")
        return self._result(
            risk=map_risk(data.get("risk")),
            categories=[str(c) for c in data.get("categories") or [] if c],
            confidence=_confidence(data.get("confidence")),
        )


def map_risk(raw: Any) -> RiskLevel:
    return _RISK_MAP.get(str(raw or "").strip().lower(), RiskLevel.LOW)


def _confidence(raw: Any) -> float:
    try:
        return float(raw) if raw is not None else 0.0
    except (TypeError, ValueError):
        return 0.0
