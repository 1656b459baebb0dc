from __future__ import annotations

from typing import Any, Optional

import requests

from forensics.adapters.threat.http_provider import JsonHttpProvider, host_of
from forensics.core.dto import ProviderResult
from forensics.core.enums import RiskLevel

REPORTS_FOR_HIGH = 3


class CommunityDbAdapter(JsonHttpProvider):
    """Community scam database; one instance per endpoint."""

    default_confidence = 0.7

    def __init__(self, endpoint: str, session: Optional[requests.Session] = None, **kwargs: Any) -> None:
        super().__init__(endpoint, session=session, **kwargs)
        self.name = f"Community DB ({host_of(endpoint)})"

    def _lookup(self, address: str) -> ProviderResult:
        data = self._call("GET", f"check/{address}")
        if not data.get("is_scam"):
            return self._result(RiskLevel.LOW)
        try:
            reports = int(data.get("report_count") or 0)
        except (TypeError, ValueError):
            reports = 0
        risk = RiskLevel.HIGH if reports >= REPORTS_FOR_HIGH else RiskLevel.MEDIUM
        return self._result(risk, categories=["scam"])
