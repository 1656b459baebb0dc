from __future__ import annotations

from typing import Any, Optional, Tuple

from forensics.adapters.threat.http_provider import JsonHttpProvider
from forensics.core.dto import ProviderResult
from forensics.core.enums import RiskLevel
from forensics.core.errors import MalformedResponseError


class TrmLabsAdapter(JsonHttpProvider):
    """TRM Labs sanctions screening."""

    name = "TRM Labs"
    requires_key = True
    default_confidence = 0.9

    def _auth(self) -> Optional[Tuple[str, str]]:
        # key doubles as user and password
        return (str(self._api_key), str(self._api_key))

    def _lookup(self, address: str) -> ProviderResult:
        url = f"{self.endpoint}/sanctions/screening"
        data = self._request("POST", url, [{"address": address}])
        row = _first_row(data)
        if row.get("isSanctioned"):
            return self._result(RiskLevel.CRITICAL, categories=["sanctions"])
        return self._result(RiskLevel.LOW)


def _first_row(data: Any) -> dict:
    if isinstance(data, list):
        data = data[0] if data else {}
    if not isinstance(data, dict):
        raise MalformedResponseError(f"Invalid TRM Labs response: {data!r}")
    return data
