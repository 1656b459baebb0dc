from __future__ import annotations

from typing import List

from forensics.core.dto import ProviderResult
from forensics.core.enums import RiskLevel
from forensics.core.models import KnownLists
from forensics.ports.threat_intel_port import ThreatIntelProvider

HIT_CONFIDENCE = 0.9
MISS_CONFIDENCE = 0.5


class WatchlistAdapter(ThreatIntelProvider):
    """Lookup against the locally configured watchlists; no network."""

    name = "Local Watchlist"

    def __init__(self, known_lists: KnownLists) -> None:
        self._lists = known_lists

    def check_address(self, address: str) -> ProviderResult:
        addr = address.lower()
        levels: List[RiskLevel] = []
        categories: List[str] = []

        if addr in self._lists.blacklist:
            levels.append(RiskLevel.CRITICAL)
            categories.append("blacklist")
        if addr in self._lists.mixers:
            levels.append(RiskLevel.HIGH)
            categories.append("mixer")
        if addr in self._lists.scam_contracts:
            levels.append(RiskLevel.HIGH)
            categories.append("scam")

        return ProviderResult(
            provider=self.name,
            risk=RiskLevel.highest(levels),
            categories=tuple(categories),
            confidence=HIT_CONFIDENCE if levels else MISS_CONFIDENCE,
            sources=(self.name,),
        )
