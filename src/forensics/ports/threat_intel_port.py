from __future__ import annotations

from abc import ABC, abstractmethod

from forensics.core.dto import ProviderResult


class ThreatIntelProvider(ABC):
    """One threat-intelligence source queried during an address lookup."""

    name: str = "provider"

    @abstractmethod
    def check_address(self, address: str) -> ProviderResult:
        """Return this provider's view of the address or raise on failure."""
        raise NotImplementedError
