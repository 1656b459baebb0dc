from __future__ import annotations

from enum import Enum


class TxDirection(str, Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"


class NodeRole(str, Enum):
    SUBJECT = "subject"
    COUNTERPARTY = "counterparty"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]

    @classmethod
    def highest(cls, levels) -> "RiskLevel":
        best = cls.LOW
        for lvl in levels:
            if lvl is not None and lvl.rank > best.rank:
                best = lvl
        return best


_RISK_RANK = {
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.CRITICAL: 3,
}
