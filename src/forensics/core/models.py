from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set, Tuple

from forensics.core.enums import NodeRole, RiskLevel, TxDirection


# Input records (produced by the chain-data adapters)

@dataclass(frozen=True)
class Transaction:
    tx_hash: str
    direction: TxDirection
    token: str
    amount: Decimal
    counterparty: str
    timestamp: int              # unix seconds
    gas_used: int = 0
    contract_address: Optional[str] = None
    from_address: Optional[str] = None
    to_address: Optional[str] = None


@dataclass(frozen=True)
class TokenBalance:
    symbol: str
    balance: Decimal
    contract_address: Optional[str] = None
    decimals: Optional[int] = None


@dataclass(frozen=True)
class WalletMetrics:
    total_transactions: int = 0
    unique_counterparties: int = 0
    active_days: int = 0
    contracts_interacted: int = 0
    total_gas_spent: int = 0



# Configuration models

@dataclass(frozen=True)
class KnownLists:
    """
    Address / symbol watchlists consulted by the risk factors.

    Addresses are stored lower-cased, token symbols upper-cased.
    """

    mixers: frozenset = frozenset()
    scam_contracts: frozenset = frozenset()
    blacklist: frozenset = frozenset()
    scam_tokens: frozenset = frozenset()

    @classmethod
    def from_iterables(
        cls,
        mixers: Iterable[str] = (),
        scam_contracts: Iterable[str] = (),
        blacklist: Iterable[str] = (),
        scam_tokens: Iterable[str] = (),
    ) -> "KnownLists":
        return cls(
            mixers=frozenset(a.lower() for a in mixers if a),
            scam_contracts=frozenset(a.lower() for a in scam_contracts if a),
            blacklist=frozenset(a.lower() for a in blacklist if a),
            scam_tokens=frozenset(s.upper() for s in scam_tokens if s),
        )


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    endpoint: str
    api_key: Optional[str] = None
    enabled: bool = True


@dataclass(frozen=True)
class ThreatIntelConfig:
    providers: Tuple[ProviderConfig, ...] = ()
    cache_ttl_sec: int = 60 * 60
    cache_max_size: int = 10_000      # 0 = unbounded
    use_static_lists: bool = True
    confidence_threshold: float = 0.7
    provider_timeout_sec: float = 10.0
    max_workers: int = 16



# Verdicts

@dataclass(frozen=True)
class RiskVerdict:
    score: int
    level: RiskLevel
    breakdown: Dict[str, int]
    flagged_counterparties: Tuple[str, ...] = ()

    @property
    def display_score(self) -> int:
        return min(self.score, 100)


@dataclass(frozen=True)
class ThreatVerdict:
    risk: RiskLevel
    categories: Tuple[str, ...]
    confidence: float
    evaluated_at: int
    sources: Tuple[str, ...]



# Graph models

@dataclass
class GraphNode:

    id: str
    role: NodeRole
    total_volume: Decimal = Decimal("0")
    tx_count: int = 0
    tokens: Set[str] = field(default_factory=set)
    directions: Set[TxDirection] = field(default_factory=set)
    cluster_id: Optional[int] = None

    @property
    def is_suspicious(self) -> bool:
        if self.role is NodeRole.SUBJECT:
            return False
        return self.tx_count > 10 or self.total_volume > 1000 or len(self.directions) > 1


@dataclass
class GraphEdge:

    source: str
    target: str

    value: Decimal
    token: str
    timestamp: int
    tx_hash: str
    direction: TxDirection


@dataclass
class GraphModel:

    subject: str
    nodes: Dict[str, GraphNode] = field(default_factory=dict)
    edges: List[GraphEdge] = field(default_factory=list)
    cluster_assignment: Dict[str, int] = field(default_factory=dict)
    cluster_count: int = 0



# Report

@dataclass
class WalletReport:

    address: str
    now_ts: int
    metrics: WalletMetrics
    heuristic: RiskVerdict
    risk: RiskVerdict
    graph: GraphModel
    threat: Optional[ThreatVerdict] = None
    threat_trusted: bool = False
    counterparty_threats: Dict[str, ThreatVerdict] = field(default_factory=dict)
    recommendations: List[str] = field(default_factory=list)
    balances: List[TokenBalance] = field(default_factory=list)
