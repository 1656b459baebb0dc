from __future__ import annotations

import time
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Union

from forensics.core.enums import NodeRole
from forensics.core.logger import get_logger
from forensics.core.models import GraphNode, KnownLists, ThreatVerdict, WalletReport
from forensics.ports.chain_data_port import ChainDataPort
from forensics.services.behavioral import behavioral_risk
from forensics.services.cluster_engine import assign_clusters
from forensics.services.graph_builder import build_graph
from forensics.services.metrics import compute_wallet_metrics
from forensics.services.risk_aggregator import (
    build_recommendations,
    combine_with_threat_intel,
    verdict_from_breakdown,
)
from forensics.services.risk_factors import RiskFactorSet
from forensics.services.threat_intel_service import ThreatIntelAggregator

logger = get_logger(__name__)


class WalletAnalyzer:
    """
    End-to-end analysis of a single wallet.

    - Data: transactions + token balances from the chain port
    - Scoring: heuristic factors, then threat intel folded in when configured
    - Graph: star graph around the subject, clustered by connectivity
    """

    def __init__(
        self,
        chain: ChainDataPort,
        known_lists: Optional[KnownLists] = None,
        threat_intel: Optional[ThreatIntelAggregator] = None,
        check_counterparties: bool = True,
        max_counterparty_lookups: int = 25,
        min_edge_value: Union[Decimal, int, float] = 0,
    ) -> None:
        self.chain = chain
        self.factors = RiskFactorSet(known_lists)
        self.threat_intel = threat_intel
        self.check_counterparties = check_counterparties
        self.max_counterparty_lookups = max(0, int(max_counterparty_lookups))
        self.min_edge_value = min_edge_value

    def analyze(self, address: str, now_ts: Optional[int] = None) -> WalletReport:
        addr = address.lower()
        now = int(now_ts) if now_ts is not None else int(time.time())
        logger.info("analysis_started", address=addr, now_ts=now)

        transactions = self.chain.fetch_transactions(addr) or []
        balances = self.chain.fetch_token_balances(addr) or []

        metrics = compute_wallet_metrics(transactions)
        breakdown = self.factors.evaluate(transactions, balances, metrics, now_ts=now)
        heuristic = verdict_from_breakdown(breakdown)

        graph = build_graph(addr, transactions)
        assign_clusters(graph, self.min_edge_value)

        threat: Optional[ThreatVerdict] = None
        cp_threats: Dict[str, ThreatVerdict] = {}
        trusted = False
        risk = heuristic

        if self.threat_intel is not None:
            counterparties = self._lookup_targets(graph.nodes)
            verdicts = self.threat_intel.check_many([addr] + counterparties)
            threat = verdicts.get(addr)
            cp_threats = {a: verdicts[a] for a in counterparties if a in verdicts}
            trusted = threat is not None and self.threat_intel.is_trusted(threat)
            risk = combine_with_threat_intel(breakdown, threat, cp_threats, behavioral_risk(transactions))

        report = WalletReport(
            address=addr,
            now_ts=now,
            metrics=metrics,
            heuristic=heuristic,
            risk=risk,
            graph=graph,
            threat=threat,
            threat_trusted=trusted,
            counterparty_threats=cp_threats,
            recommendations=build_recommendations(risk, threat, trusted),
            balances=list(balances),
        )

        logger.info(
            "analysis_finished",
            address=addr,
            score=risk.score,
            level=risk.level.value,
            transactions=len(transactions),
            clusters=graph.cluster_count,
        )
        return report

    def _lookup_targets(self, nodes: Mapping[str, GraphNode]) -> List[str]:
        if not self.check_counterparties:
            return []
        cps = [n.id for n in nodes.values() if n.role is NodeRole.COUNTERPARTY]
        return cps[: self.max_counterparty_lookups]
