from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from forensics.core.enums import TxDirection
from forensics.core.models import (
    GraphModel,
    RiskVerdict,
    ThreatVerdict,
    TokenBalance,
    Transaction,
    WalletReport,
)


def _dec_to_str(x: Decimal) -> str:
    # keep as string for JSON precision safety
    return format(x, "f")


def verdict_to_dict(v: RiskVerdict) -> Dict[str, Any]:
    return {
        "score": v.score,
        "display_score": v.display_score,
        "level": v.level.value,
        "breakdown": dict(v.breakdown),
        "flagged_counterparties": list(v.flagged_counterparties),
    }


def threat_to_dict(t: Optional[ThreatVerdict]) -> Optional[Dict[str, Any]]:
    if t is None:
        return None
    return {
        "risk": t.risk.value,
        "categories": list(t.categories),
        "confidence": t.confidence,
        "evaluated_at": t.evaluated_at,
        "sources": list(t.sources),
    }


def graph_to_dict(g: GraphModel) -> Dict[str, Any]:
    return {
        "subject": g.subject,
        "cluster_count": g.cluster_count,
        "nodes": [
            {
                "id": n.id,
                "role": n.role.value,
                "total_volume": _dec_to_str(n.total_volume),
                "tx_count": n.tx_count,
                "tokens": sorted(n.tokens),
                "directions": sorted(d.value for d in n.directions),
                "cluster_id": n.cluster_id,
                "is_suspicious": n.is_suspicious,
            }
            for n in g.nodes.values()
        ],
        "edges": [
            {
                "source": e.source,
                "target": e.target,
                "value": _dec_to_str(e.value),
                "token": e.token,
                "timestamp": e.timestamp,
                "tx_hash": e.tx_hash,
                "direction": e.direction.value,
            }
            for e in g.edges
        ],
    }


def report_to_dict(r: WalletReport) -> Dict[str, Any]:
    m = r.metrics
    return {
        "address": r.address,
        "now_ts": r.now_ts,
        "metrics": {
            "total_transactions": m.total_transactions,
            "unique_counterparties": m.unique_counterparties,
            "active_days": m.active_days,
            "contracts_interacted": m.contracts_interacted,
            "total_gas_spent": m.total_gas_spent,
        },
        "heuristic": verdict_to_dict(r.heuristic),
        "risk": verdict_to_dict(r.risk),
        "threat": threat_to_dict(r.threat),
        "threat_trusted": r.threat_trusted,
        "counterparty_threats": {a: threat_to_dict(t) for a, t in r.counterparty_threats.items()},
        "balances": [
            {
                "symbol": b.symbol,
                "balance": _dec_to_str(b.balance),
                "contract_address": b.contract_address,
            }
            for b in r.balances
        ],
        "cluster_count": r.graph.cluster_count,
        "recommendations": list(r.recommendations),
    }


# ---- fixtures (dev/testing) ----

def transaction_from_dict(row: Dict[str, Any]) -> Transaction:
    return Transaction(
        tx_hash=str(row.get("tx_hash") or ""),
        direction=TxDirection(str(row.get("direction") or "incoming").lower()),
        token=str(row.get("token") or "UNKNOWN"),
        amount=Decimal(str(row.get("amount") or "0")),
        counterparty=str(row.get("counterparty") or "").lower(),
        timestamp=int(row.get("timestamp") or 0),
        gas_used=int(row.get("gas_used") or 0),
        contract_address=(row.get("contract_address") or "").lower() or None,
        from_address=(row.get("from_address") or "").lower() or None,
        to_address=(row.get("to_address") or "").lower() or None,
    )


def balance_from_dict(row: Dict[str, Any]) -> TokenBalance:
    return TokenBalance(
        symbol=str(row.get("symbol") or "UNKNOWN"),
        balance=Decimal(str(row.get("balance") or "0")),
        contract_address=(row.get("contract_address") or "").lower() or None,
        decimals=row.get("decimals"),
    )


def load_fixture(
    path: str,
) -> Tuple[Dict[str, List[Transaction]], Dict[str, List[TokenBalance]]]:
    """
    Read a JSON fixture for the static chain adapter:

        {"transactions": {"0xabc": [{...}]}, "balances": {"0xabc": [{...}]}}
    """
    with Path(path).open(encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Fixture must hold a JSON object: {path}")

    txs = {
        addr.lower(): [transaction_from_dict(r) for r in rows if isinstance(r, dict)]
        for addr, rows in (data.get("transactions") or {}).items()
    }
    balances = {
        addr.lower(): [balance_from_dict(r) for r in rows if isinstance(r, dict)]
        for addr, rows in (data.get("balances") or {}).items()
    }
    return txs, balances
