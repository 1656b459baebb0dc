from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from forensics.core.models import Transaction, WalletMetrics


def compute_wallet_metrics(transactions: Optional[Sequence[Transaction]]) -> WalletMetrics:
    txs = list(transactions or [])

    counterparties = {t.counterparty.lower() for t in txs if t.counterparty}
    days = {
        datetime.fromtimestamp(t.timestamp, tz=timezone.utc).date()
        for t in txs
        if t.timestamp
    }
    contracts = {t.contract_address.lower() for t in txs if t.contract_address}

    return WalletMetrics(
        total_transactions=len(txs),
        unique_counterparties=len(counterparties),
        active_days=len(days),
        contracts_interacted=len(contracts),
        total_gas_spent=sum(int(t.gas_used or 0) for t in txs),
    )
