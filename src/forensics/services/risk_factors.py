from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from forensics.core.enums import TxDirection
from forensics.core.models import KnownLists, TokenBalance, Transaction, WalletMetrics
from forensics.services.metrics import compute_wallet_metrics


HOUR = 3600
DAY = 24 * HOUR

HIGH_FREQUENCY_WINDOW_SEC = HOUR
HIGH_FREQUENCY_MIN_TXS = 10
ABNORMAL_GAS_USED = 1_000_000
LARGE_AMOUNT = Decimal("10000")
NEW_WALLET_DAYS = 7
MANY_TRANSACTIONS = 200
WASH_TRADING_MIN_EACH_WAY = 3
CIRCULAR_WINDOW_SEC = DAY
CIRCULAR_AMOUNT_EPSILON = Decimal("0.0001")
ANOMALY_MIN_TXS = 5
ANOMALY_MEDIAN_MULTIPLE = 10
ODD_HOURS_UTC = range(2, 6)        # 02:00-05:59 UTC
ODD_HOUR_MIN_TXS = 3

FACTOR_WEIGHTS: Dict[str, int] = {
    "highFrequency": 20,
    "mixerUsage": 30,
    "scamContract": 30,
    "abnormalGas": 10,
    "receivedFromBlacklist": 40,
    "sentToBlacklist": 40,
    "scamTokens": 20,
    "largeInflowOutflow": 15,
    "walletAge": 20,
    "totalTransactions": 10,
    "washTrading": 25,
    "circularTransactions": 25,
    "anomalies": 15,
}
W = FACTOR_WEIGHTS


@dataclass(frozen=True)
class FactorInput:
    """Everything a factor may look at. `now_ts` is fixed for the whole run."""

    transactions: Tuple[Transaction, ...]
    balances: Tuple[TokenBalance, ...]
    metrics: WalletMetrics
    known_lists: KnownLists
    now_ts: int


# -------------------------
# Factors
# -------------------------

def check_high_frequency(inp: FactorInput) -> int:
    cutoff = inp.now_ts - HIGH_FREQUENCY_WINDOW_SEC
    recent = sum(1 for tx in inp.transactions if tx.timestamp > cutoff)
    return W["highFrequency"] if recent > HIGH_FREQUENCY_MIN_TXS else 0


def check_mixer_usage(inp: FactorInput) -> int:
    mixers = inp.known_lists.mixers
    return W["mixerUsage"] if any(_contract(tx) in mixers for tx in inp.transactions) else 0


def check_scam_contract(inp: FactorInput) -> int:
    scams = inp.known_lists.scam_contracts
    return W["scamContract"] if any(_contract(tx) in scams for tx in inp.transactions) else 0


def check_abnormal_gas(inp: FactorInput) -> int:
    return W["abnormalGas"] if any(tx.gas_used > ABNORMAL_GAS_USED for tx in inp.transactions) else 0


def check_received_from_blacklist(inp: FactorInput) -> int:
    bl = inp.known_lists.blacklist
    hit = any(
        tx.direction is TxDirection.INCOMING and tx.counterparty.lower() in bl
        for tx in inp.transactions
    )
    return W["receivedFromBlacklist"] if hit else 0


def check_sent_to_blacklist(inp: FactorInput) -> int:
    bl = inp.known_lists.blacklist
    hit = any(
        tx.direction is TxDirection.OUTGOING and tx.counterparty.lower() in bl
        for tx in inp.transactions
    )
    return W["sentToBlacklist"] if hit else 0


def check_scam_tokens(inp: FactorInput) -> int:
    scam = inp.known_lists.scam_tokens
    return W["scamTokens"] if any((b.symbol or "").upper() in scam for b in inp.balances) else 0


def check_large_inflow_outflow(inp: FactorInput) -> int:
    return W["largeInflowOutflow"] if any(tx.amount > LARGE_AMOUNT for tx in inp.transactions) else 0


def check_wallet_age(inp: FactorInput) -> int:
    if not inp.transactions:
        return 0
    first_ts = min(tx.timestamp for tx in inp.transactions)
    age_days = (inp.now_ts - first_ts) / DAY
    return W["walletAge"] if age_days < NEW_WALLET_DAYS else 0


def check_total_transactions(inp: FactorInput) -> int:
    return W["totalTransactions"] if inp.metrics.total_transactions > MANY_TRANSACTIONS else 0


def check_wash_trading(inp: FactorInput) -> int:
    counts: Dict[Tuple[str, TxDirection], int] = defaultdict(int)
    for tx in inp.transactions:
        if not tx.counterparty:
            continue
        counts[(tx.counterparty.lower(), tx.direction)] += 1

    for cp in {cp for cp, _ in counts}:
        if (counts[(cp, TxDirection.INCOMING)] > WASH_TRADING_MIN_EACH_WAY
                and counts[(cp, TxDirection.OUTGOING)] > WASH_TRADING_MIN_EACH_WAY):
            return W["washTrading"]
    return 0


def check_circular_transactions(inp: FactorInput) -> int:
    by_cp: Dict[str, List[Transaction]] = defaultdict(list)
    for tx in inp.transactions:
        if tx.counterparty:
            by_cp[tx.counterparty.lower()].append(tx)

    for txs in by_cp.values():
        ins = [t for t in txs if t.direction is TxDirection.INCOMING]
        outs = [t for t in txs if t.direction is TxDirection.OUTGOING]
        for inc in ins:
            for out in outs:
                if (abs(inc.timestamp - out.timestamp) < CIRCULAR_WINDOW_SEC
                        and abs(inc.amount - out.amount) < CIRCULAR_AMOUNT_EPSILON):
                    return W["circularTransactions"]
    return 0


def check_anomalies(inp: FactorInput) -> int:
    txs = inp.transactions
    if len(txs) < ANOMALY_MIN_TXS:
        return 0

    amounts = sorted(tx.amount for tx in txs)
    median = amounts[len(amounts) // 2]
    large = amounts[-1] > median * ANOMALY_MEDIAN_MULTIPLE

    odd_hour = sum(
        1 for tx in txs
        if datetime.fromtimestamp(tx.timestamp, tz=timezone.utc).hour in ODD_HOURS_UTC
    )
    return W["anomalies"] if large or odd_hour > ODD_HOUR_MIN_TXS else 0


def _contract(tx: Transaction) -> str:
    return (tx.contract_address or "").lower()


# -------------------------
# Registry
# -------------------------

Factor = Callable[[FactorInput], int]

# Order is the breakdown order.
FACTORS: Dict[str, Factor] = {
    "highFrequency": check_high_frequency,
    "mixerUsage": check_mixer_usage,
    "scamContract": check_scam_contract,
    "abnormalGas": check_abnormal_gas,
    "receivedFromBlacklist": check_received_from_blacklist,
    "sentToBlacklist": check_sent_to_blacklist,
    "scamTokens": check_scam_tokens,
    "largeInflowOutflow": check_large_inflow_outflow,
    "walletAge": check_wallet_age,
    "totalTransactions": check_total_transactions,
    "washTrading": check_wash_trading,
    "circularTransactions": check_circular_transactions,
    "anomalies": check_anomalies,
}


def evaluate_factors(
    transactions: Optional[Sequence[Transaction]],
    balances: Optional[Sequence[TokenBalance]],
    metrics: Optional[WalletMetrics] = None,
    known_lists: Optional[KnownLists] = None,
    now_ts: Optional[int] = None,
) -> Dict[str, int]:
    """
    Run every registered factor once and return the complete breakdown.

    Missing inputs are treated as empty; every factor name is present in the
    result, zero-valued ones included.
    """
    txs = tuple(transactions or ())
    inp = FactorInput(
        transactions=txs,
        balances=tuple(balances or ()),
        metrics=metrics if metrics is not None else compute_wallet_metrics(txs),
        known_lists=known_lists or KnownLists(),
        now_ts=int(now_ts) if now_ts is not None else int(time.time()),
    )
    return {name: int(fn(inp)) for name, fn in FACTORS.items()}


class RiskFactorSet:
    """The factor registry bound to one set of watchlists."""

    def __init__(self, known_lists: Optional[KnownLists] = None) -> None:
        self.known_lists = known_lists or KnownLists()

    @property
    def names(self) -> List[str]:
        return list(FACTORS)

    def evaluate(
        self,
        transactions: Optional[Sequence[Transaction]],
        balances: Optional[Sequence[TokenBalance]],
        metrics: Optional[WalletMetrics] = None,
        now_ts: Optional[int] = None,
    ) -> Dict[str, int]:
        return evaluate_factors(transactions, balances, metrics, self.known_lists, now_ts)
