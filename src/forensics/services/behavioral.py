from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from forensics.core.models import Transaction
from forensics.services.risk_factors import ODD_HOURS_UTC

RAPID_GAP_SEC = 60
RAPID_MIN_GAPS = 10
RAPID_POINTS = 15

ROUND_SHARE = 0.7
ROUND_POINTS = 10

ODD_HOUR_SHARE = 0.5
ODD_HOUR_POINTS = 10


def rapid_gap_count(transactions: Sequence[Transaction]) -> int:
    """Consecutive transactions (by time) less than a minute apart."""
    ts = sorted(tx.timestamp for tx in transactions)
    return sum(1 for a, b in zip(ts, ts[1:]) if b - a < RAPID_GAP_SEC)


def round_amount_share(transactions: Sequence[Transaction]) -> float:
    if not transactions:
        return 0.0
    whole = sum(1 for tx in transactions if tx.amount % 1 == 0)
    return whole / len(transactions)


def odd_hour_share(transactions: Sequence[Transaction]) -> float:
    if not transactions:
        return 0.0
    odd = sum(
        1 for tx in transactions
        if datetime.fromtimestamp(tx.timestamp, tz=timezone.utc).hour in ODD_HOURS_UTC
    )
    return odd / len(transactions)


def behavioral_risk(transactions: Optional[Sequence[Transaction]]) -> int:
    """
    Graded behaviour score used alongside threat intelligence.

    - bot-like bursts: more than 10 sub-minute gaps, +15
    - round-number bias: over 70% whole amounts, +10
    - night activity: over half the transactions at 02:00-05:59 UTC, +10
    """
    txs = list(transactions or ())
    score = 0
    if rapid_gap_count(txs) > RAPID_MIN_GAPS:
        score += RAPID_POINTS
    if round_amount_share(txs) > ROUND_SHARE:
        score += ROUND_POINTS
    if odd_hour_share(txs) > ODD_HOUR_SHARE:
        score += ODD_HOUR_POINTS
    return score
