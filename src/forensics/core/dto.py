from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from forensics.core.enums import RiskLevel


@dataclass(frozen=True)
class ProviderResult:
    provider: str
    risk: Optional[RiskLevel] = None
    categories: Tuple[str, ...] = ()
    confidence: Optional[float] = None      # 0..1
    sources: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RawTokenTransfer:
    tx_hash: str
    timestamp: Optional[str]         # ISO-8601 block timestamp (raw)
    from_address: str
    to_address: str
    value_raw: Optional[str]         # token amount in raw units (before decimals)
    decimals: Optional[int]
    symbol: Optional[str]
    contract_address: Optional[str]

    @classmethod
    def from_api(cls, row: Dict[str, Any]) -> "RawTokenTransfer":
        to_raw = row.get("toAddress")
        if isinstance(to_raw, list):
            to_raw = to_raw[0] if to_raw else ""
        return cls(
            tx_hash=str(row.get("transactionHash") or ""),
            timestamp=row.get("blockTimestamp"),
            from_address=str(row.get("fromAddress") or row.get("from") or ""),
            to_address=str(to_raw or row.get("to") or ""),
            value_raw=row.get("value"),
            decimals=_int_or_none(row.get("contractDecimals")),
            symbol=row.get("contractSymbols") or row.get("contractSymbol") or row.get("symbol"),
            contract_address=row.get("contractAddress"),
        )


@dataclass(frozen=True)
class RawTokenBalance:
    symbol: Optional[str]
    balance_raw: Optional[str]
    decimals: Optional[int]
    contract_address: Optional[str]

    @classmethod
    def from_api(cls, row: Dict[str, Any]) -> "RawTokenBalance":
        return cls(
            symbol=row.get("contractSymbols") or row.get("contractSymbol") or row.get("symbol"),
            balance_raw=row.get("walletBalance"),
            decimals=_int_or_none(row.get("contractDecimals")),
            contract_address=row.get("contractAddress"),
        )


def _int_or_none(val: Any) -> Optional[int]:
    if val is None:
        return None
    s = str(val).strip()
    return int(s) if s.isdigit() else None
