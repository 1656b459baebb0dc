from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional
import time

import requests

from forensics.config.settings import (
    BLAST_API_BASE,
    BLAST_PROJECT_ID,
    BLAST_REQUESTS_PER_SEC,
    BLAST_TIMEOUT_SEC,
    BLAST_MAX_RETRIES,
    BLAST_DEFAULT_DECIMALS,
)

from forensics.adapters.chain.rate_limiter import SimpleRateLimiter, backoff_sleep
from forensics.core.dto import RawTokenBalance, RawTokenTransfer
from forensics.core.enums import TxDirection
from forensics.core.errors import DataSourceError, RateLimitError
from forensics.core.logger import get_logger
from forensics.core.models import TokenBalance, Transaction
from forensics.ports.chain_data_port import ChainDataPort

logger = get_logger(__name__)


class BlastChainAdapter(ChainDataPort):
    """Starknet token transfers and balances from the Blast builder API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        requests_per_sec: float = BLAST_REQUESTS_PER_SEC,
        timeout_sec: int = BLAST_TIMEOUT_SEC,
        max_retries: int = BLAST_MAX_RETRIES,
        session: Optional[requests.Session] = None,
    ) -> None:
        if base_url is None and BLAST_PROJECT_ID:
            base_url = f"{BLAST_API_BASE.rstrip('/')}/{BLAST_PROJECT_ID}/builder"
        self._base_url = base_url.rstrip("/") if base_url else None
        self._timeout = timeout_sec
        self._max_retries = max(1, int(max_retries))

        self._rl = SimpleRateLimiter(requests_per_sec)
        self._session = session or requests.Session()

    # ---------- internal ----------

    def _call(self, method: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self._base_url:
            raise DataSourceError("Missing BLAST_PROJECT_ID (or explicit base_url) for Blast API")

        url = f"{self._base_url}/{method}"
        last_err: Optional[Exception] = None

        for attempt in range(self._max_retries):
            try:
                self._rl.wait()
                resp = self._session.get(url, params=params, timeout=self._timeout)
                if resp.status_code == 429:
                    raise RateLimitError(f"Blast rate limited on {method}")
                resp.raise_for_status()
                data = resp.json()
                if not isinstance(data, dict):
                    raise DataSourceError(f"Invalid Blast response: {data}")
                return data

            except Exception as e:
                last_err = e
                if attempt < self._max_retries - 1:
                    backoff_sleep(attempt)

        raise DataSourceError(f"Blast {method} failed after retries: {last_err}")

    def _iter_rows(self, method: str, address: str, key: str) -> Iterable[Dict[str, Any]]:
        params: Dict[str, Any] = {"walletAddress": address}
        while True:
            data = self._call(method, params)
            rows = data.get(key)
            if not isinstance(rows, list):
                break
            for r in rows:
                if isinstance(r, dict):
                    yield r

            next_key = data.get("nextPageKey")
            if not next_key:
                break
            params = {"walletAddress": address, "pageKey": next_key}

    @staticmethod
    def _scale(raw: Optional[str], decimals: Optional[int]) -> Decimal:
        if raw is None or raw == "":
            return Decimal("0")
        try:
            value = Decimal(str(raw))
        except InvalidOperation:
            return Decimal("0")
        dec = decimals if decimals is not None else BLAST_DEFAULT_DECIMALS
        # token amount normalization
        return value / (Decimal(10) ** dec)

    @staticmethod
    def _parse_ts(raw: Optional[str], fallback: int) -> int:
        if not raw:
            return fallback
        try:
            dt = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        except ValueError:
            return fallback
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp())

    # ---------- port methods ----------

    def fetch_transactions(self, address: str) -> List[Transaction]:
        addr = address.lower()
        fetched_at = int(time.time())
        out: List[Transaction] = []

        for row in self._iter_rows("getWalletTokenTransfers", address, "tokenTransfers"):
            raw = RawTokenTransfer.from_api(row)
            frm = raw.from_address.lower()
            to = raw.to_address.lower()
            outgoing = frm == addr

            out.append(
                Transaction(
                    tx_hash=raw.tx_hash,
                    direction=TxDirection.OUTGOING if outgoing else TxDirection.INCOMING,
                    token=raw.symbol or "UNKNOWN",
                    amount=self._scale(raw.value_raw, raw.decimals),
                    counterparty=to if outgoing else frm,
                    timestamp=self._parse_ts(raw.timestamp, fetched_at),
                    gas_used=0,
                    contract_address=(raw.contract_address or "").lower() or None,
                    from_address=frm or None,
                    to_address=to or None,
                )
            )

        logger.debug("blast_transfers_fetched", address=addr, count=len(out))
        return out

    def fetch_token_balances(self, address: str) -> List[TokenBalance]:
        out: List[TokenBalance] = []
        for row in self._iter_rows("getWalletTokenBalances", address, "tokenBalances"):
            raw = RawTokenBalance.from_api(row)
            balance = self._scale(raw.balance_raw, raw.decimals)
            if balance <= 0:
                continue
            out.append(
                TokenBalance(
                    symbol=raw.symbol or "UNKNOWN",
                    balance=balance,
                    contract_address=(raw.contract_address or "").lower() or None,
                    decimals=raw.decimals if raw.decimals is not None else BLAST_DEFAULT_DECIMALS,
                )
            )
        return out
