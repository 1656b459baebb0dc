from __future__ import annotations

import threading
import time
from typing import Any, Callable, FrozenSet, Optional

import requests

from forensics.adapters.threat.http_provider import JsonHttpProvider
from forensics.config.settings import DARKLIST_REFRESH_SEC
from forensics.core.dto import ProviderResult
from forensics.core.enums import RiskLevel
from forensics.core.errors import MalformedResponseError
from forensics.core.logger import get_logger

logger = get_logger(__name__)


class DarklistAdapter(JsonHttpProvider):
    """
    Community-maintained darklist published on GitHub.

    The whole list is downloaded once and reused until `refresh_sec` passes.
    Both published shapes are accepted: a list of {"address": ...} objects or
    an object keyed by address.
    """

    name = "GitHub Community Lists"
    default_confidence = 0.7

    def __init__(
        self,
        endpoint: str,
        refresh_sec: float = DARKLIST_REFRESH_SEC,
        clock: Callable[[], float] = time.time,
        session: Optional[requests.Session] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(endpoint, session=session, **kwargs)
        self._refresh_sec = refresh_sec
        self._clock = clock
        self._addresses: Optional[FrozenSet[str]] = None
        self._loaded_at = 0.0
        self._lock = threading.Lock()

    def _lookup(self, address: str) -> ProviderResult:
        if address in self._darklist():
            return self._result(RiskLevel.HIGH, categories=["phishing"])
        return self._result(RiskLevel.LOW)

    def _darklist(self) -> FrozenSet[str]:
        with self._lock:
            now = self._clock()
            if self._addresses is None or now - self._loaded_at >= self._refresh_sec:
                self._addresses = parse_darklist(self._request("GET", self.endpoint))
                self._loaded_at = now
                logger.info("darklist_loaded", url=self.endpoint, size=len(self._addresses))
            return self._addresses


def parse_darklist(data: Any) -> FrozenSet[str]:
    if isinstance(data, dict):
        return frozenset(str(k).lower() for k in data if k)
    if isinstance(data, list):
        out = set()
        for row in data:
            if isinstance(row, dict) and row.get("address"):
                out.add(str(row["address"]).lower())
            elif isinstance(row, str) and row:
                out.add(row.lower())
        return frozenset(out)
    raise MalformedResponseError(f"Invalid darklist payload: {type(data).__name__}")
