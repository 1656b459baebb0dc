from __future__ import annotations

from abc import abstractmethod
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

import requests

from forensics.adapters.chain.rate_limiter import SimpleRateLimiter, backoff_sleep
from forensics.config.settings import (
    THREAT_INTEL_MAX_RETRIES,
    THREAT_INTEL_REQUESTS_PER_SEC,
    THREAT_INTEL_TIMEOUT_SEC,
)
from forensics.core.dto import ProviderResult
from forensics.core.enums import RiskLevel
from forensics.core.errors import MalformedResponseError, MissingCredentialError, ProviderError, RateLimitError
from forensics.ports.threat_intel_port import ThreatIntelProvider


class JsonHttpProvider(ThreatIntelProvider):
    """
    Base for providers backed by a JSON-over-HTTP API.

    Subclasses set `name`, declare whether a key is required and implement
    `_lookup`. The credential check happens before any request is sent.
    """

    name = "http"
    requires_key = False
    default_confidence: Optional[float] = None

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str] = None,
        timeout_sec: float = THREAT_INTEL_TIMEOUT_SEC,
        max_retries: int = THREAT_INTEL_MAX_RETRIES,
        requests_per_sec: float = THREAT_INTEL_REQUESTS_PER_SEC,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._endpoint = (endpoint or "").rstrip("/")
        self._api_key = api_key
        self._timeout = timeout_sec
        self._max_retries = max(1, int(max_retries))
        self._rl = SimpleRateLimiter(requests_per_sec)
        self._session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def check_address(self, address: str) -> ProviderResult:
        if self.requires_key and not self._api_key:
            raise MissingCredentialError(f"{self.name} requires an API key")
        return self._lookup(address.lower())

    @abstractmethod
    def _lookup(self, address: str) -> ProviderResult:
        raise NotImplementedError

    # ---------- request plumbing ----------

    def _headers(self) -> Dict[str, str]:
        return {"Accept": "application/json"}

    def _auth(self) -> Optional[Tuple[str, str]]:
        return None

    def _request(self, method: str, url: str, body: Any = None) -> Any:
        last_err: Optional[Exception] = None

        for attempt in range(self._max_retries):
            try:
                self._rl.wait()
                resp = self._session.request(
                    method,
                    url,
                    json=body,
                    headers=self._headers(),
                    auth=self._auth(),
                    timeout=self._timeout,
                )
                if resp.status_code == 429:
                    raise RateLimitError(f"{self.name} rate limited")
                resp.raise_for_status()
                return resp.json()

            except Exception as e:
                last_err = e
                if attempt < self._max_retries - 1:
                    backoff_sleep(attempt)

        raise ProviderError(f"{self.name} failed after retries: {last_err}")

    def _call(self, method: str, path: str, body: Any = None) -> Dict[str, Any]:
        url = f"{self._endpoint}/{path.lstrip('/')}" if path else self._endpoint
        data = self._request(method, url, body)
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Invalid {self.name} response: {data!r}")
        return data

    def _result(self, risk: RiskLevel, categories=(), confidence: Optional[float] = None) -> ProviderResult:
        return ProviderResult(
            provider=self.name,
            risk=risk,
            categories=tuple(categories),
            confidence=self.default_confidence if confidence is None else confidence,
            sources=(self.name,),
        )


def host_of(url: str) -> str:
    return urlparse(url).netloc or url
