from __future__ import annotations

import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set

from forensics.core.dto import ProviderResult
from forensics.core.enums import RiskLevel
from forensics.core.errors import MalformedResponseError
from forensics.core.logger import get_logger
from forensics.core.models import ThreatIntelConfig, ThreatVerdict
from forensics.ports.threat_intel_port import ThreatIntelProvider
from forensics.services.verdict_cache import VerdictCache

logger = get_logger(__name__)

STATIC_SOURCE = "Static Analysis"
STATIC_CONFIDENCE = 0.3

_SUSPICIOUS_PATTERNS = (
    re.compile(r"^0x0{4,}[1-9a-f]", re.IGNORECASE),          # long leading zero run
    re.compile(r"^0x(dead|beef|cafe|babe)", re.IGNORECASE),   # vanity prefixes
)


def static_risk_check(address: str) -> RiskLevel:
    for pattern in _SUSPICIOUS_PATTERNS:
        if pattern.match(address or ""):
            return RiskLevel.MEDIUM
    return RiskLevel.LOW


def static_fallback(address: str, now_ts: int) -> ThreatVerdict:
    return ThreatVerdict(
        risk=static_risk_check(address),
        categories=(),
        confidence=STATIC_CONFIDENCE,
        evaluated_at=now_ts,
        sources=(STATIC_SOURCE,),
    )


def merge_results(results: Sequence[ProviderResult], now_ts: int) -> ThreatVerdict:
    """
    Fold successful provider results into one verdict.

    - risk: highest tier reported (low when none reports a tier)
    - categories / sources: union, first-seen order
    - confidence: mean over providers that reported a positive confidence
    """
    categories: Dict[str, None] = {}
    sources: Dict[str, None] = {}
    confidences: List[float] = []

    for r in results:
        for c in r.categories:
            if c:
                categories[c] = None
        for s in (r.sources or (r.provider,)):
            sources[s] = None
        if r.confidence is not None and r.confidence > 0:
            confidences.append(float(r.confidence))

    return ThreatVerdict(
        risk=RiskLevel.highest(r.risk for r in results),
        categories=tuple(categories),
        confidence=sum(confidences) / len(confidences) if confidences else 0.0,
        evaluated_at=now_ts,
        sources=tuple(sources),
    )


def _validate(result: object, provider: ThreatIntelProvider) -> ProviderResult:
    if not isinstance(result, ProviderResult):
        raise MalformedResponseError(f"{provider.name} returned {type(result).__name__}")
    if result.confidence is not None and not (0.0 <= result.confidence <= 1.0):
        raise MalformedResponseError(f"{provider.name} confidence out of range: {result.confidence}")
    return result


class ThreatIntelAggregator:
    """
    Multi-provider address lookup with caching and a static fallback.

    Every lookup gets its own executor with one thread per provider, so each
    provider's `provider_timeout_sec` starts when its call starts and a hung
    provider never holds a worker another lookup needs. The lookup waits for
    all providers (join-all) and merges whatever succeeded. Provider failures
    are logged and never reach the caller. `max_workers` bounds how many
    addresses `check_many` looks up at once.
    """

    def __init__(
        self,
        providers: Iterable[ThreatIntelProvider],
        cache: Optional[VerdictCache] = None,
        config: Optional[ThreatIntelConfig] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._providers = list(providers)
        self._config = config or ThreatIntelConfig()
        self._clock = clock
        self._cache = cache if cache is not None else VerdictCache(
            ttl_sec=self._config.cache_ttl_sec,
            max_size=self._config.cache_max_size,
            clock=clock,
        )
        self._lock = threading.Lock()
        self._active: Set[ThreadPoolExecutor] = set()
        self._closed = False

    @property
    def cache(self) -> VerdictCache:
        return self._cache

    @property
    def providers(self) -> List[ThreatIntelProvider]:
        return list(self._providers)

    def check_address(self, address: str) -> ThreatVerdict:
        addr = (address or "").lower()

        cached = self._cache.get(addr)
        if cached is not None:
            logger.debug("threat_cache_hit", address=addr)
            return cached

        try:
            results = self._fan_out(addr)
        except RuntimeError as exc:
            logger.error("threat_fan_out_failed", address=addr, error=str(exc))
            results = []
        now_ts = int(self._clock())
        if results:
            verdict = merge_results(results, now_ts)
        else:
            logger.info("threat_intel_fallback", address=addr, providers=len(self._providers))
            verdict = static_fallback(addr, now_ts)

        self._cache.put(addr, verdict)
        return verdict

    def check_many(self, addresses: Iterable[str]) -> Dict[str, ThreatVerdict]:
        uniq = list(dict.fromkeys(a.lower() for a in addresses if a))
        if not uniq:
            return {}

        workers = max(1, min(len(uniq), int(self._config.max_workers)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="threat-lookup") as pool:
            verdicts = list(pool.map(self.check_address, uniq))
        return dict(zip(uniq, verdicts))

    def is_trusted(self, verdict: ThreatVerdict) -> bool:
        return verdict.confidence >= self._config.confidence_threshold

    def close(self) -> None:
        """Abandon in-flight provider calls and refuse new fan-outs."""
        with self._lock:
            self._closed = True
            pools = list(self._active)
            self._active.clear()
        for pool in pools:
            pool.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "ThreatIntelAggregator":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -------------------------
    # Helpers
    # -------------------------

    def _fan_out(self, address: str) -> List[ProviderResult]:
        if not self._providers:
            return []

        with self._lock:
            if self._closed:
                raise RuntimeError("threat intel aggregator is closed")
            pool = ThreadPoolExecutor(
                max_workers=len(self._providers),
                thread_name_prefix="threat-intel",
            )
            self._active.add(pool)

        timeout = self._config.provider_timeout_sec
        try:
            futures = {pool.submit(p.check_address, address): p for p in self._providers}
            done, _ = wait(futures, timeout=timeout)
        finally:
            # timed-out calls keep their own thread; nothing waits on them
            pool.shutdown(wait=False, cancel_futures=True)
            with self._lock:
                self._active.discard(pool)

        results: List[ProviderResult] = []
        for fut, provider in futures.items():
            if fut not in done:
                logger.warning(
                    "threat_provider_timeout",
                    provider=provider.name,
                    address=address,
                    timeout_sec=timeout,
                )
                continue
            try:
                results.append(_validate(fut.result(), provider))
            except Exception as exc:
                logger.warning(
                    "threat_provider_failed",
                    provider=provider.name,
                    address=address,
                    error=f"{exc.__class__.__name__}: {exc}",
                )
        return results
