from __future__ import annotations

from typing import Callable, Dict, List, Optional

import requests

from forensics.adapters.threat.chainalysis_adapter import ChainalysisAdapter
from forensics.adapters.threat.community_adapter import CommunityDbAdapter
from forensics.adapters.threat.darklist_adapter import DarklistAdapter
from forensics.adapters.threat.elliptic_adapter import EllipticAdapter
from forensics.adapters.threat.trmlabs_adapter import TrmLabsAdapter
from forensics.adapters.threat.watchlist_adapter import WatchlistAdapter
from forensics.core.logger import get_logger
from forensics.core.models import KnownLists, ProviderConfig, ThreatIntelConfig
from forensics.ports.threat_intel_port import ThreatIntelProvider

logger = get_logger(__name__)


_FACTORIES: Dict[str, Callable[..., ThreatIntelProvider]] = {
    "chainalysis": lambda cfg, **kw: ChainalysisAdapter(cfg.endpoint, api_key=cfg.api_key, **kw),
    "elliptic": lambda cfg, **kw: EllipticAdapter(cfg.endpoint, api_key=cfg.api_key, **kw),
    "trmlabs": lambda cfg, **kw: TrmLabsAdapter(cfg.endpoint, api_key=cfg.api_key, **kw),
    "community": lambda cfg, **kw: CommunityDbAdapter(cfg.endpoint, **kw),
    "darklist": lambda cfg, **kw: DarklistAdapter(cfg.endpoint, **kw),
}


def build_providers(
    config: ThreatIntelConfig,
    known_lists: Optional[KnownLists] = None,
    session: Optional[requests.Session] = None,
) -> List[ThreatIntelProvider]:
    """Instantiate every enabled provider in registry order."""
    providers: List[ThreatIntelProvider] = []
    for pc in config.providers:
        p = _build_one(pc, config, session)
        if p is not None:
            providers.append(p)

    if config.use_static_lists:
        providers.append(WatchlistAdapter(known_lists or KnownLists()))

    logger.info("threat_providers_built", providers=[p.name for p in providers])
    return providers


def _build_one(
    pc: ProviderConfig,
    config: ThreatIntelConfig,
    session: Optional[requests.Session],
) -> Optional[ThreatIntelProvider]:
    if not pc.enabled:
        return None
    factory = _FACTORIES.get(pc.name)
    if factory is None:
        logger.warning("threat_provider_unknown", provider=pc.name)
        return None
    return factory(pc, timeout_sec=config.provider_timeout_sec, session=session)
