import json
import os
from pathlib import Path
from typing import Iterable, List, Optional

from dotenv import load_dotenv

from forensics.core.models import KnownLists, ProviderConfig, ThreatIntelConfig

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: Iterable[str]) -> List[str]:
    raw = os.environ.get(name)
    if not raw:
        return list(default)
    return [x.strip() for x in raw.split(",") if x.strip()]


# ---- Logging ----
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("LOG_FORMAT", "console").strip().lower()   # console | json

# ---- Blast (Starknet indexer) ----
BLAST_API_BASE = os.environ.get("BLAST_API_BASE", "https://starknet-mainnet.blastapi.io")
BLAST_PROJECT_ID = os.environ.get("BLAST_PROJECT_ID")
BLAST_REQUESTS_PER_SEC = 2.0
BLAST_TIMEOUT_SEC = 15
BLAST_MAX_RETRIES = 3
BLAST_DEFAULT_DECIMALS = 18

# ---- Threat intelligence providers ----
CHAINALYSIS_API_KEY = os.environ.get("CHAINALYSIS_API_KEY")
CHAINALYSIS_ENDPOINT = "https://api.chainalysis.com/api/kyt/v2"

ELLIPTIC_API_KEY = os.environ.get("ELLIPTIC_API_KEY")
ELLIPTIC_ENDPOINT = "https://api.elliptic.co/v2"

TRMLABS_API_KEY = os.environ.get("TRMLABS_API_KEY")
TRMLABS_ENDPOINT = "https://api.trmlabs.com/public/v1"

COMMUNITY_ENDPOINTS = _env_list(
    "COMMUNITY_ENDPOINTS",
    [
        "https://api.scam-database.com/v1",
        "https://api.phishfort.com/v1",
        "https://api.cryptoscamdb.org/v1",
    ],
)
COMMUNITY_ENABLED = _env_bool("COMMUNITY_ENABLED", True)

DARKLIST_URL = os.environ.get(
    "DARKLIST_URL",
    "https://raw.githubusercontent.com/MyEtherWallet/ethereum-lists/master/src/addresses/addresses-darklist.json",
)
DARKLIST_ENABLED = _env_bool("DARKLIST_ENABLED", True)
DARKLIST_REFRESH_SEC = 24 * 3600

THREAT_INTEL_TIMEOUT_SEC = float(os.environ.get("THREAT_INTEL_TIMEOUT_SEC", "10"))
THREAT_INTEL_MAX_RETRIES = 1
THREAT_INTEL_REQUESTS_PER_SEC = 5.0
THREAT_INTEL_MAX_WORKERS = 16

# ---- Cache / fallback ----
THREAT_CACHE_TTL_SEC = int(os.environ.get("THREAT_CACHE_TTL_SEC", str(60 * 60)))     # 1 hour
THREAT_CACHE_MAX_SIZE = int(os.environ.get("THREAT_CACHE_MAX_SIZE", "10000"))
USE_STATIC_LISTS = _env_bool("USE_STATIC_LISTS", True)
CONFIDENCE_THRESHOLD = float(os.environ.get("CONFIDENCE_THRESHOLD", "0.7"))

# ---- Watchlists ----
# JSON object with optional keys: mixers, scam_contracts, blacklist, scam_tokens
WATCHLIST_PATH = os.environ.get("WATCHLIST_PATH", "")

# ---- Analysis ----
MAX_COUNTERPARTY_LOOKUPS = int(os.environ.get("MAX_COUNTERPARTY_LOOKUPS", "25"))


def threat_intel_config() -> ThreatIntelConfig:
    """
    Provider registry and cache/fallback knobs as one frozen object.

    Keyed providers are only enabled when their credential is present.
    """
    providers = [
        ProviderConfig(
            name="chainalysis",
            endpoint=CHAINALYSIS_ENDPOINT,
            api_key=CHAINALYSIS_API_KEY,
            enabled=bool(CHAINALYSIS_API_KEY),
        ),
        ProviderConfig(
            name="elliptic",
            endpoint=ELLIPTIC_ENDPOINT,
            api_key=ELLIPTIC_API_KEY,
            enabled=bool(ELLIPTIC_API_KEY),
        ),
        ProviderConfig(
            name="trmlabs",
            endpoint=TRMLABS_ENDPOINT,
            api_key=TRMLABS_API_KEY,
            enabled=bool(TRMLABS_API_KEY),
        ),
    ]
    for endpoint in COMMUNITY_ENDPOINTS:
        providers.append(ProviderConfig(name="community", endpoint=endpoint, enabled=COMMUNITY_ENABLED))
    providers.append(ProviderConfig(name="darklist", endpoint=DARKLIST_URL, enabled=DARKLIST_ENABLED))

    return ThreatIntelConfig(
        providers=tuple(providers),
        cache_ttl_sec=THREAT_CACHE_TTL_SEC,
        cache_max_size=THREAT_CACHE_MAX_SIZE,
        use_static_lists=USE_STATIC_LISTS,
        confidence_threshold=CONFIDENCE_THRESHOLD,
        provider_timeout_sec=THREAT_INTEL_TIMEOUT_SEC,
        max_workers=THREAT_INTEL_MAX_WORKERS,
    )


def load_known_lists(path: Optional[str] = None) -> KnownLists:
    """Read the watchlist JSON file; a missing path gives empty lists."""
    p = path if path is not None else WATCHLIST_PATH
    if not p or not Path(p).exists():
        return KnownLists()
    with open(p, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Watchlist file must hold a JSON object: {p}")
    return KnownLists.from_iterables(
        mixers=data.get("mixers") or [],
        scam_contracts=data.get("scam_contracts") or [],
        blacklist=data.get("blacklist") or [],
        scam_tokens=data.get("scam_tokens") or [],
    )
