from __future__ import annotations

import argparse
import sys
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from forensics.adapters.chain.blast_chain_adapter import BlastChainAdapter
from forensics.adapters.chain.static_chain_adapter import StaticChainAdapter
from forensics.adapters.threat.registry import build_providers
from forensics.config import settings
from forensics.core.errors import ForensicsError
from forensics.core.logger import get_logger
from forensics.io.output_writer import write_graph_json, write_report_json, write_summary_md
from forensics.io.schemas import load_fixture
from forensics.services.threat_intel_service import ThreatIntelAggregator
from forensics.services.wallet_analyzer import WalletAnalyzer

logger = get_logger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="forensics", description="Wallet risk scoring and transaction-graph clustering")
    p.add_argument("--address", required=False, help="Wallet address to analyze")
    p.add_argument("--now-ts", type=int, default=None, help="Reference time (unix seconds); defaults to now")
    p.add_argument("--out", default="out", help="Output folder")
    p.add_argument("--fixture", help="JSON fixture served by the static adapter (dev/testing)")
    p.add_argument("--use-static", action="store_true", help="Use static adapter with no data (dev/testing)")
    p.add_argument("--watchlist", default=None, help="Watchlist JSON (mixers, scam_contracts, blacklist, scam_tokens)")
    p.add_argument("--no-threat-intel", action="store_true", help="Skip threat intelligence lookups")
    p.add_argument("--no-counterparties", action="store_true", help="Only look up the subject address")
    p.add_argument(
        "--max-counterparties",
        type=int,
        default=settings.MAX_COUNTERPARTY_LOOKUPS,
        help="Limit counterparty threat lookups",
    )
    p.add_argument("--min-edge-value", type=str, default="0", help="Edges below this value do not join clusters")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    if not args.address:
        print("Missing --address", file=sys.stderr)
        return 2
    try:
        min_edge_value = Decimal(args.min_edge_value)
    except InvalidOperation:
        print(f"Invalid --min-edge-value: {args.min_edge_value}", file=sys.stderr)
        return 2

    try:
        known_lists = settings.load_known_lists(args.watchlist)
    except (OSError, ValueError) as exc:
        print(f"Cannot read watchlist: {exc}", file=sys.stderr)
        return 2

    # Ports
    if args.fixture:
        try:
            txs, balances = load_fixture(args.fixture)
        except (OSError, ValueError) as exc:
            print(f"Cannot read fixture: {exc}", file=sys.stderr)
            return 2
        chain = StaticChainAdapter(transactions=txs, balances=balances)
        adapter_label = f"StaticChainAdapter ({args.fixture})"
    elif args.use_static:
        chain = StaticChainAdapter()
        adapter_label = "StaticChainAdapter (dev/testing)"
    else:
        if not settings.BLAST_PROJECT_ID:
            print("Missing BLAST_PROJECT_ID environment variable", file=sys.stderr)
            return 2
        chain = BlastChainAdapter()
        adapter_label = "BlastChainAdapter"

    threat_intel = None
    if not args.no_threat_intel:
        cfg = settings.threat_intel_config()
        threat_intel = ThreatIntelAggregator(build_providers(cfg, known_lists), config=cfg)

    svc = WalletAnalyzer(
        chain=chain,
        known_lists=known_lists,
        threat_intel=threat_intel,
        check_counterparties=not args.no_counterparties,
        max_counterparty_lookups=args.max_counterparties,
        min_edge_value=min_edge_value,
    )
    print(f"Adapter: {adapter_label}")
    try:
        report = svc.analyze(args.address, now_ts=args.now_ts)
    except ForensicsError as exc:
        logger.error("analysis_failed", address=args.address, error=f"{exc.__class__.__name__}: {exc}")
        print(f"Error: {exc.__class__.__name__}: {exc}", file=sys.stderr)
        return 1
    finally:
        if threat_intel is not None:
            threat_intel.close()

    # Outputs
    report_path = write_report_json(report, args.out)
    graph_path = write_graph_json(report, args.out)
    summary_path = write_summary_md(report, args.out)

    risk = report.risk
    print(f"Risk: {risk.display_score}/100 ({risk.level.value})")
    print(f"Wrote: {report_path}")
    print(f"Wrote: {graph_path}")
    print(f"Wrote: {summary_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
