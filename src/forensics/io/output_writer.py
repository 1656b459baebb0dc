from __future__ import annotations

import json
from pathlib import Path

from forensics.core.models import WalletReport
from forensics.io.schemas import graph_to_dict, report_to_dict


def write_report_json(report: WalletReport, out_dir: str, filename: str = "report.json") -> str:
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(report_to_dict(report), f, indent=2)

    return str(out_path)


def write_graph_json(report: WalletReport, out_dir: str, filename: str = "graph.json") -> str:
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(graph_to_dict(report.graph), f, indent=2)

    return str(out_path)


def write_summary_md(report: WalletReport, out_dir: str, filename: str = "summary.md") -> str:
    """
    Investigator-friendly summary of one wallet analysis.
    """
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename
    risk = report.risk
    graph = report.graph
    m = report.metrics

    def short(addr: str) -> str:
        return addr if len(addr) <= 14 else f"{addr[:10]}..."

    lines = []
    lines.append("# Wallet Risk Summary\n\n")
    lines.append(f"- Address: **{report.address}**\n")
    lines.append(f"- Risk score: **{risk.display_score}/100** ({risk.level.value.upper()})\n")
    if risk.score != risk.display_score:
        lines.append(f"- Raw score: {risk.score}\n")
    lines.append(f"- Transactions: **{m.total_transactions}**\n")
    lines.append(f"- Counterparties: **{m.unique_counterparties}**\n")
    lines.append(f"- Active days: **{m.active_days}**\n")
    lines.append(f"- Clusters: **{graph.cluster_count}**\n")
    lines.append("\n")

    lines.append("## Risk Factors\n\n")
    triggered = [(k, v) for k, v in risk.breakdown.items() if v > 0]
    if not triggered:
        lines.append("_No risk factor triggered._\n\n")
    else:
        for name, pts in sorted(triggered, key=lambda x: x[1], reverse=True):
            lines.append(f"- **{name}**: +{pts}\n")
        lines.append("\n")

    lines.append("## Threat Intelligence\n\n")
    t = report.threat
    if t is None:
        lines.append("_Threat intelligence lookup disabled._\n\n")
    else:
        lines.append(f"- Risk: **{t.risk.value}**\n")
        lines.append(f"- Confidence: {t.confidence:.2f}" + ("" if report.threat_trusted else " (low)") + "\n")
        lines.append(f"- Sources: {', '.join(t.sources) or 'none'}\n")
        if t.categories:
            lines.append(f"- Categories: {', '.join(t.categories)}\n")
        lines.append("\n")

    lines.append("## Suspicious Counterparties\n\n")
    suspicious = [n for n in graph.nodes.values() if n.is_suspicious]
    flagged = set(risk.flagged_counterparties)
    if not suspicious and not flagged:
        lines.append("_No suspicious counterparties._\n\n")
    else:
        for n in suspicious:
            mark = " (threat intel)" if n.id in flagged else ""
            lines.append(
                f"- {short(n.id)} | {n.tx_count} tx | volume {n.total_volume:f}"
                f" | cluster {n.cluster_id}{mark}\n"
            )
        for addr in sorted(flagged - {n.id for n in suspicious}):
            lines.append(f"- {short(addr)} (threat intel)\n")
        lines.append("\n")

    lines.append("## Recommendations\n\n")
    for rec in report.recommendations:
        lines.append(f"- {rec}\n")

    with out_path.open("w", encoding="utf-8") as f:
        f.writelines(lines)

    return str(out_path)
