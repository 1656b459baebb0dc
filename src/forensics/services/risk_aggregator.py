from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Tuple

from forensics.core.enums import RiskLevel
from forensics.core.models import RiskVerdict, ThreatVerdict
from forensics.services.risk_factors import FACTORS


THREAT_INTEL_KEY = "threatIntelligence"
COUNTERPARTY_KEY = "counterpartyRisk"
BEHAVIORAL_KEY = "behavioralRisk"
COMBINED_KEYS = (THREAT_INTEL_KEY, COUNTERPARTY_KEY, BEHAVIORAL_KEY)

COUNTERPARTY_FLAG_SCORE = 30

_TIER_SCORES = {
    RiskLevel.CRITICAL: 80,
    RiskLevel.HIGH: 60,
    RiskLevel.MEDIUM: 30,
    RiskLevel.LOW: 0,
}


def level_from_score(score: int) -> RiskLevel:
    if score >= 60:
        return RiskLevel.HIGH
    if score >= 30:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def _check_breakdown(breakdown: Mapping[str, int]) -> None:
    allowed = set(FACTORS) | set(COMBINED_KEYS)
    unknown = set(breakdown) - allowed
    assert not unknown, f"unknown risk factor(s): {sorted(unknown)}"
    negative = [k for k, v in breakdown.items() if v < 0]
    assert not negative, f"negative contribution(s): {sorted(negative)}"


def aggregate(breakdown: Mapping[str, int]) -> Tuple[int, RiskLevel]:
    """Sum of all contributions (uncapped) and its heuristic level."""
    _check_breakdown(breakdown)
    score = sum(breakdown.values())
    return score, level_from_score(score)


def verdict_from_breakdown(breakdown: Mapping[str, int]) -> RiskVerdict:
    score, level = aggregate(breakdown)
    return RiskVerdict(score=score, level=level, breakdown=dict(breakdown))


def threat_tier_score(tier: Optional[RiskLevel]) -> int:
    if tier is None:
        return 0
    return _TIER_SCORES.get(tier, 0)


def combined_level(score: int, tier: Optional[RiskLevel]) -> RiskLevel:
    """
    Level for a heuristic score combined with an external threat tier.

    A critical or high tier is never downgraded by a low score.
    """
    if tier is RiskLevel.CRITICAL or score >= 80:
        return RiskLevel.CRITICAL
    if tier is RiskLevel.HIGH or score >= 60:
        return RiskLevel.HIGH
    if score >= 30:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def combine_with_threat_intel(
    breakdown: Mapping[str, int],
    subject: Optional[ThreatVerdict],
    counterparties: Optional[Mapping[str, ThreatVerdict]] = None,
    behavioral: int = 0,
) -> RiskVerdict:
    """
    Fold threat-intel verdicts and the behaviour score into the heuristic breakdown.

    - threatIntelligence: tier score of the subject
    - counterpartyRisk: mean tier score of the looked-up counterparties
    - behavioralRisk: graded behaviour score

    The overall score is the sum of the extended breakdown.
    """
    cps = dict(counterparties or {})

    cp_scores = [threat_tier_score(v.risk) for v in cps.values()]
    cp_avg = sum(cp_scores) / len(cp_scores) if cp_scores else 0.0

    combined: Dict[str, int] = dict(breakdown)
    combined[THREAT_INTEL_KEY] = threat_tier_score(subject.risk) if subject else 0
    combined[COUNTERPARTY_KEY] = int(round(cp_avg))
    combined[BEHAVIORAL_KEY] = int(behavioral)
    score, _ = aggregate(combined)

    flagged = tuple(
        addr for addr, v in cps.items()
        if v.risk in (RiskLevel.HIGH, RiskLevel.CRITICAL)
    )
    return RiskVerdict(
        score=score,
        level=combined_level(score, subject.risk if subject else None),
        breakdown=combined,
        flagged_counterparties=flagged,
    )


def build_recommendations(
    verdict: RiskVerdict,
    threat: Optional[ThreatVerdict] = None,
    threat_trusted: bool = True,
) -> List[str]:
    recs: List[str] = []

    if verdict.level in (RiskLevel.HIGH, RiskLevel.CRITICAL):
        recs.append("HIGH RISK: avoid transacting with this address")
        recs.append("Conduct enhanced due diligence before any interaction")
        recs.append("Consider reporting to the relevant authorities if suspicious activity is confirmed")

    if threat is not None and threat.risk in (RiskLevel.HIGH, RiskLevel.CRITICAL):
        recs.append("Address flagged by threat intelligence sources: " + ", ".join(threat.sources))
        if threat.categories:
            recs.append("Threat categories: " + ", ".join(threat.categories))

    many_risky = verdict.breakdown.get(COUNTERPARTY_KEY, 0) > COUNTERPARTY_FLAG_SCORE
    if many_risky:
        recs.append("Multiple high-risk counterparties detected")
    if verdict.flagged_counterparties:
        recs.append(f"{len(verdict.flagged_counterparties)} high-risk counterparties detected")
    if many_risky or verdict.flagged_counterparties:
        recs.append("Review transaction counterparties individually")

    if threat is not None and not threat_trusted:
        recs.append(
            f"Threat intelligence confidence is low ({threat.confidence:.2f}); "
            "verify with additional sources"
        )

    if not recs:
        recs.append("No immediate red flags detected")
        recs.append("Continue monitoring for any changes in risk profile")
    return recs
