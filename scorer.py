"""Agent and overall review scores (0-100)."""

import math
from collections.abc import Iterable, Sequence

from models import AgentRole, Finding, FindingSet
from policy import DeductionProfile, GENERAL_PROFILE, ScoringPolicy


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative scores (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


def deduction_score(
    findings: Iterable[Finding],
    profile: DeductionProfile = GENERAL_PROFILE,
) -> int:
    """Start at 100 and subtract ``severity weight x category multiplier`` per finding.

    Floors at 0. No findings scores 100.
    """
    total = sum(profile.deduction(f.severity, f.category) for f in findings)
    return clamp_score(100 - total)


def score_agent(
    findings: Iterable[Finding],
    role: AgentRole,
    policy: ScoringPolicy | None = None,
) -> int:
    """Deduction score using the profile configured for *role*."""
    policy = policy or ScoringPolicy()
    return deduction_score(findings, policy.profile_for(role))


def overall_score(
    finding_sets: Sequence[FindingSet],
    policy: ScoringPolicy | None = None,
) -> int:
    """
    Weighted mean of agent self-scores, weighted by agent role.

    Weights are renormalised over the agents actually present:
    ``round(sum(score_i * w_i) / sum(w_i))``. With no agents (or only
    zero-weight roles) the review vacuously passes.
    """
    policy = policy or ScoringPolicy()
    if not finding_sets:
        return policy.vacuous_score

    weighted_sum = 0.0
    total_weight = 0.0
    for result in finding_sets:
        weight = policy.weight_for(result.role)
        weighted_sum += result.score * weight
        total_weight += weight

    if total_weight <= 0:
        return policy.vacuous_score
    return clamp_score(weighted_sum / total_weight)


def average_score(finding_sets: Sequence[FindingSet]) -> int:
    """Unweighted mean of agent scores (100 when there are none)."""
    if not finding_sets:
        return 100
    return clamp_score(sum(r.score for r in finding_sets) / len(finding_sets))
