"""Merge decision (approve / comment / request changes) and PR risk assessment."""

import logging
from collections.abc import Iterable

from diff_parser import FileDiff
from models import Finding, RiskLevel, Verdict
from policy import VerdictPolicy

logger = logging.getLogger(__name__)

# Path fragments that make any change to the file risky
CRITICAL_PATH_MARKERS = ("config", "auth", "security", "database", "migration")
LARGE_CHANGE_LINES = 200
MANY_FILES = 5


def assess_risk(files: Iterable[FileDiff]) -> RiskLevel:
    """Classify a PR's risk from which files it touches and how much."""
    files = list(files)

    touches_critical = any(
        marker in f.filename.lower() for f in files for marker in CRITICAL_PATH_MARKERS
    )
    has_large_change = any(f.changes > LARGE_CHANGE_LINES for f in files)

    if touches_critical or has_large_change:
        return "high"
    if len(files) > MANY_FILES:
        return "medium"
    return "low"


def trip_wire_findings(
    findings: Iterable[Finding], policy: VerdictPolicy | None = None
) -> list[Finding]:
    """Findings that on their own force REQUEST_CHANGES."""
    policy = policy or VerdictPolicy()
    return [
        f
        for f in findings
        if (
            f.severity == policy.trip_wire_severity
            and f.category in policy.trip_wire_categories
        )
        or (policy.honour_blocking_flags and f.blocking)
    ]


def resolve_verdict(
    findings: Iterable[Finding],
    overall_score: int,
    risk_level: RiskLevel = "low",
    policy: VerdictPolicy | None = None,
) -> Verdict:
    """
    Map the aggregated review onto exactly one verdict.

    REQUEST_CHANGES: a high-severity security finding, a merge-blocking
    finding, or a high-risk PR. APPROVE: score at or above the approve
    threshold otherwise. COMMENT: everything else.
    """
    policy = policy or VerdictPolicy()

    blockers = trip_wire_findings(findings, policy)
    if blockers:
        logger.info(
            "Requesting changes: %d blocking finding(s), first at %s:%s",
            len(blockers),
            blockers[0].file,
            blockers[0].line if blockers[0].line is not None else "-",
        )
        return "REQUEST_CHANGES"

    if policy.block_on_high_risk and risk_level == "high":
        logger.info("Requesting changes: PR risk assessed as high")
        return "REQUEST_CHANGES"

    if overall_score >= policy.approve_threshold:
        return "APPROVE"

    return "COMMENT"
