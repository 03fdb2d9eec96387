"""Merge findings from all agents: deduplicate, order and count them."""

import logging
from collections import Counter
from collections.abc import Iterable

from models import Finding
from policy import SEVERITY_RANK, ScoringPolicy

logger = logging.getLogger(__name__)

DEFAULT_PREFIX_LENGTH = 50


# ---------------------------------------------------------------------------
# Deduplication
# ---------------------------------------------------------------------------
def fingerprint(
    finding: Finding, prefix_length: int = DEFAULT_PREFIX_LENGTH
) -> tuple[str, int | None, str]:
    """Coarse identity of a finding: (file, line, first N chars of the message).

    Case-sensitive and otherwise unnormalised, so differently-worded reports
    of the same issue only collapse when their openings agree.
    """
    return (finding.file, finding.line, finding.message[:prefix_length])


def deduplicate(
    findings: Iterable[Finding],
    prefix_length: int = DEFAULT_PREFIX_LENGTH,
) -> list[Finding]:
    """
    Collapse findings that share a fingerprint.

    On conflict the strictly higher severity wins; on equal severity the
    first one seen is kept. The survivor takes the position of the first
    occurrence, so the input order (agent iteration order) decides which
    ``source`` and ``suggestion`` survive when agents differ only in wording.
    """
    seen: dict[tuple[str, int | None, str], Finding] = {}

    for finding in findings:
        key = fingerprint(finding, prefix_length)
        existing = seen.get(key)
        if existing is None:
            seen[key] = finding
        elif SEVERITY_RANK[finding.severity] > SEVERITY_RANK[existing.severity]:
            seen[key] = finding

    return list(seen.values())


# ---------------------------------------------------------------------------
# Prioritisation
# ---------------------------------------------------------------------------
def priority_key(finding: Finding, policy: ScoringPolicy) -> tuple:
    """Sort key: severity desc, category importance desc, then file ascending.

    The trailing fields only break ties between findings that agree on
    everything above, making the order total.
    """
    return (
        -SEVERITY_RANK[finding.severity],
        -policy.rank_for(finding.category),
        finding.file,
        finding.line is not None,
        finding.line or 0,
        finding.category,
        finding.message,
        finding.source,
        finding.suggestion or "",
        finding.rule_id or "",
        finding.blocking,
    )


def prioritize(
    findings: Iterable[Finding],
    policy: ScoringPolicy | None = None,
) -> list[Finding]:
    """Return *findings* in display order (most important first)."""
    policy = policy or ScoringPolicy()
    return sorted(findings, key=lambda f: priority_key(f, policy))


# ---------------------------------------------------------------------------
# Counting
# ---------------------------------------------------------------------------
def count_by_category(findings: Iterable[Finding]) -> dict[str, int]:
    """Number of findings per category, most frequent first."""
    counts = Counter(f.category for f in findings)
    return dict(sorted(counts.items(), key=lambda item: (-item[1], item[0])))


def count_by_severity(findings: Iterable[Finding]) -> dict[str, int]:
    counts = Counter(f.severity for f in findings)
    return {severity: counts.get(severity, 0) for severity in ("high", "medium", "low")}


def top_concerns(findings: Iterable[Finding], limit: int = 5) -> list[str]:
    """The *limit* most frequent categories."""
    return list(count_by_category(findings))[:limit]
