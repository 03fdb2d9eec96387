"""Result aggregation engine: agent FindingSets in, one AggregatedReview out.

Pure and synchronous. Every function here is deterministic given its
inputs, apart from which duplicate survives deduplication, which follows
the order the FindingSets are passed in.
"""

import logging
from collections.abc import Callable, Mapping, Sequence

from aggregator import count_by_category, deduplicate, prioritize
from autofix import is_auto_fixable, line_at, propose_fix
from models import AggregatedReview, Finding, FindingSet, FixSuggestion, RiskLevel
from policy import DEFAULT_POLICY, ReviewPolicy
from rules import DEFAULT_RULES, RuleSet
from scorer import average_score, overall_score
from verdict import resolve_verdict

logger = logging.getLogger(__name__)

# (finding, full file content) -> replacement line, "" to delete, None for no fix
FixGenerator = Callable[[Finding, str], str | None]


def _with_source(finding: Finding, agent_name: str) -> Finding:
    if finding.source:
        return finding
    return finding.model_copy(update={"source": agent_name})


def collect_findings(finding_sets: Sequence[FindingSet]) -> list[Finding]:
    """Concatenate findings in agent order, stamping each with its agent."""
    return [
        _with_source(finding, result.agent_name)
        for result in finding_sets
        for finding in result.findings
    ]


def aggregate(
    finding_sets: Sequence[FindingSet],
    risk_level: RiskLevel = "low",
    policy: ReviewPolicy = DEFAULT_POLICY,
) -> AggregatedReview:
    """
    Combine every agent's output into one review.

    1. Concatenate findings in agent order
    2. Deduplicate by (file, line, message prefix)
    3. Order by severity, category importance, file
    4. Weighted overall score across agent roles
    5. Resolve the verdict
    """
    all_findings = collect_findings(finding_sets)
    unique = deduplicate(all_findings, policy.dedup_prefix_length)
    ordered = prioritize(unique, policy.scoring)

    score = overall_score(finding_sets, policy.scoring)
    verdict = resolve_verdict(ordered, score, risk_level, policy.verdict)

    failed = tuple(r.agent_name for r in finding_sets if r.error)
    if failed:
        logger.warning("Aggregating without %d failed agent(s): %s", len(failed), ", ".join(failed))

    logger.info(
        "Aggregated %d finding(s) from %d agent(s) into %d (score %d, %s)",
        len(all_findings),
        len(finding_sets),
        len(ordered),
        score,
        verdict,
    )

    return AggregatedReview(
        findings=tuple(ordered),
        overall_score=score,
        verdict=verdict,
        per_category_counts=count_by_category(ordered),
        agent_scores={r.agent_name: r.score for r in finding_sets},
        average_agent_score=average_score(finding_sets),
        failed_agents=failed,
        duplicates_removed=len(all_findings) - len(ordered),
        risk_level=risk_level,
    )


def propose_fixes(
    findings: Sequence[Finding],
    file_contents: Mapping[str, str],
    generate_fix: FixGenerator,
    ruleset: RuleSet = DEFAULT_RULES,
    policy: ReviewPolicy = DEFAULT_POLICY,
) -> list[FixSuggestion]:
    """
    Ask *generate_fix* for a replacement of each auto-fixable finding.

    Findings whose file content is unknown or whose line is out of bounds
    are skipped. A failing generator only loses that one fix.
    """
    fixes: list[FixSuggestion] = []

    for finding in findings:
        if not is_auto_fixable(finding, policy.autofix):
            continue
        content = file_contents.get(finding.file)
        if content is None:
            continue
        original = line_at(content, finding.line)
        if original is None:
            continue

        try:
            fixed = generate_fix(finding, content)
        except Exception as e:
            logger.warning(
                "Fix generation failed for %s:%s: %s", finding.file, finding.line, e
            )
            continue

        fix = propose_fix(finding, original, fixed, ruleset, policy.autofix)
        if fix is not None:
            fixes.append(fix)

    logger.info("Proposed %d auto-fix(es)", len(fixes))
    return fixes
