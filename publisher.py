"""Turn an AggregatedReview into a GitHub review: event, inline comments, summary."""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from aggregator import count_by_severity, top_concerns
from autofix import select_fixes, summarize_fixes
from diff_parser import FileDiff, find_nearest_line
from github_client import ReviewComment, ReviewSubmission
from models import AggregatedReview, Finding, FixSuggestion, Verdict

logger = logging.getLogger(__name__)

DEFAULT_MAX_COMMENTS = 30
MAX_LINE_DISTANCE = 5

# GitHub's review event vocabulary happens to match the verdict names
_REVIEW_EVENTS: dict[str, str] = {
    "APPROVE": "APPROVE",
    "COMMENT": "COMMENT",
    "REQUEST_CHANGES": "REQUEST_CHANGES",
}

_SEVERITY_ICONS = {"high": "🔴", "medium": "🟡", "low": "🔵"}

_STATUS_BANDS: tuple[tuple[int, str], ...] = (
    (90, "🟢 **Status: EXCELLENT** - ready to merge"),
    (75, "🟡 **Status: GOOD** - minor improvements suggested"),
    (60, "🟠 **Status: CHANGES REQUESTED** - moderate issues need addressing"),
    (0, "🔴 **Status: NEEDS MAJOR REVISION** - significant issues must be fixed"),
)


def review_event(verdict: Verdict) -> str:
    """Map a verdict onto the host's review event."""
    return _REVIEW_EVENTS[verdict]


def status_band(score: int) -> str:
    for floor, label in _STATUS_BANDS:
        if score >= floor:
            return label
    return _STATUS_BANDS[-1][1]


# ---------------------------------------------------------------------------
# Inline comments
# ---------------------------------------------------------------------------
def format_inline_comment(finding: Finding, fix: FixSuggestion | None = None) -> str:
    icon = _SEVERITY_ICONS.get(finding.severity, "⚪")
    parts = [
        f"{icon} **{finding.message}**",
        "",
        f"*{finding.category} · {finding.severity}*"
        + (f" · `{finding.rule_id}`" if finding.rule_id else ""),
    ]

    if finding.suggestion:
        parts += ["", f"💡 **Suggestion:** {finding.suggestion}"]

    if fix is not None:
        diff = [f"- {fix.original_code}"]
        if not fix.is_deletion:
            diff.append(f"+ {fix.fixed_code}")
        parts += [
            "",
            f"🔧 **Auto-fix** ({fix.confidence}% confidence):",
            "```diff",
            *diff,
            "```",
        ]

    if finding.source:
        parts += ["", f"<sub>Reported by {finding.source}</sub>"]

    return "\n".join(parts)


def select_inline_comments(
    findings: Sequence[Finding],
    files: Iterable[FileDiff],
    fixes: Iterable[FixSuggestion] = (),
    max_comments: int = DEFAULT_MAX_COMMENTS,
) -> list[ReviewComment]:
    """
    Inline comments for the first *max_comments* placeable findings.

    *findings* are expected in priority order. A finding is placeable when
    it has a line and a commentable diff line lies within
    ``MAX_LINE_DISTANCE`` of it; the comment goes on that nearby line.
    """
    commentable = {f.filename: f.commentable_lines for f in files}
    fixes_by_line = {(fix.file, fix.line): fix for fix in fixes}

    comments: list[ReviewComment] = []
    skipped = 0

    for finding in findings:
        if len(comments) >= max_comments:
            break
        if finding.line is None:
            continue

        valid_lines = commentable.get(finding.file)
        target = (
            find_nearest_line(valid_lines, finding.line, MAX_LINE_DISTANCE)
            if valid_lines
            else None
        )
        if target is None:
            skipped += 1
            continue

        fix = fixes_by_line.get((finding.file, finding.line))
        comments.append(
            ReviewComment(
                path=finding.file,
                line=target,
                body=format_inline_comment(finding, fix),
            )
        )

    if skipped:
        logger.info("   %d finding(s) outside the diff kept for the summary only", skipped)

    return comments


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------
def format_summary_markdown(review: AggregatedReview) -> str:
    """Review body: score, verdict, counts, agent breakdown, top concerns."""
    severities = count_by_severity(review.findings)

    lines: list[str] = [
        f"## 🤖 PRLens Review (Score: {review.overall_score}/100)",
        "",
        status_band(review.overall_score),
        "",
        f"**Verdict:** `{review.verdict}` · **Risk:** {review.risk_level}",
        "",
        "**Quick Metrics:**",
        f"- 📝 Total issues: {len(review.findings)}",
        f"- 🚨 High: {severities['high']} · Medium: {severities['medium']} · Low: {severities['low']}",
    ]
    if review.agent_scores:
        lines.append(f"- 🤖 Average agent score: {review.average_agent_score}/100")
    if review.duplicates_removed:
        lines.append(f"- ♻️ Duplicates removed: {review.duplicates_removed}")

    if review.per_category_counts:
        lines += ["", "### 📂 Issues by Category", "", "| Category | Count |", "|----------|-------|"]
        lines += [
            f"| {category} | {count} |"
            for category, count in review.per_category_counts.items()
        ]

    if review.agent_scores:
        issues_by_agent: dict[str, int] = {}
        for finding in review.findings:
            issues_by_agent[finding.source] = issues_by_agent.get(finding.source, 0) + 1

        lines += ["", "### 🤖 Agent Breakdown", ""]
        for name, score in review.agent_scores.items():
            entry = f"- **{name}**: {score}/100 ({issues_by_agent.get(name, 0)} issues)"
            if name in review.failed_agents:
                entry += " ⚠️ _failed, not counted against the PR_"
            lines.append(entry)

    concerns = top_concerns(review.findings)
    if concerns:
        lines += ["", "### 🎯 Top Concerns", ""]
        lines += [f"- {concern}" for concern in concerns]

    if not review.findings:
        lines += ["", "No issues found. Code looks good! ✨"]

    lines += ["", "---", "*Generated by PRLens 🤖*"]
    return "\n".join(lines)


def format_autofix_report(fixes: Sequence[FixSuggestion], threshold: int) -> str:
    """Markdown section listing proposed fixes and which clear *threshold*."""
    if not fixes:
        return ""

    ready = select_fixes(fixes, threshold)
    lines = [
        "### 🔧 Auto-fixes",
        "",
        summarize_fixes(list(fixes)),
        f"{len(ready)} fix(es) at or above {threshold}% confidence can be applied automatically.",
        "",
        "| File | Line | Rule | Confidence | Change |",
        "|------|------|------|------------|--------|",
    ]
    for fix in fixes:
        change = "delete line" if fix.is_deletion else f"`{fix.fixed_code.strip()[:40]}`"
        lines.append(
            f"| {fix.file} | {fix.line} | {fix.rule_id} | {fix.confidence}% | {change} |"
        )
    return "\n".join(lines)


def build_submission(
    review: AggregatedReview,
    files: Iterable[FileDiff],
    fixes: Sequence[FixSuggestion] = (),
    max_comments: int = DEFAULT_MAX_COMMENTS,
    autofix_threshold: int = 80,
) -> ReviewSubmission:
    """Everything needed to post *review* in one call."""
    body = format_summary_markdown(review)
    report = format_autofix_report(fixes, autofix_threshold)
    if report:
        # Keep the footer last
        head, sep, footer = body.rpartition("\n---\n")
        body = f"{head.rstrip()}\n\n{report}\n{sep}{footer}" if sep else f"{body}\n\n{report}"

    return ReviewSubmission(
        body=body,
        event=review_event(review.verdict),
        comments=select_inline_comments(review.findings, files, fixes, max_comments),
    )


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------
LABEL_AUTO_APPLY_CONFIDENCE = 90


@dataclass(frozen=True)
class PRLabel:
    name: str
    color: str
    description: str
    confidence: int  # 0-100; labels at or above LABEL_AUTO_APPLY_CONFIDENCE are applied


# (upper bound on changed lines, name, color, description)
_SIZE_LABELS: tuple[tuple[float, str, str, str], ...] = (
    (10, "size/XS", "3CBF00", "Extra small PR (1-10 lines)"),
    (50, "size/S", "5D9CEC", "Small PR (11-50 lines)"),
    (200, "size/M", "FBCA04", "Medium PR (51-200 lines)"),
    (500, "size/L", "F9D0C4", "Large PR (201-500 lines)"),
    (float("inf"), "size/XL", "D93F0B", "Extra large PR (500+ lines)"),
)

_RISK_COLORS = {"low": "0E8A16", "medium": "FBCA04", "high": "B60205"}

_FRONTEND_SUFFIXES = (".jsx", ".tsx", ".vue", ".css", ".scss")
_BACKEND_MARKERS = ("controller", "service", "model", "api", "server")
_DATABASE_MARKERS = ("migration", "schema", "model", "database")
_CONFIG_SUFFIXES = (".json", ".yml", ".yaml")
_DOC_SUFFIXES = (".md", ".txt", ".rst")


def _size_label(files: Sequence[FileDiff]) -> PRLabel:
    total = sum(f.changes for f in files)
    _, name, color, description = next(s for s in _SIZE_LABELS if total <= s[0])
    return PRLabel(name, color, description, 95)


def suggest_labels(
    files: Sequence[FileDiff],
    review: AggregatedReview,
    title: str = "",
    description: str | None = None,
) -> list[PRLabel]:
    """Rule-based labels for size, type, area, risk and priority, in that order."""
    text = f"{title} {description or ''}".lower()
    names = [f.filename.lower() for f in files]
    labels = [_size_label(files)] if files else []

    def add(condition: bool, name: str, color: str, label_description: str, confidence: int) -> None:
        if condition:
            labels.append(PRLabel(name, color, label_description, confidence))

    # Type
    add(
        any(f.status == "added" for f in files) or any(w in title.lower() for w in ("feat", "add")),
        "type/feature", "0E8A16", "New feature implementation", 80,
    )
    add(any(w in text for w in ("fix", "bug")), "type/bugfix", "D73A4A", "Bug fix", 85)
    add(
        "refactor" in text or (bool(files) and all(f.status == "modified" for f in files)),
        "type/refactor", "FBCA04", "Code refactoring", 70,
    )
    add(
        bool(names) and all(n.endswith(_DOC_SUFFIXES) or "readme" in n for n in names),
        "type/docs", "0075CA", "Documentation changes", 90,
    )
    add(any("test" in n or "spec" in n for n in names), "type/test", "7057FF", "Test changes", 85)

    # Area
    add(
        any(n.endswith(_FRONTEND_SUFFIXES) or "component" in n for n in names),
        "area/frontend", "FF6B6B", "Frontend changes", 90,
    )
    add(any(m in n for n in names for m in _BACKEND_MARKERS), "area/backend", "4ECDC4", "Backend changes", 85)
    add(
        any(n.endswith(".sql") or any(m in n for m in _DATABASE_MARKERS) for n in names),
        "area/database", "45B7D1", "Database changes", 95,
    )
    add(
        any("config" in n or ".env" in n or n.endswith(_CONFIG_SUFFIXES) for n in names),
        "area/config", "F39C12", "Configuration changes", 90,
    )

    # Risk and priority
    risk = review.risk_level
    labels.append(PRLabel(f"risk/{risk}", _RISK_COLORS[risk], f"{risk.capitalize()} risk change", 90))
    high = [f for f in review.findings if f.severity == "high"]
    add(
        any(f.category == "security" for f in high),
        "priority/critical", "B60205", "Critical security or blocking issues", 95,
    )
    add(bool(high), "priority/high", "D93F0B", "High priority changes", 80)

    return labels


def auto_apply_labels(
    labels: Iterable[PRLabel],
    min_confidence: int = LABEL_AUTO_APPLY_CONFIDENCE,
) -> list[str]:
    """Names of the labels confident enough to apply without a human."""
    return [label.name for label in labels if label.confidence >= min_confidence]
