"""Auto-fix proposals and the heuristic confidence attached to them."""

import logging
import re
from collections import Counter
from collections.abc import Iterable

from models import Finding, FixSuggestion
from policy import AutoFixPolicy
from rules import DEFAULT_RULES, RuleSet

logger = logging.getLogger(__name__)

# Sentinel a fix generator returns to ask for the line to be deleted
REMOVE_LINE = "REMOVE_LINE"

_FENCE = re.compile(r"^```[\w+-]*\s*|\s*```$")


# ---------------------------------------------------------------------------
# Text similarity
# ---------------------------------------------------------------------------
def levenshtein_distance(a: str, b: str) -> int:
    """Minimum number of single-character edits turning *a* into *b*."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, 1):
        current = [i]
        for j, char_b in enumerate(b, 1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (char_a != char_b),
                )
            )
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """``1 - distance / len(longer)``, case-sensitive. Two empty strings are identical."""
    longer = a if len(a) >= len(b) else b
    if not longer:
        return 1.0
    return 1 - levenshtein_distance(a, b) / len(longer)


# ---------------------------------------------------------------------------
# Confidence
# ---------------------------------------------------------------------------
def is_auto_fixable(finding: Finding, policy: AutoFixPolicy | None = None) -> bool:
    """Only allow-listed categories or rule ids are candidates for automated fixes."""
    policy = policy or AutoFixPolicy()
    return finding.category in policy.fixable_categories or (
        finding.rule_id is not None and finding.rule_id in policy.fixable_rule_ids
    )


def estimate_confidence(
    finding: Finding,
    original_code: str,
    fixed_code: str,
    ruleset: RuleSet = DEFAULT_RULES,
    policy: AutoFixPolicy | None = None,
) -> int | None:
    """
    Confidence (0-100) that *fixed_code* safely replaces *original_code*.

    Returns None when the finding is not auto-fixable or the fix is a
    no-op; that is distinct from a fix with zero confidence.
    """
    policy = policy or AutoFixPolicy()
    if not is_auto_fixable(finding, policy):
        return None
    if fixed_code == original_code:
        return None

    confidence = policy.base_confidence

    if finding.category == "style":
        confidence += policy.style_bonus

    rule = ruleset.get(finding.rule_id)
    if rule is not None and rule.trivial and rule.matches(original_code):
        confidence += policy.trivial_rule_bonus

    if finding.category == "quality" and finding.severity == "high":
        confidence -= policy.risky_quality_penalty

    if similarity(original_code, fixed_code) > policy.similarity_threshold:
        confidence += policy.similarity_bonus

    return max(0, min(100, confidence))


# ---------------------------------------------------------------------------
# Proposals
# ---------------------------------------------------------------------------
def normalise_fix_text(raw: str | None) -> str | None:
    """Turn a generator response into replacement text.

    None or blank means "no fix"; the REMOVE_LINE sentinel means "delete".
    """
    if raw is None:
        return None
    # Leading whitespace is the line's indentation and must survive
    text = raw.strip("\r\n")
    if text.lstrip().startswith("```"):
        text = _FENCE.sub("", text.strip()).strip("\r\n")
    if not text.strip():
        return None
    if text.strip() == REMOVE_LINE:
        return ""
    return text.rstrip()


def line_at(content: str, line: int | None) -> str | None:
    """The 1-based *line* of *content*, or None when out of bounds."""
    if line is None or line < 1:
        return None
    lines = content.split("\n")
    if line > len(lines):
        return None
    return lines[line - 1]


def propose_fix(
    finding: Finding,
    original_code: str | None,
    fixed_code: str | None,
    ruleset: RuleSet = DEFAULT_RULES,
    policy: AutoFixPolicy | None = None,
) -> FixSuggestion | None:
    """Build a FixSuggestion, or None when the finding cannot be auto-fixed."""
    if finding.line is None or original_code is None or fixed_code is None:
        return None

    confidence = estimate_confidence(
        finding, original_code, fixed_code, ruleset, policy
    )
    if confidence is None:
        return None

    return FixSuggestion(
        file=finding.file,
        line=finding.line,
        original_code=original_code,
        fixed_code=fixed_code,
        confidence=confidence,
        rule_id=finding.rule_id or "AUTO-FIX",
        description=f"Auto-fix for: {finding.message}",
    )


# ---------------------------------------------------------------------------
# Application & reporting
# ---------------------------------------------------------------------------
def select_fixes(fixes: Iterable[FixSuggestion], threshold: int) -> list[FixSuggestion]:
    """Fixes confident enough to apply without review."""
    return [fix for fix in fixes if fix.confidence >= threshold]


def apply_fix(content: str, fix: FixSuggestion) -> str:
    """Return *content* with *fix* applied to its target line.

    Raises:
        ValueError: If the target line no longer exists
    """
    lines = content.split("\n")
    if fix.line > len(lines):
        raise ValueError(
            f"Cannot apply fix to {fix.file}:{fix.line}: "
            f"file has only {len(lines)} line(s)"
        )
    if fix.is_deletion:
        del lines[fix.line - 1]
    else:
        lines[fix.line - 1] = fix.fixed_code
    return "\n".join(lines)


def average_confidence(fixes: list[FixSuggestion]) -> float:
    if not fixes:
        return 0.0
    return sum(fix.confidence for fix in fixes) / len(fixes)


def summarize_fixes(fixes: list[FixSuggestion]) -> str:
    """One-line report: fixes grouped by rule family plus average confidence."""
    if not fixes:
        return "No auto-fixable issues found."

    families = Counter(fix.rule_id.split("-")[0].lower() for fix in fixes)
    family_list = ", ".join(f"{count} {family}" for family, count in families.items())
    return (
        f"🔧 Generated {len(fixes)} auto-fix(es): {family_list}. "
        f"Average confidence: {round(average_confidence(fixes))}%"
    )
