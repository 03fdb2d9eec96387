"""Pattern-based review rules and the line scanner that applies them."""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field, replace

from models import Finding

logger = logging.getLogger(__name__)

RULE_ENGINE_SOURCE = "Rule Engine"

_JS_TS = ("js", "ts", "jsx", "tsx")


@dataclass(frozen=True)
class Rule:
    """A single review rule. Rules without a pattern never match a line."""

    id: str
    name: str
    category: str
    severity: str
    message: str
    suggestion: str
    pattern: re.Pattern | None = None
    file_types: tuple[str, ...] = ()
    enabled: bool = True
    trivial: bool = False  # fix is mechanical, e.g. deleting a debug statement

    def applies_to(self, extension: str) -> bool:
        return not self.file_types or extension in self.file_types

    def matches(self, code: str) -> bool:
        return self.pattern is not None and bool(self.pattern.search(code))


@dataclass(frozen=True)
class RuleSet:
    """Immutable collection of rules. Modifiers return a new set."""

    rules: tuple[Rule, ...] = field(default_factory=tuple)

    def __iter__(self):
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def enabled(self) -> list[Rule]:
        return [rule for rule in self.rules if rule.enabled]

    def by_category(self, category: str) -> list[Rule]:
        return [rule for rule in self.enabled() if rule.category == category]

    def for_file_type(self, extension: str) -> list[Rule]:
        return [rule for rule in self.enabled() if rule.applies_to(extension)]

    def get(self, rule_id: str | None) -> Rule | None:
        if not rule_id:
            return None
        return next((rule for rule in self.rules if rule.id == rule_id), None)

    def with_rule(self, rule: Rule) -> "RuleSet":
        """Add *rule*, replacing any existing rule with the same id."""
        kept = tuple(r for r in self.rules if r.id != rule.id)
        return RuleSet(rules=kept + (rule,))

    def _with_enabled(self, rule_id: str, enabled: bool) -> "RuleSet":
        if self.get(rule_id) is None:
            raise KeyError(f"Unknown rule id: {rule_id!r}")
        return RuleSet(
            rules=tuple(
                replace(r, enabled=enabled) if r.id == rule_id else r
                for r in self.rules
            )
        )

    def with_rule_disabled(self, rule_id: str) -> "RuleSet":
        return self._with_enabled(rule_id, False)

    def with_rule_enabled(self, rule_id: str) -> "RuleSet":
        return self._with_enabled(rule_id, True)


# ---------------------------------------------------------------------------
# Default rules
# ---------------------------------------------------------------------------
DEFAULT_RULES = RuleSet(
    rules=(
        Rule(
            id="SEC-001",
            name="Hardcoded Secrets",
            category="security",
            severity="high",
            pattern=re.compile(
                r"(api[_-]?key|password|secret|token)\s*[:=]\s*['\"][^'\"]+['\"]",
                re.IGNORECASE,
            ),
            file_types=_JS_TS + ("py",),
            message="Potential hardcoded secret detected",
            suggestion="Use environment variables or secure configuration management",
        ),
        Rule(
            id="SEC-002",
            name="SQL Injection Risk",
            category="security",
            severity="high",
            pattern=re.compile(
                r"(?:query|execute)\s*\(\s*(?:f['\"]|['\"`][^'\"`]*\$\{[^}]+\})"
            ),
            file_types=("js", "ts", "py"),
            message="Potential SQL injection vulnerability",
            suggestion="Use parameterized queries or prepared statements",
        ),
        Rule(
            id="SEC-003",
            name="XSS Risk",
            category="security",
            severity="high",
            pattern=re.compile(r"dangerouslySetInnerHTML|innerHTML\s*="),
            file_types=("jsx", "tsx"),
            message="Potential XSS vulnerability",
            suggestion="Sanitize user input or use safe alternatives",
        ),
        Rule(
            id="QUAL-001",
            name="Function Complexity",
            category="quality",
            severity="medium",
            file_types=_JS_TS,
            message="Function appears to be overly complex",
            suggestion="Consider breaking down into smaller functions",
        ),
        Rule(
            id="QUAL-002",
            name="Magic Numbers",
            category="quality",
            severity="low",
            pattern=re.compile(r"(?<![a-zA-Z_$\d.])\d{2,}(?![a-zA-Z_$\d.])"),
            file_types=_JS_TS,
            message="Magic number detected",
            suggestion="Consider using named constants",
        ),
        Rule(
            id="QUAL-003",
            name="Empty Catch Block",
            category="quality",
            severity="medium",
            pattern=re.compile(r"catch\s*\([^)]*\)\s*\{\s*\}|except[^:]*:\s*pass\b"),
            file_types=_JS_TS + ("py",),
            message="Empty catch block detected",
            suggestion="Handle errors appropriately or add logging",
        ),
        Rule(
            id="PERF-001",
            name="Inefficient Loop",
            category="performance",
            severity="medium",
            pattern=re.compile(
                r"for\s*\([^)]*\.length[^)]*\)|for\s+\w+\s+in\s+range\(\s*len\("
            ),
            file_types=_JS_TS + ("py",),
            message="Potentially inefficient loop detected",
            suggestion="Cache array length or iterate the collection directly",
        ),
        Rule(
            id="PERF-002",
            name="Synchronous File Operations",
            category="performance",
            severity="medium",
            pattern=re.compile(r"fs\.(readFileSync|writeFileSync|existsSync)"),
            file_types=("js", "ts"),
            message="Synchronous file operation detected",
            suggestion="Use asynchronous alternatives for better performance",
        ),
        Rule(
            id="STYLE-001",
            name="Console Statements",
            category="style",
            severity="low",
            pattern=re.compile(r"console\.(log|warn|error|debug)|^\s*print\("),
            file_types=_JS_TS + ("py",),
            message="Console statement detected",
            suggestion="Use proper logging library or remove debug statements",
            trivial=True,
        ),
        Rule(
            id="STYLE-002",
            name="TODO Comments",
            category="style",
            severity="low",
            pattern=re.compile(r"//\s*TODO|/\*\s*TODO|#\s*TODO", re.IGNORECASE),
            file_types=_JS_TS + ("py",),
            message="TODO comment detected",
            suggestion="Consider creating a ticket or completing the task",
        ),
        Rule(
            id="TEST-001",
            name="Missing Test Coverage",
            category="testing",
            severity="medium",
            file_types=("js", "ts"),
            message="Function may lack test coverage",
            suggestion="Add unit tests for this function",
        ),
        Rule(
            id="TEST-002",
            name="Disabled Tests",
            category="testing",
            severity="medium",
            pattern=re.compile(
                r"\b(describe|it|test)\.skip\b|\bx(describe|it|test)\b|@pytest\.mark\.skip"
            ),
            file_types=("js", "ts", "py"),
            message="Disabled test detected",
            suggestion="Enable test or remove if no longer needed",
        ),
    )
)


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------
def file_extension(filename: str) -> str:
    """Lower-case extension without the dot, or '' when there is none."""
    basename = filename.rsplit("/", 1)[-1]
    if "." not in basename:
        return ""
    return basename.rsplit(".", 1)[-1].lower()


def scan_lines(
    filename: str,
    added_lines: Iterable[tuple[int, str]],
    ruleset: RuleSet = DEFAULT_RULES,
) -> list[Finding]:
    """Apply every enabled, applicable rule to each added line of *filename*."""
    rules = [
        rule
        for rule in ruleset.for_file_type(file_extension(filename))
        if rule.pattern is not None
    ]
    if not rules:
        return []

    findings: list[Finding] = []
    for line_no, code in added_lines:
        for rule in rules:
            if rule.matches(code):
                findings.append(
                    Finding(
                        file=filename,
                        line=line_no,
                        message=f"{rule.message} ({rule.name})",
                        severity=rule.severity,
                        category=rule.category,
                        suggestion=rule.suggestion,
                        source=RULE_ENGINE_SOURCE,
                        rule_id=rule.id,
                    )
                )

    logger.debug("Rule scan of %s matched %d time(s)", filename, len(findings))
    return findings
