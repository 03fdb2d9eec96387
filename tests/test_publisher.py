"""
Tests for publisher: review events, inline comments and summary markdown.
"""

import pytest

from diff_parser import FileDiff
from models import AggregatedReview, FixSuggestion
from publisher import (
    auto_apply_labels,
    build_submission,
    format_autofix_report,
    format_inline_comment,
    format_summary_markdown,
    review_event,
    select_inline_comments,
    status_band,
    suggest_labels,
)


@pytest.fixture
def diff_files() -> list[FileDiff]:
    return [
        FileDiff(
            filename="src/app.ts",
            status="modified",
            additions=3,
            deletions=0,
            added_lines=[(10, "a"), (11, "b"), (12, "c")],
            commentable_lines={9, 10, 11, 12, 13},
        )
    ]


def _fix(line: int = 10, fixed: str = "") -> FixSuggestion:
    return FixSuggestion(
        file="src/app.ts",
        line=line,
        original_code="console.log(x);",
        fixed_code=fixed,
        confidence=100,
        rule_id="STYLE-001",
    )


class TestMappings:
    @pytest.mark.parametrize("verdict", ["APPROVE", "COMMENT", "REQUEST_CHANGES"])
    def test_review_event(self, verdict) -> None:
        assert review_event(verdict) == verdict

    @pytest.mark.parametrize(
        "score, word", [(100, "EXCELLENT"), (90, "EXCELLENT"), (89, "GOOD"), (75, "GOOD"), (60, "CHANGES"), (59, "MAJOR")]
    )
    def test_status_band(self, score, word) -> None:
        assert word in status_band(score)


class TestInlineComments:
    """Tests for select_inline_comments."""

    def test_comment_body(self, make_finding) -> None:
        finding = make_finding(
            severity="high", category="security", rule_id="SEC-001", suggestion="Use env vars", source="Security Agent"
        )
        body = format_inline_comment(finding)
        assert "**Something is off here**" in body
        assert "security · high" in body
        assert "`SEC-001`" in body
        assert "Use env vars" in body
        assert "Security Agent" in body

    def test_comment_includes_fix_diff(self, make_finding) -> None:
        body = format_inline_comment(make_finding(), _fix(fixed="logger.debug(x);"))
        assert "```diff\n- console.log(x);\n+ logger.debug(x);\n```" in body
        assert "100% confidence" in body

    def test_deletion_has_no_added_line(self, make_finding) -> None:
        body = format_inline_comment(make_finding(), _fix())
        assert "- console.log(x);\n```" in body

    def test_maps_to_nearest_commentable_line(self, make_finding, diff_files) -> None:
        exact = make_finding(line=11)
        nearby = make_finding(line=16, message="Nearby")
        comments = select_inline_comments([exact, nearby], diff_files)
        assert [(c.path, c.line) for c in comments] == [("src/app.ts", 11), ("src/app.ts", 13)]

    def test_unplaceable_findings_are_skipped(self, make_finding, diff_files) -> None:
        findings = [
            make_finding(line=None),
            make_finding(line=100),
            make_finding(file="other.ts", line=10),
        ]
        assert select_inline_comments(findings, diff_files) == []

    def test_budget_keeps_highest_priority(self, make_finding, diff_files) -> None:
        findings = [make_finding(line=10, message=f"Issue {i}") for i in range(5)]
        comments = select_inline_comments(findings, diff_files, max_comments=2)
        assert len(comments) == 2
        assert "Issue 0" in comments[0].body
        assert "Issue 1" in comments[1].body

    def test_fix_attached_by_file_and_line(self, make_finding, diff_files) -> None:
        comments = select_inline_comments([make_finding(line=10)], diff_files, fixes=[_fix(line=10)])
        assert "Auto-fix" in comments[0].body


class TestSummary:
    """Tests for the summary markdown."""

    def test_summary_sections(self, make_finding) -> None:
        review = AggregatedReview(
            findings=(
                make_finding(severity="high", category="security", source="Security Agent"),
                make_finding(line=11, category="style", source="Rule Engine"),
            ),
            overall_score=72,
            verdict="REQUEST_CHANGES",
            per_category_counts={"security": 1, "style": 1},
            agent_scores={"Security Agent": 40, "Rule Engine": 97, "Performance Agent": 100},
            average_agent_score=79,
            failed_agents=("Performance Agent",),
            duplicates_removed=2,
            risk_level="medium",
        )
        body = format_summary_markdown(review)

        assert "Score: 72/100" in body
        assert "NEEDS MAJOR REVISION" not in body
        assert "CHANGES REQUESTED" in body
        assert "`REQUEST_CHANGES`" in body
        assert "Duplicates removed: 2" in body
        assert "Average agent score: 79/100" in body
        assert "| security | 1 |" in body
        assert "**Security Agent**: 40/100 (1 issues)" in body
        assert "**Performance Agent**: 100/100 (0 issues) ⚠️" in body
        assert "### 🎯 Top Concerns" in body

    def test_clean_review(self) -> None:
        body = format_summary_markdown(AggregatedReview())
        assert "Score: 100/100" in body
        assert "No issues found" in body
        assert "Top Concerns" not in body
        assert "Average agent score" not in body

    def test_autofix_report(self) -> None:
        fixes = [_fix(10), _fix(11, "logger.debug(x);").model_copy(update={"confidence": 60})]
        report = format_autofix_report(fixes, threshold=80)

        assert "Generated 2 auto-fix(es)" in report
        assert "1 fix(es) at or above 80%" in report
        assert "| src/app.ts | 10 | STYLE-001 | 100% | delete line |" in report
        assert format_autofix_report([], 80) == ""


class TestBuildSubmission:
    def test_event_comments_and_body(self, make_finding, diff_files) -> None:
        review = AggregatedReview(
            findings=(make_finding(line=10, category="style"),),
            overall_score=95,
            verdict="APPROVE",
            per_category_counts={"style": 1},
        )
        submission = build_submission(review, diff_files, [_fix(10)], max_comments=30)

        assert submission.event == "APPROVE"
        assert len(submission.comments) == 1
        assert "### 🔧 Auto-fixes" in submission.body
        assert submission.body.endswith("*Generated by PRLens 🤖*")
        assert submission.body.index("Auto-fixes") < submission.body.index("\n---\n")


def _changed(filename: str, status: str = "modified", additions: int = 5, deletions: int = 0) -> FileDiff:
    return FileDiff(filename=filename, status=status, additions=additions, deletions=deletions)


class TestLabels:
    """Tests for rule-based PR labels."""

    @pytest.mark.parametrize(
        "changes, size",
        [(10, "size/XS"), (11, "size/S"), (200, "size/M"), (500, "size/L"), (501, "size/XL")],
    )
    def test_size_bands(self, changes, size) -> None:
        labels = suggest_labels([_changed("a.py", additions=changes)], AggregatedReview())
        assert labels[0].name == size

    def test_type_area_and_risk(self) -> None:
        files = [_changed("docs/README.md"), _changed("config/settings.yml", status="added")]
        labels = suggest_labels(files, AggregatedReview(risk_level="high"), title="Fix typo")
        names = {label.name for label in labels}

        assert {"type/bugfix", "type/feature", "area/config", "risk/high"} <= names
        assert "type/docs" not in names
        assert "type/refactor" not in names

    def test_docs_only(self) -> None:
        names = {label.name for label in suggest_labels([_changed("README.md")], AggregatedReview())}
        assert {"type/docs", "type/refactor", "risk/low"} <= names

    def test_priority_from_findings(self, make_finding) -> None:
        review = AggregatedReview(findings=(make_finding(severity="high", category="security"),))
        names = [label.name for label in suggest_labels([_changed("src/app.ts")], review)]
        assert "priority/critical" in names
        assert "priority/high" in names

    def test_auto_apply_threshold(self, make_finding) -> None:
        review = AggregatedReview(findings=(make_finding(severity="high", category="quality"),))
        labels = suggest_labels([_changed("src/server.py")], review, title="Add endpoint")

        applied = auto_apply_labels(labels)
        assert applied == ["size/XS", "risk/low"]
        assert "priority/high" in auto_apply_labels(labels, min_confidence=80)

    def test_no_files(self) -> None:
        assert [label.name for label in suggest_labels([], AggregatedReview())] == ["risk/low"]
