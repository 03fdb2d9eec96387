"""
Tests for the verdict resolver and PR risk assessment.
"""

import pytest

from diff_parser import FileDiff
from policy import VerdictPolicy
from verdict import assess_risk, resolve_verdict, trip_wire_findings


def _file(name: str, additions: int = 1, deletions: int = 0) -> FileDiff:
    return FileDiff(filename=name, status="modified", additions=additions, deletions=deletions)


class TestResolveVerdict:
    """Tests for resolve_verdict."""

    def test_high_security_finding_forces_request_changes(self, make_finding) -> None:
        finding = make_finding(severity="high", category="security")
        assert resolve_verdict([finding], overall_score=100) == "REQUEST_CHANGES"

    def test_medium_security_finding_does_not_trip(self, make_finding) -> None:
        finding = make_finding(severity="medium", category="security")
        assert resolve_verdict([finding], overall_score=90) == "APPROVE"

    def test_blocking_flag_forces_request_changes(self, make_finding) -> None:
        finding = make_finding(severity="low", category="style", blocking=True)
        assert resolve_verdict([finding], overall_score=99) == "REQUEST_CHANGES"

    def test_high_risk_forces_request_changes(self) -> None:
        assert resolve_verdict([], overall_score=100, risk_level="high") == "REQUEST_CHANGES"

    @pytest.mark.parametrize("score, expected", [(85, "APPROVE"), (84, "COMMENT"), (0, "COMMENT")])
    def test_approve_threshold(self, score, expected) -> None:
        assert resolve_verdict([], overall_score=score, risk_level="medium") == expected

    def test_configurable_thresholds(self, make_finding) -> None:
        policy = VerdictPolicy(
            approve_threshold=95,
            trip_wire_categories=frozenset({"security", "injection"}),
            block_on_high_risk=False,
        )
        assert resolve_verdict([], 90, "high", policy) == "COMMENT"
        injection = make_finding(severity="high", category="injection")
        assert resolve_verdict([injection], 100, "low", policy) == "REQUEST_CHANGES"

    def test_trip_wire_findings(self, make_finding) -> None:
        trip = make_finding(severity="high", category="security")
        fine = make_finding(severity="high", category="quality")
        assert trip_wire_findings([trip, fine]) == [trip]


class TestAssessRisk:
    """Tests for assess_risk."""

    def test_no_files_is_low(self) -> None:
        assert assess_risk([]) == "low"

    @pytest.mark.parametrize(
        "path", ["src/config/app.ts", "lib/Auth.py", "db/migrations/001.sql", "security.md", "database.yml"]
    )
    def test_critical_paths_are_high(self, path) -> None:
        assert assess_risk([_file(path)]) == "high"

    def test_large_change_is_high(self) -> None:
        assert assess_risk([_file("src/app.py", additions=150, deletions=51)]) == "high"
        assert assess_risk([_file("src/app.py", additions=150, deletions=50)]) == "low"

    def test_many_files_is_medium(self) -> None:
        files = [_file(f"src/m{i}.py") for i in range(6)]
        assert assess_risk(files) == "medium"
        assert assess_risk(files[:5]) == "low"
