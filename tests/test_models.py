"""
Tests for the pydantic data models.
"""

import pytest
from pydantic import ValidationError

from models import AgentRole, AggregatedReview, Finding, FindingSet, FixSuggestion


class TestFinding:
    """Tests for Finding normalisation and validation."""

    def test_severity_defaults_to_medium(self) -> None:
        finding = Finding(file="a.py", message="x")
        assert finding.severity == "medium"

    @pytest.mark.parametrize(
        "raw, expected",
        [("HIGH", "high"), ("critical", "high"), ("warning", "medium"), ("nit", "low"), ("bogus", "medium")],
    )
    def test_severity_aliases(self, raw, expected) -> None:
        assert Finding(file="a.py", message="x", severity=raw).severity == expected

    def test_line_coercion(self) -> None:
        assert Finding(file="a.py", message="x", line="42").line == 42
        assert Finding(file="a.py", message="x", line=0).line is None
        assert Finding(file="a.py", message="x", line="n/a").line is None

    def test_category_is_lowercased(self) -> None:
        assert Finding(file="a.py", message="x", category=" Security ").category == "security"
        assert Finding(file="a.py", message="x", category="").category == "general"

    @pytest.mark.parametrize("field", ["file", "message"])
    def test_blank_required_text_is_rejected(self, field) -> None:
        data = {"file": "a.py", "message": "x", field: "   "}
        with pytest.raises(ValidationError):
            Finding(**data)

    def test_rule_id_alias(self) -> None:
        finding = Finding.model_validate({"file": "a.py", "message": "x", "ruleId": "SEC-001"})
        assert finding.rule_id == "SEC-001"

    def test_is_frozen(self) -> None:
        finding = Finding(file="a.py", message="x")
        with pytest.raises(ValidationError):
            finding.severity = "high"


class TestFindingSet:
    """Tests for FindingSet."""

    def test_score_bounds_are_enforced(self) -> None:
        with pytest.raises(ValidationError):
            FindingSet(agent_name="A", score=101)

    def test_failed_contributes_passing_empty_result(self) -> None:
        result = FindingSet.failed("Security Agent", AgentRole.SECURITY, "timeout", elapsed_ms=5)
        assert result.score == 100
        assert result.findings == ()
        assert result.error == "timeout"
        assert result.role is AgentRole.SECURITY

    def test_camel_case_input(self) -> None:
        result = FindingSet.model_validate(
            {"agentName": "Performance Agent", "role": "performance", "score": 80, "elapsedMs": 12}
        )
        assert result.agent_name == "Performance Agent"
        assert result.role is AgentRole.PERFORMANCE
        assert result.elapsed_ms == 12


class TestAggregatedReview:
    def test_dumps_with_camel_case_aliases(self) -> None:
        data = AggregatedReview(overall_score=90).model_dump(by_alias=True)
        assert data["overallScore"] == 90
        assert data["verdict"] == "APPROVE"
        assert data["perCategoryCounts"] == {}
        assert data["averageAgentScore"] == 100


class TestFixSuggestion:
    def test_empty_fixed_code_is_a_deletion(self) -> None:
        fix = FixSuggestion(file="a.ts", line=3, original_code="console.log(x);", fixed_code="", confidence=100)
        assert fix.is_deletion
        assert fix.rule_id == "AUTO-FIX"

    def test_confidence_bounds(self) -> None:
        with pytest.raises(ValidationError):
            FixSuggestion(file="a.ts", line=3, original_code="a", fixed_code="b", confidence=120)
