"""
Tests for review personas.
"""

from unittest.mock import patch

import pytest

from diff_parser import FileDiff
from models import AgentRole
from personas import PERSONAS, get_persona, persona_agent
from reviewer import run_llm_agent


class TestGetPersona:
    def test_lookup_is_case_insensitive(self) -> None:
        assert get_persona("Tech-Lead").name == "Tech Lead"

    def test_unknown_key_falls_back_to_senior(self, caplog) -> None:
        assert get_persona("pirate").name == "Senior Engineer"
        assert "Unknown persona" in caplog.text


class TestPersonaAgent:
    """Tests for the AgentSpec built from a persona."""

    def test_name_role_and_temperature(self) -> None:
        spec = persona_agent(PERSONAS["security-analyst"])
        assert spec.name == "Security Analyst"
        assert spec.role is AgentRole.SECURITY
        assert spec.temperature == 0.05
        assert spec.trust_self_score is False

    @pytest.mark.parametrize("key", sorted(PERSONAS))
    def test_prompt_formats_with_focus_areas(self, key) -> None:
        persona = PERSONAS[key]
        prompt = persona_agent(persona).prompt_template.format(filename="a.py", code="   1| x = 1")

        assert persona.name in prompt
        assert "a.py" in prompt
        assert f"- {persona.focus_areas[0].replace('-', ' ')}" in prompt

    def test_findings_carry_the_persona_name(self) -> None:
        file = FileDiff(
            filename="a.py",
            status="modified",
            additions=1,
            deletions=0,
            added_lines=[(1, "x = 1")],
            commentable_lines={1},
        )
        response = '[{"line": 1, "message": "Name the constant", "severity": "low", "category": "style"}]'

        with patch("reviewer.USE_MOCK", False), patch("reviewer.call_gemini", return_value=response) as mock_call:
            result = run_llm_agent(persona_agent(PERSONAS["mentor"]), [file])

        assert result.agent_name == "Mentor"
        assert result.role is AgentRole.GENERAL
        assert result.findings[0].source == "Mentor"
        assert mock_call.call_args.kwargs["temperature"] == 0.2
