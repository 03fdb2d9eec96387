"""
Tests for finding_parser: JSON, structured text and bullet decoding.
"""

import json

import pytest

from finding_parser import parse_agent_output, parse_findings


class TestJsonDecoding:
    """Tests for the strict JSON decoder."""

    def test_bare_array(self) -> None:
        raw = json.dumps(
            [
                {"file": "a.ts", "line": 5, "message": "Hardcoded key", "severity": "high", "category": "security"},
                {"file": "b.ts", "message": "Long function", "severity": "low", "category": "quality"},
            ]
        )
        parsed = parse_agent_output(raw, source="Security Agent")

        assert parsed.decoder == "json"
        assert [f.file for f in parsed.findings] == ["a.ts", "b.ts"]
        assert parsed.findings[0].line == 5
        assert parsed.findings[1].line is None
        assert all(f.source == "Security Agent" for f in parsed.findings)

    @pytest.mark.parametrize("key", ["comments", "findings", "issues", "suggestions"])
    def test_object_with_array_field(self, key) -> None:
        raw = json.dumps({key: [{"file": "a.py", "message": "m"}], "summary": "ok"})
        assert len(parse_findings(raw)) == 1

    def test_fenced_json(self) -> None:
        raw = '```json\n[{"file": "a.py", "line": 2, "message": "m"}]\n```'
        assert parse_findings(raw)[0].line == 2

    def test_json_embedded_in_prose(self) -> None:
        raw = 'Here is what I found:\n[{"file": "a.py", "message": "m"}]\nThanks!'
        assert len(parse_findings(raw)) == 1

    def test_field_aliases(self) -> None:
        raw = json.dumps(
            [{"path": "a.py", "line": "7", "description": "m", "fix": "do x", "ruleId": "QUAL-002"}]
        )
        finding = parse_findings(raw)[0]
        assert finding.file == "a.py"
        assert finding.line == 7
        assert finding.message == "m"
        assert finding.suggestion == "do x"
        assert finding.rule_id == "QUAL-002"

    def test_empty_array_is_authoritative(self) -> None:
        parsed = parse_agent_output("[]")
        assert parsed.findings == []
        assert parsed.decoder == "json"

    def test_invalid_candidates_are_dropped(self, caplog) -> None:
        raw = json.dumps(
            [
                {"file": "a.py", "message": "kept"},
                {"file": "", "message": "no file"},
                {"file": "a.py"},
                "not an object",
            ]
        )
        findings = parse_findings(raw, source="Quality")
        assert [f.message for f in findings] == ["kept"]
        assert "Dropping" in caplog.text

    def test_default_file_fills_missing_file(self) -> None:
        raw = json.dumps([{"line": 3, "message": "m"}])
        assert parse_findings(raw) == []
        assert parse_findings(raw, default_file="src/x.py")[0].file == "src/x.py"

    def test_blocking_flag(self) -> None:
        raw = json.dumps([{"file": "a.py", "message": "m", "blockMerge": "yes"}])
        assert parse_findings(raw)[0].blocking is True


class TestStructuredText:
    """Tests for FILE:/LINE:/... marker decoding."""

    RAW = """SCORE: 55
BLOCK_MERGE: YES

FILE: src/db.py
LINE: 12
SEVERITY: high
CATEGORY: security
MESSAGE: SQL built with string formatting
SUGGESTION: Use parameters

FILE: src/util.py
MESSAGE: Unused helper
"""

    def test_blocks_per_file(self) -> None:
        parsed = parse_agent_output(self.RAW, source="Security Agent")

        assert parsed.decoder == "structured"
        assert len(parsed.findings) == 2
        first, second = parsed.findings
        assert (first.file, first.line, first.severity, first.category) == ("src/db.py", 12, "high", "security")
        assert first.suggestion == "Use parameters"
        assert second.line is None
        assert second.severity == "medium"

    def test_response_markers(self) -> None:
        parsed = parse_agent_output(self.RAW)
        assert parsed.self_score == 55
        assert parsed.block_merge is True
        assert all(f.blocking for f in parsed.findings)

    def test_score_is_clamped(self) -> None:
        parsed = parse_agent_output("SCORE: 250\nFILE: a.py\nMESSAGE: m")
        assert parsed.self_score == 100

    def test_markers_inside_a_message_are_ignored(self) -> None:
        raw = "FILE: a.py\nMESSAGE: Password strength score: 3 is below policy, BLOCK_MERGE: yes\n"
        parsed = parse_agent_output(raw)
        assert parsed.self_score is None
        assert parsed.block_merge is False
        assert not parsed.findings[0].blocking


class TestResponseMarkersInJson:
    """Score and block-merge come from the envelope, never from finding text."""

    def test_marker_text_in_findings_is_ignored(self) -> None:
        raw = json.dumps(
            [
                {
                    "file": "auth.py",
                    "line": 4,
                    "message": "Password strength score: 3 is below policy",
                    "severity": "low",
                    "category": "security",
                    "suggestion": "Document why. BLOCK_MERGE: yes",
                },
                {"file": "auth.py", "line": 9, "message": "Weak hash", "severity": "low", "category": "security"},
            ],
            indent=2,
        )
        parsed = parse_agent_output(raw)

        assert parsed.self_score is None
        assert parsed.block_merge is False
        assert not any(f.blocking for f in parsed.findings)

    def test_envelope_keys(self) -> None:
        raw = json.dumps(
            {
                "score": 35,
                "blockMerge": True,
                "comments": [{"file": "a.py", "line": 2, "message": "Hardcoded key", "severity": "high"}],
            }
        )
        parsed = parse_agent_output(raw)

        assert parsed.self_score == 35
        assert parsed.block_merge is True
        assert parsed.findings[0].blocking

    def test_envelope_score_is_clamped_and_validated(self) -> None:
        assert parse_agent_output('{"score": 140, "comments": []}').self_score == 100
        assert parse_agent_output('{"score": "high", "comments": []}').self_score is None
        assert parse_agent_output('{"score": true, "comments": []}').self_score is None

    def test_markers_in_prose_around_embedded_json(self) -> None:
        raw = 'Here is my review.\nSCORE: 60\n[{"file": "a.py", "message": "score: 3 retries"}]'
        parsed = parse_agent_output(raw)
        assert parsed.self_score == 60
        assert parsed.findings[0].message == "score: 3 retries"


class TestBullets:
    """Tests for the loosest decoder."""

    def test_bullets_become_general_findings(self) -> None:
        raw = "Overall fine.\n\n- Missing tests for new endpoint\n* Debug print left behind\n"
        findings = parse_findings(raw)

        assert [f.message for f in findings] == ["Missing tests for new endpoint", "Debug print left behind"]
        assert all(f.file == "general" for f in findings)
        assert all(f.severity == "medium" and f.category == "general" for f in findings)

    def test_prose_with_brackets_falls_through_to_bullets(self) -> None:
        raw = "Values [1, 2] look odd.\n- Check the bounds"
        findings = parse_findings(raw)
        assert [f.message for f in findings] == ["Check the bounds"]


class TestNeverRaises:
    @pytest.mark.parametrize(
        "raw",
        [None, "", "   ", "no findings here", "{not json", "[{]", '{"comments": "nope"}', "- ", "SCORE: abc"],
    )
    def test_garbage_yields_empty_list(self, raw) -> None:
        assert parse_findings(raw) == []
