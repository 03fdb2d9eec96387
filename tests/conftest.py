"""
Shared fixtures for PRLens tests.
"""

import pytest

from models import AgentRole, Finding, FindingSet


@pytest.fixture
def make_finding():
    """Factory for findings with sensible defaults."""

    def _make(**overrides) -> Finding:
        data = {
            "file": "src/app.ts",
            "line": 10,
            "message": "Something is off here",
            "severity": "medium",
            "category": "quality",
        }
        data.update(overrides)
        return Finding(**data)

    return _make


@pytest.fixture
def make_finding_set():
    """Factory for FindingSets."""

    def _make(agent_name="Code Quality Agent", role=AgentRole.QUALITY, score=100, findings=()):
        return FindingSet(
            agent_name=agent_name,
            role=role,
            score=score,
            findings=tuple(findings),
        )

    return _make


SAMPLE_DIFF = "\n".join(
    [
        "diff --git a/src/api.py b/src/api.py",
        "index 1111111..2222222 100644",
        "--- a/src/api.py",
        "+++ b/src/api.py",
        "@@ -1,4 +1,7 @@",
        " import os",
        '+API_KEY = "sk-live-1234567890"',
        " ",
        " def handler(request):",
        '+    print("debug", request)',
        "+    # TODO: validate input",
        "     return do_work(request)",
        "diff --git a/README.md b/README.md",
        "index 3333333..4444444 100644",
        "--- a/README.md",
        "+++ b/README.md",
        "@@ -1,2 +1,3 @@",
        " # Project",
        "+More docs.",
        " ",
        "",
    ]
)


@pytest.fixture
def sample_diff() -> str:
    return SAMPLE_DIFF
