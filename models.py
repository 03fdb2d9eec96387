"""Data models for review findings, agent results and aggregated verdicts."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Severity = Literal["low", "medium", "high"]
Verdict = Literal["APPROVE", "COMMENT", "REQUEST_CHANGES"]
RiskLevel = Literal["low", "medium", "high"]

# Severity spellings seen in agent output that map onto the canonical three.
_SEVERITY_ALIASES: dict[str, str] = {
    "critical": "high",
    "blocker": "high",
    "error": "high",
    "warning": "medium",
    "major": "medium",
    "minor": "low",
    "info": "low",
    "nit": "low",
}


class AgentRole(str, Enum):
    """Stable role of a reviewing agent, used for weighting."""

    SECURITY = "security"
    QUALITY = "quality"
    PERFORMANCE = "performance"
    TESTING = "testing"
    SUMMARY = "summary"
    GENERAL = "general"


class Finding(BaseModel):
    """A single reviewer observation about a file or line."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    file: str = Field(min_length=1, description="Relative path of the file")
    line: int | None = Field(
        default=None, description="1-based line number, None for file-level"
    )
    message: str = Field(min_length=1, description="What the issue is")
    severity: Severity = Field(default="medium", description="low, medium, high")
    category: str = Field(
        default="general",
        description="security, quality, performance, style, testing, ...",
    )
    suggestion: str | None = Field(default=None, description="Suggested fix")
    source: str = Field(default="", description="Agent that produced it")
    rule_id: str | None = Field(default=None, alias="ruleId")
    blocking: bool = Field(
        default=False, description="Agent flagged this finding as merge-blocking"
    )

    @field_validator("file", "message", mode="before")
    @classmethod
    def _strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("severity", mode="before")
    @classmethod
    def _normalise_severity(cls, value):
        if value is None:
            return "medium"
        text = str(value).strip().lower()
        text = _SEVERITY_ALIASES.get(text, text)
        return text if text in ("low", "medium", "high") else "medium"

    @field_validator("category", mode="before")
    @classmethod
    def _normalise_category(cls, value):
        text = str(value or "").strip().lower()
        return text or "general"

    @field_validator("line", mode="before")
    @classmethod
    def _coerce_line(cls, value):
        if value is None or isinstance(value, bool):
            return None
        try:
            line = int(str(value).strip())
        except ValueError:
            return None
        return line if line > 0 else None

    @field_validator("suggestion", "rule_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class FindingSet(BaseModel):
    """One agent's complete output for a single analysis."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    agent_name: str = Field(alias="agentName")
    role: AgentRole = AgentRole.GENERAL
    score: int = Field(default=100, ge=0, le=100)
    findings: tuple[Finding, ...] = ()
    elapsed_ms: int = Field(default=0, ge=0, alias="elapsedMs")
    error: str | None = Field(
        default=None, description="Set when the agent failed and was degraded"
    )

    @classmethod
    def failed(
        cls,
        agent_name: str,
        role: AgentRole,
        error: str,
        elapsed_ms: int = 0,
    ) -> "FindingSet":
        """Result contributed by an agent that raised or timed out."""
        return cls(
            agent_name=agent_name,
            role=role,
            score=100,
            findings=(),
            elapsed_ms=elapsed_ms,
            error=error,
        )


class AggregatedReview(BaseModel):
    """The engine's output for one PR analysis."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    findings: tuple[Finding, ...] = ()
    overall_score: int = Field(default=100, ge=0, le=100, alias="overallScore")
    verdict: Verdict = "APPROVE"
    per_category_counts: dict[str, int] = Field(
        default_factory=dict, alias="perCategoryCounts"
    )
    agent_scores: dict[str, int] = Field(default_factory=dict, alias="agentScores")
    average_agent_score: int = Field(default=100, ge=0, le=100, alias="averageAgentScore")
    failed_agents: tuple[str, ...] = Field(default=(), alias="failedAgents")
    duplicates_removed: int = Field(default=0, ge=0, alias="duplicatesRemoved")
    risk_level: RiskLevel = Field(default="low", alias="riskLevel")


class FixSuggestion(BaseModel):
    """A proposed single-line replacement for a finding."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    file: str
    line: int = Field(ge=1)
    original_code: str = Field(alias="originalCode")
    fixed_code: str = Field(alias="fixedCode")
    confidence: int = Field(ge=0, le=100)
    rule_id: str = Field(default="AUTO-FIX", alias="ruleId")
    description: str = ""

    @property
    def is_deletion(self) -> bool:
        """An empty replacement means 'delete this line'."""
        return self.fixed_code == ""
