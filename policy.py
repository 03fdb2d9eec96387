"""Weighting and threshold policy for scoring, verdicts and auto-fixes.

Every lookup table the engine consults lives here as a named value.
Callers that want a different policy build a new one (``dataclasses.replace``)
and pass it in; nothing in this module is mutated at runtime.
"""

from dataclasses import dataclass, field

from models import AgentRole

# ---------------------------------------------------------------------------
# Severity
# ---------------------------------------------------------------------------
SEVERITY_RANK: dict[str, int] = {"high": 3, "medium": 2, "low": 1}


# ---------------------------------------------------------------------------
# Per-agent deduction profiles
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class DeductionProfile:
    """Points deducted from 100 per finding: severity weight x category multiplier."""

    severity_weights: dict[str, float]
    category_multipliers: dict[str, float] = field(default_factory=dict)
    default_multiplier: float = 1.0

    def deduction(self, severity: str, category: str) -> float:
        weight = self.severity_weights.get(severity, 0.0)
        multiplier = self.category_multipliers.get(category, self.default_multiplier)
        return weight * multiplier


SECURITY_PROFILE = DeductionProfile(
    severity_weights={"high": 30, "medium": 12, "low": 4},
    category_multipliers={
        "injection": 1.5,
        "authentication": 1.4,
        "exposure": 1.3,
        "security": 1.2,
    },
)

QUALITY_PROFILE = DeductionProfile(
    severity_weights={"high": 20, "medium": 8, "low": 2},
    category_multipliers={
        "structure": 1.5,
        "complexity": 1.4,
        "error-handling": 1.3,
        "design-pattern": 1.2,
        "naming": 1.1,
        "duplication": 1.1,
        "documentation": 0.8,
        "performance": 1.0,
    },
)

# Performance deducts hardest for high severity.
PERFORMANCE_PROFILE = DeductionProfile(
    severity_weights={"high": 35, "medium": 15, "low": 5},
    category_multipliers={
        "algorithm": 2.0,
        "memory": 1.8,
        "database": 1.7,
        "network": 1.5,
        "concurrency": 1.4,
        "io": 1.3,
        "cache": 1.2,
        "resource": 1.1,
        "data-structure": 1.0,
    },
)

TESTING_PROFILE = DeductionProfile(
    severity_weights={"high": 25, "medium": 10, "low": 3},
)

GENERAL_PROFILE = DeductionProfile(
    severity_weights={"high": 25, "medium": 10, "low": 3},
    category_multipliers={
        "security": 1.2,
        "style": 0.6,
        "documentation": 0.8,
    },
)

DEFAULT_PROFILES: dict[AgentRole, DeductionProfile] = {
    AgentRole.SECURITY: SECURITY_PROFILE,
    AgentRole.QUALITY: QUALITY_PROFILE,
    AgentRole.PERFORMANCE: PERFORMANCE_PROFILE,
    AgentRole.TESTING: TESTING_PROFILE,
    AgentRole.SUMMARY: GENERAL_PROFILE,
    AgentRole.GENERAL: GENERAL_PROFILE,
}


# ---------------------------------------------------------------------------
# Cross-agent weights and category importance
# ---------------------------------------------------------------------------
DEFAULT_ROLE_WEIGHTS: dict[AgentRole, float] = {
    AgentRole.SECURITY: 0.3,
    AgentRole.QUALITY: 0.25,
    AgentRole.PERFORMANCE: 0.2,
    AgentRole.TESTING: 0.15,
    AgentRole.SUMMARY: 0.1,
    AgentRole.GENERAL: 0.1,
}

DEFAULT_CATEGORY_RANK: dict[str, int] = {
    "security": 10,
    "authentication": 9,
    "injection": 9,
    "exposure": 8,
    "algorithm": 7,
    "memory": 6,
    "database": 6,
    "structure": 5,
    "complexity": 5,
    "performance": 4,
    "network": 4,
    "naming": 3,
    "documentation": 2,
}


@dataclass(frozen=True)
class ScoringPolicy:
    """How agent scores and the overall score are computed."""

    profiles: dict[AgentRole, DeductionProfile] = field(
        default_factory=lambda: dict(DEFAULT_PROFILES)
    )
    role_weights: dict[AgentRole, float] = field(
        default_factory=lambda: dict(DEFAULT_ROLE_WEIGHTS)
    )
    default_role_weight: float = 0.1
    category_rank: dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_RANK)
    )
    default_category_rank: int = 1
    # Score reported when no agent ran at all: nothing to penalise.
    vacuous_score: int = 100

    def profile_for(self, role: AgentRole) -> DeductionProfile:
        return self.profiles.get(role, GENERAL_PROFILE)

    def weight_for(self, role: AgentRole) -> float:
        return self.role_weights.get(role, self.default_role_weight)

    def rank_for(self, category: str) -> int:
        return self.category_rank.get(category, self.default_category_rank)


# ---------------------------------------------------------------------------
# Verdict thresholds
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class VerdictPolicy:
    """Thresholds for mapping a score and findings onto a merge decision."""

    approve_threshold: int = 85
    trip_wire_severity: str = "high"
    trip_wire_categories: frozenset[str] = frozenset({"security"})
    block_on_high_risk: bool = True
    honour_blocking_flags: bool = True


# ---------------------------------------------------------------------------
# Auto-fix heuristics
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class AutoFixPolicy:
    """Allow-list and confidence adjustments for automated fixes."""

    fixable_categories: frozenset[str] = frozenset({"style", "quality"})
    fixable_rule_ids: frozenset[str] = frozenset(
        {"STYLE-001", "STYLE-002", "QUAL-002", "QUAL-003"}
    )
    base_confidence: int = 50
    style_bonus: int = 30
    trivial_rule_bonus: int = 20
    risky_quality_penalty: int = 20
    similarity_bonus: int = 10
    similarity_threshold: float = 0.7
    apply_threshold: int = 80


# ---------------------------------------------------------------------------
# Bundle
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ReviewPolicy:
    """Everything the aggregation engine needs besides its inputs."""

    scoring: ScoringPolicy = field(default_factory=ScoringPolicy)
    verdict: VerdictPolicy = field(default_factory=VerdictPolicy)
    autofix: AutoFixPolicy = field(default_factory=AutoFixPolicy)
    dedup_prefix_length: int = 50
    max_inline_comments: int = 30


DEFAULT_POLICY = ReviewPolicy()
