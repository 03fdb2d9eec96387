"""Review personas: alternative reviewer voices for the general review slot.

A persona replaces the General Reviewer for one run. It keeps the same
finding shape, so its findings are aggregated like any other agent's,
but it carries its own display name (the findings' ``source``), weighting
role and sampling temperature.
"""

import logging
from dataclasses import dataclass

from models import AgentRole
from prompts import persona_prompt
from reviewer import AgentSpec

logger = logging.getLogger(__name__)

DEFAULT_PERSONA_KEY = "senior"


@dataclass(frozen=True)
class Persona:
    name: str
    description: str
    role: AgentRole
    focus_areas: tuple[str, ...]
    style: str  # strict | balanced | encouraging
    temperature: float


PERSONAS: dict[str, Persona] = {
    "senior": Persona(
        "Senior Engineer",
        "experienced developer focused on maintainability and best practices",
        AgentRole.GENERAL,
        ("architecture", "maintainability", "performance", "security"),
        "balanced",
        0.1,
    ),
    "mentor": Persona(
        "Mentor",
        "supportive reviewer focused on learning and growth",
        AgentRole.GENERAL,
        ("learning", "best-practices", "code-clarity", "testing"),
        "encouraging",
        0.2,
    ),
    "security": Persona(
        "Security Expert",
        "security-focused reviewer prioritising vulnerabilities and secure coding",
        AgentRole.SECURITY,
        ("security", "vulnerabilities", "data-protection", "authentication"),
        "strict",
        0.05,
    ),
    "performance": Persona(
        "Performance Engineer",
        "reviewer hunting for slow paths and wasted resources",
        AgentRole.PERFORMANCE,
        ("performance", "optimization", "memory-usage", "algorithms"),
        "strict",
        0.1,
    ),
    "strict": Persona(
        "Code Standards Enforcer",
        "strict reviewer enforcing coding standards and conventions",
        AgentRole.QUALITY,
        ("standards", "conventions", "consistency", "documentation"),
        "strict",
        0.05,
    ),
    "friendly": Persona(
        "Friendly Reviewer",
        "encouraging reviewer with constructive feedback",
        AgentRole.GENERAL,
        ("readability", "collaboration", "best-practices", "learning"),
        "encouraging",
        0.3,
    ),
    "architect": Persona(
        "Software Architect",
        "architecture-focused reviewer emphasising design patterns and scalability",
        AgentRole.QUALITY,
        ("architecture", "design-patterns", "scalability", "modularity"),
        "balanced",
        0.1,
    ),
    "security-analyst": Persona(
        "Security Analyst",
        "analyst focused on vulnerability detection and secure coding practices",
        AgentRole.SECURITY,
        ("vulnerabilities", "data-protection", "authentication", "authorization", "input-validation"),
        "strict",
        0.05,
    ),
    "tech-lead": Persona(
        "Tech Lead",
        "technical lead focusing on team standards and project direction",
        AgentRole.QUALITY,
        ("team-standards", "maintainability", "scalability", "technical-debt", "documentation"),
        "balanced",
        0.15,
    ),
}


def get_persona(key: str) -> Persona:
    """Look up a persona by key (case-insensitive); unknown keys fall back to the senior engineer."""
    persona = PERSONAS.get(key.strip().lower())
    if persona is None:
        logger.warning("Unknown persona %r, falling back to %r", key, DEFAULT_PERSONA_KEY)
        return PERSONAS[DEFAULT_PERSONA_KEY]
    return persona


def persona_agent(persona: Persona) -> AgentSpec:
    """The reviewer spec that speaks with *persona*'s voice."""
    return AgentSpec(
        name=persona.name,
        role=persona.role,
        prompt_template=persona_prompt(
            persona.name, persona.description, persona.focus_areas, persona.style
        ),
        temperature=persona.temperature,
    )
