"""Reviewing agents - each turns the PR's changed files into one FindingSet."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from autofix import normalise_fix_text
from config import DEFAULT_MODEL, USE_MOCK, call_gemini
from diff_parser import FileDiff, extract_added_code
from finding_parser import ParsedOutput, parse_agent_output
from mock_data import MOCK_FIX_RESPONSE, mock_response
from models import AgentRole, Finding, FindingSet
from policy import DEFAULT_POLICY, ReviewPolicy
from prompts import (
    FIX_PROMPT,
    PERFORMANCE_PROMPT,
    QUALITY_PROMPT,
    REVIEW_PROMPT,
    SECURITY_PROMPT,
)
from rules import DEFAULT_RULES, RULE_ENGINE_SOURCE, RuleSet, scan_lines
from scorer import score_agent

logger = logging.getLogger(__name__)

# Token limits (conservative estimates)
# Gemini 2.5 Flash has ~1M context, but we keep chunks small for better results
MAX_LINES_PER_CHUNK = 200  # Max lines to send in one request
MAX_CHARS_PER_CHUNK = 15000  # Max characters (~3750 tokens)

FIX_CONTEXT_LINES = 3


# ---------------------------------------------------------------------------
# Agent definitions
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class AgentSpec:
    """An LLM-backed reviewer: display name, weighting role and prompt."""

    name: str
    role: AgentRole
    prompt_template: str  # must have {filename} and {code} placeholders
    trust_self_score: bool = False  # use the response's self-reported score if present
    temperature: float | None = None  # model default when None


SECURITY_AGENT = AgentSpec(
    "Security Agent", AgentRole.SECURITY, SECURITY_PROMPT, trust_self_score=True
)
QUALITY_AGENT = AgentSpec("Code Quality Agent", AgentRole.QUALITY, QUALITY_PROMPT)
PERFORMANCE_AGENT = AgentSpec(
    "Performance Agent", AgentRole.PERFORMANCE, PERFORMANCE_PROMPT
)
GENERAL_AGENT = AgentSpec("General Reviewer", AgentRole.GENERAL, REVIEW_PROMPT)

LLM_AGENTS: tuple[AgentSpec, ...] = (
    SECURITY_AGENT,
    QUALITY_AGENT,
    PERFORMANCE_AGENT,
    GENERAL_AGENT,
)


class AgentError(RuntimeError):
    """An agent could not produce a result. Carries where it failed."""

    def __init__(
        self,
        agent: str,
        message: str,
        file: str | None = None,
        line: int | None = None,
    ):
        self.agent = agent
        self.file = file
        self.line = line
        location = ""
        if file:
            location = f" [{file}:{line}]" if line is not None else f" [{file}]"
        super().__init__(f"{agent}{location}: {message}")


# ---------------------------------------------------------------------------
# Chunking helpers
# ---------------------------------------------------------------------------
def chunk_code(
    code: str,
    max_lines: int = MAX_LINES_PER_CHUNK,
    max_chars: int = MAX_CHARS_PER_CHUNK,
) -> list[str]:
    """
    Split large numbered code into chunks small enough for one request.

    Line-number prefixes travel with each line, so findings from any chunk
    still cite real line numbers.
    """
    lines = code.split("\n")

    if len(lines) <= max_lines and len(code) <= max_chars:
        return [code]

    chunks: list[str] = []
    current_chunk: list[str] = []
    current_chars = 0

    for line in lines:
        line_chars = len(line) + 1

        if current_chunk and (
            len(current_chunk) >= max_lines or current_chars + line_chars > max_chars
        ):
            chunks.append("\n".join(current_chunk))
            current_chunk = []
            current_chars = 0

        current_chunk.append(line)
        current_chars += line_chars

    if current_chunk:
        chunks.append("\n".join(current_chunk))

    return chunks


# ---------------------------------------------------------------------------
# LLM-backed agents
# ---------------------------------------------------------------------------
def review_file(
    spec: AgentSpec,
    file: FileDiff,
    model: str = DEFAULT_MODEL,
) -> ParsedOutput:
    """Run one agent over the added code of one file (chunked if large)."""
    code = extract_added_code(file, include_line_numbers=True)
    if not code.strip():
        return ParsedOutput()

    if USE_MOCK:
        return parse_agent_output(
            mock_response(spec.role, file.filename), spec.name, file.filename
        )

    chunks = chunk_code(code)
    if len(chunks) > 1:
        logger.info("  Large file %s - splitting into %d chunks", file.filename, len(chunks))

    combined = ParsedOutput()
    for chunk in chunks:
        prompt = spec.prompt_template.format(filename=file.filename, code=chunk)
        text = call_gemini(prompt, model, temperature=spec.temperature)
        parsed = parse_agent_output(text, spec.name, default_file=file.filename)

        combined.findings.extend(parsed.findings)
        combined.block_merge = combined.block_merge or parsed.block_merge
        if parsed.self_score is not None:
            combined.self_score = (
                parsed.self_score
                if combined.self_score is None
                else min(combined.self_score, parsed.self_score)
            )

    return combined


def run_llm_agent(
    spec: AgentSpec,
    files: list[FileDiff],
    policy: ReviewPolicy = DEFAULT_POLICY,
    model: str = DEFAULT_MODEL,
) -> FindingSet:
    """
    Review every file with *spec* and score the result.

    A file whose request fails is skipped with a warning; if every file
    fails the agent as a whole fails with ``AgentError``.
    """
    start = time.perf_counter()
    findings: list[Finding] = []
    self_scores: list[int] = []
    failed_files: list[str] = []
    last_error: Exception | None = None

    for file in files:
        try:
            parsed = review_file(spec, file, model)
        except Exception as e:
            logger.warning("   %s failed for %s: %s", spec.name, file.filename, e)
            failed_files.append(file.filename)
            last_error = e
            continue

        findings.extend(parsed.findings)
        if parsed.self_score is not None:
            self_scores.append(parsed.self_score)

    if files and len(failed_files) == len(files):
        raise AgentError(
            spec.name,
            f"all {len(files)} file(s) failed: {last_error}",
            file=failed_files[-1],
        ) from last_error

    if spec.trust_self_score and self_scores:
        score = min(self_scores)
    else:
        score = score_agent(findings, spec.role, policy.scoring)

    logger.info("   %s found %d issue(s), score %d", spec.name, len(findings), score)
    return FindingSet(
        agent_name=spec.name,
        role=spec.role,
        score=score,
        findings=tuple(findings),
        elapsed_ms=int((time.perf_counter() - start) * 1000),
    )


# ---------------------------------------------------------------------------
# Rule engine agent
# ---------------------------------------------------------------------------
def run_rule_agent(
    files: list[FileDiff],
    ruleset: RuleSet = DEFAULT_RULES,
    policy: ReviewPolicy = DEFAULT_POLICY,
) -> FindingSet:
    """Scan added lines with the pattern rules. No network involved."""
    start = time.perf_counter()
    findings: list[Finding] = []
    for file in files:
        findings.extend(scan_lines(file.filename, file.added_lines, ruleset))

    return FindingSet(
        agent_name=RULE_ENGINE_SOURCE,
        role=AgentRole.GENERAL,
        score=score_agent(findings, AgentRole.GENERAL, policy.scoring),
        findings=tuple(findings),
        elapsed_ms=int((time.perf_counter() - start) * 1000),
    )


# ---------------------------------------------------------------------------
# Graceful degradation
# ---------------------------------------------------------------------------
def run_agent(
    name: str,
    role: AgentRole,
    run: Callable[[], FindingSet],
) -> FindingSet:
    """
    Run an agent, turning any failure into an empty, passing FindingSet.

    One agent's failure must never block the whole review: the healthy
    agents' results still drive the verdict.
    """
    start = time.perf_counter()
    try:
        return run()
    except Exception as e:
        logger.warning("%s failed, contributing an empty result: %s", name, e)
        return FindingSet.failed(
            name,
            role,
            str(e),
            elapsed_ms=int((time.perf_counter() - start) * 1000),
        )


# ---------------------------------------------------------------------------
# Fix generation
# ---------------------------------------------------------------------------
def _context_lines(lines: list[str], index: int, size: int = FIX_CONTEXT_LINES) -> str:
    start = max(0, index - size)
    end = min(len(lines), index + size + 1)
    return "\n".join(
        f"{'>>> ' if i == index else '    '}{i + 1}: {lines[i]}"
        for i in range(start, end)
    )


def generate_fix(
    finding: Finding,
    file_content: str,
    model: str = DEFAULT_MODEL,
) -> str | None:
    """Ask the model for a replacement of the finding's line.

    Returns the new line, "" to delete it, or None when no fix was offered.
    """
    if finding.line is None:
        return None
    if USE_MOCK:
        return normalise_fix_text(MOCK_FIX_RESPONSE)

    lines = file_content.split("\n")
    index = finding.line - 1
    if index >= len(lines):
        return None

    prompt = FIX_PROMPT.format(
        message=finding.message,
        category=finding.category,
        severity=finding.severity,
        suggestion=finding.suggestion or "Apply best practices",
        context=_context_lines(lines, index),
        original=lines[index],
    )
    return normalise_fix_text(call_gemini(prompt, model, json_mode=False))
