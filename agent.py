"""
PRLens Agent - LangGraph-based PR Review Agent

This module implements the review workflow as a state machine using LangGraph.
Four LLM reviewers and the rule engine run in parallel, their FindingSets are
aggregated into one scored review with a verdict, auto-fixes are proposed, and
the result is optionally posted to GitHub.
"""

import functools
import logging
from dataclasses import dataclass, field

from langgraph.graph import END, START, StateGraph

from autofix import is_auto_fixable
from config import DEFAULT_MODEL
from diff_parser import FileDiff, filter_files, parse_diff
from engine import aggregate, propose_fixes
from github_client import (
    add_labels,
    fetch_file_content,
    fetch_pr_metadata,
    fetch_raw_diff,
    post_review_with_fallback,
)
from models import AgentRole, AggregatedReview, FindingSet, FixSuggestion, RiskLevel
from personas import get_persona, persona_agent
from policy import DEFAULT_POLICY, ReviewPolicy
from publisher import auto_apply_labels, build_submission, suggest_labels
from reviewer import (
    GENERAL_AGENT,
    PERFORMANCE_AGENT,
    QUALITY_AGENT,
    SECURITY_AGENT,
    AgentSpec,
    generate_fix,
    run_agent,
    run_llm_agent,
    run_rule_agent,
)
from rules import DEFAULT_RULES, RULE_ENGINE_SOURCE
from verdict import assess_risk

logger = logging.getLogger(__name__)

MAX_FIX_FILES = 10  # file contents fetched for fix generation


# =============================================================================
# STATE DEFINITION
# =============================================================================
@dataclass
class ReviewState:
    """
    State that flows through the review graph.

    Each node can read any field and return updates to specific fields.
    LangGraph automatically merges the updates into the state.
    """

    # Input (required)
    repo: str  # e.g., "kulbir/PRLens"
    pr_number: int  # e.g., 1

    # Options
    dry_run: bool = False  # aggregate but don't post
    policy: ReviewPolicy = DEFAULT_POLICY
    model: str = DEFAULT_MODEL
    persona: str | None = None  # key in personas.PERSONAS; replaces the general reviewer

    # Intermediate data (populated by nodes)
    head_sha: str = ""
    title: str = ""
    description: str | None = None
    diff: str = ""
    changed_files: list[FileDiff] = field(default_factory=list)  # before filtering
    files_to_review: list[FileDiff] = field(default_factory=list)
    risk_level: RiskLevel = "low"

    # Results from each agent (each reviewer writes to its own field)
    security_result: FindingSet | None = None
    quality_result: FindingSet | None = None
    performance_result: FindingSet | None = None
    general_result: FindingSet | None = None
    rule_result: FindingSet | None = None

    # Aggregated output
    review: AggregatedReview | None = None
    fixes: list[FixSuggestion] = field(default_factory=list)

    # Output
    review_posted: bool = False  # Whether we posted to GitHub
    review_id: int | None = None  # GitHub review ID if posted
    comment_id: int | None = None  # set when posting fell back to a comment
    labels: list[str] = field(default_factory=list)  # labels applied to the PR
    error: str | None = None  # Error message if something failed


_RESULT_KEYS = (
    "security_result",
    "quality_result",
    "performance_result",
    "general_result",
    "rule_result",
)


# =============================================================================
# NODE FUNCTIONS
# =============================================================================
def fetch_pr_data(state: ReviewState) -> dict:
    """
    Node 1: Fetch PR diff from GitHub and assess its risk.

    Reads: repo, pr_number
    Updates: head_sha, title, description, diff, changed_files, files_to_review,
             risk_level, error
    """
    repo = state.repo
    pr_number = state.pr_number

    logger.info("📥 Fetching PR #%d from %s...", pr_number, repo)

    try:
        metadata = fetch_pr_metadata(repo, pr_number)
        raw_diff = fetch_raw_diff(repo, pr_number)
        all_files = parse_diff(raw_diff)
        files_to_review = filter_files(all_files)
        risk_level = assess_risk(all_files)
    except Exception as e:
        logger.error("Failed to fetch PR: %s", e)
        return {
            "error": str(e),
            "diff": "",
            "files_to_review": [],
        }

    logger.info(
        "   \"%s\" by %s: %d files, %d to review, %s risk",
        metadata.title,
        metadata.author,
        len(all_files),
        len(files_to_review),
        risk_level,
    )

    return {
        "head_sha": metadata.head_sha,
        "title": metadata.title,
        "description": metadata.description,
        "diff": raw_diff,
        "changed_files": all_files,
        "files_to_review": files_to_review,
        "risk_level": risk_level,
    }


# ---------------------------------------------------------------------------
# Generic reviewer helper
# ---------------------------------------------------------------------------
def _run_reviewer(state: ReviewState, spec: AgentSpec, result_key: str, label: str) -> dict:
    """
    Run one LLM agent over every reviewable file.

    Writes None when there is nothing to review, so the agent is left
    out of aggregation entirely.
    """
    files = state.files_to_review

    if state.error or not files:
        return {result_key: None}

    logger.info("%s %s analysing %d file(s)...", label, spec.name, len(files))

    result = run_agent(
        spec.name,
        spec.role,
        functools.partial(run_llm_agent, spec, files, state.policy, state.model),
    )
    return {result_key: result}


# =============================================================================
# SPECIALISED REVIEWER NODES
# =============================================================================
def security_reviewer(state: ReviewState) -> dict:
    """Writes: security_result"""
    return _run_reviewer(state, SECURITY_AGENT, "security_result", "🔒")


def quality_reviewer(state: ReviewState) -> dict:
    """Writes: quality_result"""
    return _run_reviewer(state, QUALITY_AGENT, "quality_result", "📐")


def performance_reviewer(state: ReviewState) -> dict:
    """Writes: performance_result"""
    return _run_reviewer(state, PERFORMANCE_AGENT, "performance_result", "⚡")


def general_reviewer(state: ReviewState) -> dict:
    """
    General Reviewer Node, or the selected persona in its place.

    Writes: general_result
    """
    spec = persona_agent(get_persona(state.persona)) if state.persona else GENERAL_AGENT
    return _run_reviewer(state, spec, "general_result", "🔍")


def rule_reviewer(state: ReviewState) -> dict:
    """
    Rule Engine Node: pattern rules over the added lines, no LLM involved.

    Writes: rule_result
    """
    files = state.files_to_review

    if state.error or not files:
        return {"rule_result": None}

    logger.info("📏 Rule engine scanning %d file(s)...", len(files))
    result = run_agent(
        RULE_ENGINE_SOURCE,
        AgentRole.GENERAL,
        functools.partial(run_rule_agent, files, DEFAULT_RULES, state.policy),
    )
    return {"rule_result": result}


# =============================================================================
# AGGREGATION & FIXES
# =============================================================================
def aggregate_findings(state: ReviewState) -> dict:
    """
    Aggregate Node: Combines every agent's FindingSet into one review.

    Reads: *_result, risk_level, policy
    Writes: review
    """
    logger.info("🔀 Aggregating results from all reviewers...")

    results = [
        getattr(state, key) for key in _RESULT_KEYS if getattr(state, key) is not None
    ]
    review = aggregate(results, state.risk_level, state.policy)

    logger.info(
        "   %d issue(s), score %d/100, verdict %s",
        len(review.findings),
        review.overall_score,
        review.verdict,
    )
    return {"review": review}


def generate_fixes(state: ReviewState) -> dict:
    """
    Fix Node: Proposes single-line fixes for auto-fixable findings.

    Reads: review, head_sha
    Writes: fixes
    """
    review = state.review
    if review is None or not state.head_sha:
        return {"fixes": []}

    fixable = [f for f in review.findings if is_auto_fixable(f, state.policy.autofix)]
    if not fixable:
        return {"fixes": []}

    paths = list(dict.fromkeys(f.file for f in fixable))[:MAX_FIX_FILES]
    logger.info("🔧 Generating fixes for %d finding(s) in %d file(s)...", len(fixable), len(paths))

    contents: dict[str, str] = {}
    for path in paths:
        try:
            content = fetch_file_content(state.repo, path, state.head_sha)
        except ValueError as e:
            logger.warning("   Could not fetch %s: %s", path, e)
            continue
        if content is not None:
            contents[path] = content

    fixes = propose_fixes(
        fixable,
        contents,
        functools.partial(generate_fix, model=state.model),
        DEFAULT_RULES,
        state.policy,
    )
    return {"fixes": fixes}


# =============================================================================
# POSTING
# =============================================================================
def post_review_node(state: ReviewState) -> dict:
    """
    Post Node: Posts the review, its inline comments and verdict to GitHub,
    then applies the confident labels.

    Reads: repo, pr_number, review, fixes, files_to_review, changed_files, title, description
    Updates: review_posted, review_id, comment_id, labels, error
    """
    logger.info("📝 Posting review to GitHub...")

    try:
        submission = build_submission(
            state.review,
            state.files_to_review,
            state.fixes,
            max_comments=state.policy.max_inline_comments,
            autofix_threshold=state.policy.autofix.apply_threshold,
        )
        result = post_review_with_fallback(state.repo, state.pr_number, submission)

        if result.get("fallback"):
            logger.info("   ✅ Posted as comment #%d", result["comment_id"])
        else:
            logger.info("   ✅ Posted review #%d", result["review_id"])

    except Exception as e:
        logger.error("   ❌ Failed to post review: %s", e)
        return {
            "review_posted": False,
            "error": str(e),
        }

    labels = auto_apply_labels(
        suggest_labels(state.changed_files, state.review, state.title, state.description)
    )
    try:
        add_labels(state.repo, state.pr_number, labels)
    except ValueError as e:
        # The review is already posted
        logger.warning("   Could not label PR: %s", e)
        labels = []

    return {
        "review_posted": True,
        "review_id": result.get("review_id"),
        "comment_id": result.get("comment_id"),
        "labels": labels,
    }


# =============================================================================
# DECISION FUNCTIONS (for conditional edges)
# =============================================================================
def should_post_review(state: ReviewState) -> str:
    """
    Decide whether to post the review or end.

    Returns:
        "end" on a dry run or when the PR could not be fetched
        "post_review" otherwise; every verdict is posted, APPROVE included
    """
    # LangGraph may pass state as dict or dataclass
    if isinstance(state, dict):
        dry_run, error, review = state.get("dry_run"), state.get("error"), state.get("review")
    else:
        dry_run, error, review = state.dry_run, state.error, state.review

    if dry_run:
        logger.info("🔀 Decision: dry run → not posting")
        return "end"

    if error or review is None:
        logger.info("🔀 Decision: fetch failed → not posting")
        return "end"

    logger.info("🔀 Decision: posting %s review", review.verdict)
    return "post_review"


# =============================================================================
# GRAPH CONSTRUCTION
# =============================================================================
_REVIEWER_NODES = {
    "security_reviewer": security_reviewer,
    "quality_reviewer": quality_reviewer,
    "performance_reviewer": performance_reviewer,
    "general_reviewer": general_reviewer,
    "rule_reviewer": rule_reviewer,
}


def build_review_graph() -> StateGraph:
    """Build the review workflow graph with PARALLEL reviewers."""
    graph = StateGraph(ReviewState)

    graph.add_node("fetch_pr_data", fetch_pr_data)
    for name, node in _REVIEWER_NODES.items():
        graph.add_node(name, node)
    graph.add_node("aggregate_findings", aggregate_findings)
    graph.add_node("generate_fixes", generate_fixes)
    graph.add_node("post_review", post_review_node)

    graph.add_edge(START, "fetch_pr_data")

    # fetch → ALL reviewers (parallel) → aggregate (waits for all)
    for name in _REVIEWER_NODES:
        graph.add_edge("fetch_pr_data", name)
        graph.add_edge(name, "aggregate_findings")

    graph.add_edge("aggregate_findings", "generate_fixes")

    graph.add_conditional_edges(
        "generate_fixes",
        should_post_review,
        {
            "post_review": "post_review",
            "end": END,
        },
    )
    graph.add_edge("post_review", END)

    return graph


def create_agent():
    """Create and compile the review agent."""
    return build_review_graph().compile()


def run_review(
    repo: str,
    pr_number: int,
    dry_run: bool = False,
    policy: ReviewPolicy = DEFAULT_POLICY,
    model: str = DEFAULT_MODEL,
    persona: str | None = None,
) -> dict:
    """Run the whole workflow and return the final state as a dict."""
    initial_state = ReviewState(
        repo=repo,
        pr_number=pr_number,
        dry_run=dry_run,
        policy=policy,
        model=model,
        persona=persona,
    )

    logger.info("🤖 Running PRLens agent on %s PR #%d", repo, pr_number)
    return create_agent().invoke(initial_state)
