"""PRLens command line.

    python main.py review owner/repo 42 [--dry-run] [--max-comments N] [--persona mentor]
    python main.py aggregate security.json quality.json [--risk high]
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from config import DEFAULT_MODEL, DEFAULT_PERSONA, USE_MOCK, load_review_policy, validate_repo
from engine import aggregate
from models import AggregatedReview, FindingSet, FixSuggestion
from personas import PERSONAS

logger = logging.getLogger(__name__)

_SEVERITY_ICONS = {"high": "🔴", "medium": "🟡", "low": "🔵"}


def print_review(review: AggregatedReview, fixes: list[FixSuggestion] | None = None) -> None:
    """Pretty print an aggregated review."""
    print(f"\n📋 Score: {review.overall_score}/100 · Verdict: {review.verdict} · Risk: {review.risk_level}")

    for name, score in review.agent_scores.items():
        note = " (failed)" if name in review.failed_agents else ""
        print(f"   🤖 {name}: {score}/100{note}")

    if review.duplicates_removed:
        print(f"   ♻️  {review.duplicates_removed} duplicate(s) removed")
    print()

    for finding in review.findings:
        icon = _SEVERITY_ICONS.get(finding.severity, "⚪")
        line_str = finding.line if finding.line is not None else "?"
        print(f"{icon} [{finding.severity}/{finding.category}] {finding.file}:{line_str}: {finding.message}")
        if finding.suggestion:
            print(f"   💡 Fix: {finding.suggestion}")

    if not review.findings:
        print("No issues found. Code looks good! ✨")

    for fix in fixes or []:
        change = "delete line" if fix.is_deletion else fix.fixed_code.strip()
        print(f"🔧 {fix.file}:{fix.line} ({fix.confidence}%): {change}")


def load_finding_sets(paths: list[str]) -> list[FindingSet]:
    """Read FindingSets from JSON files holding one object or a list of them."""
    finding_sets: list[FindingSet] = []
    for path in paths:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        items = data if isinstance(data, list) else [data]
        finding_sets.extend(FindingSet.model_validate(item) for item in items)
    return finding_sets


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
def cmd_review(args: argparse.Namespace) -> int:
    from agent import run_review

    repo = validate_repo(args.repo)
    policy = load_review_policy()
    if args.max_comments is not None:
        policy = replace(policy, max_inline_comments=max(0, args.max_comments))

    if USE_MOCK:
        logger.info("[MOCK MODE - canned agent responses, GitHub still used]")

    final_state = run_review(
        repo,
        args.pr_number,
        dry_run=args.dry_run,
        policy=policy,
        model=args.model,
        persona=args.persona,
    )

    error = final_state.get("error")
    review = final_state.get("review")

    if review is not None:
        print_review(review, final_state.get("fixes"))

    if error:
        logger.error("❌ %s", error)
        return 1

    if final_state.get("review_posted"):
        print(f"\n✅ Posted to https://github.com/{repo}/pull/{args.pr_number}")
    return 0


def cmd_aggregate(args: argparse.Namespace) -> int:
    policy = load_review_policy()
    finding_sets = load_finding_sets(args.files)
    review = aggregate(finding_sets, args.risk, policy)
    print(review.model_dump_json(by_alias=True, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prlens",
        description="Multi-agent pull request review",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    review = subparsers.add_parser("review", help="Review a GitHub pull request")
    review.add_argument("repo", help="Repository as owner/repo")
    review.add_argument("pr_number", type=int, help="Pull request number")
    review.add_argument(
        "--dry-run",
        action="store_true",
        help="Aggregate and print the review without posting it",
    )
    review.add_argument(
        "--max-comments",
        type=int,
        default=None,
        help="Inline comment budget (default: PRLENS_MAX_INLINE_COMMENTS or 30)",
    )
    review.add_argument("--model", default=DEFAULT_MODEL, help="Gemini model name")
    review.add_argument(
        "--persona",
        choices=sorted(PERSONAS),
        default=DEFAULT_PERSONA,
        help="Reviewer persona replacing the general reviewer (default: PRLENS_PERSONA)",
    )
    review.set_defaults(func=cmd_review)

    agg = subparsers.add_parser(
        "aggregate", help="Aggregate FindingSet JSON files into one review"
    )
    agg.add_argument("files", nargs="+", help="FindingSet JSON files")
    agg.add_argument(
        "--risk",
        choices=("low", "medium", "high"),
        default="low",
        help="PR risk level fed to the verdict (default: low)",
    )
    agg.set_defaults(func=cmd_aggregate)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        return args.func(args)
    except ValueError as e:
        # ValidationError and JSONDecodeError are ValueErrors too
        logger.error("Configuration error: %s", e)
        return 1
    except OSError as e:
        logger.error("Cannot read input: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
