"""GitHub API client for PR operations."""

import functools
import logging
import os
from dataclasses import dataclass, field

import requests
import requests.exceptions
from github import Auth, Github
from github.GithubException import GithubException, UnknownObjectException

from config import validate_repo, with_retry

logger = logging.getLogger(__name__)

_RETRYABLE_HTTP_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------
@dataclass
class PRMetadata:
    """Pull Request metadata."""

    number: int
    title: str
    author: str
    draft: bool
    state: str
    base_branch: str
    head_branch: str
    head_sha: str
    description: str | None


@dataclass
class ReviewComment:
    """A comment to post on a specific line in a PR."""

    path: str  # file path (e.g., "src/main.py")
    line: int  # line number in the file (new version)
    body: str
    side: str = "RIGHT"  # RIGHT = new code, LEFT = old code


@dataclass
class ReviewSubmission:
    """A complete review to submit to a PR."""

    body: str = ""  # summary markdown
    event: str = "COMMENT"  # APPROVE, REQUEST_CHANGES, COMMENT
    comments: list[ReviewComment] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Cached GitHub client
# ---------------------------------------------------------------------------
def _github_token() -> str:
    token = os.getenv("GITHUB_TOKEN")
    if not token:
        raise ValueError(
            "GITHUB_TOKEN not found. Set it in .env file.\n"
            "Get your token at: https://github.com/settings/tokens"
        )
    return token


@functools.lru_cache(maxsize=1)
def get_github_client() -> Github:
    """Create or return a cached GitHub client."""
    return Github(auth=Auth.Token(_github_token()))


def _host_error_message(e: GithubException) -> str:
    """The host's own error text, without request headers or tokens."""
    data = e.data if isinstance(e.data, dict) else {}
    return data.get("message") or f"HTTP {e.status}"


def _get_pull(repo: str, pr_number: int):
    repository = get_github_client().get_repo(repo)
    return repository.get_pull(pr_number)


# ---------------------------------------------------------------------------
# Read operations
# ---------------------------------------------------------------------------
def fetch_pr_metadata(repo: str, pr_number: int) -> PRMetadata:
    """
    Fetch PR metadata from GitHub.

    Raises:
        ValueError: If PR not found or access denied
    """
    repo = validate_repo(repo)

    try:
        pr = _get_pull(repo, pr_number)
        return PRMetadata(
            number=pr.number,
            title=pr.title,
            author=pr.user.login,
            draft=pr.draft,
            state=pr.state,
            base_branch=pr.base.ref,
            head_branch=pr.head.ref,
            head_sha=pr.head.sha,
            description=pr.body,
        )
    except GithubException as e:
        if e.status == 404:
            raise ValueError(f"PR #{pr_number} not found in {repo}") from e
        raise ValueError(f"GitHub API error: {_host_error_message(e)}") from e


@with_retry(max_retries=3, base_delay=1.0, retryable=_RETRYABLE_HTTP_ERRORS)
def fetch_raw_diff(repo: str, pr_number: int) -> str:
    """
    Fetch the raw unified diff for the entire PR.

    Uses the REST API directly because PyGithub doesn't expose the raw
    diff format. The diff includes all files in one string.
    """
    repo = validate_repo(repo)

    url = f"https://api.github.com/repos/{repo}/pulls/{pr_number}"
    headers = {
        "Authorization": f"token {_github_token()}",
        "Accept": "application/vnd.github.v3.diff",
    }

    response = requests.get(url, headers=headers, timeout=30)

    if response.status_code == 404:
        raise ValueError(f"PR #{pr_number} not found in {repo}")
    if not response.ok:
        raise ValueError(
            f"Failed to fetch diff for PR #{pr_number}: HTTP {response.status_code}"
        )

    return response.text


def fetch_file_content(repo: str, path: str, ref: str) -> str | None:
    """
    Fetch the full text of *path* at *ref* (usually the PR head SHA).

    Returns None for files that no longer exist or are not text.
    """
    repo = validate_repo(repo)

    try:
        contents = get_github_client().get_repo(repo).get_contents(path, ref=ref)
    except UnknownObjectException:
        logger.warning("File %s not found at %s", path, ref[:7])
        return None
    except GithubException as e:
        raise ValueError(
            f"Failed to fetch {path}: {_host_error_message(e)}"
        ) from e

    # A directory listing comes back as a list
    if isinstance(contents, list):
        return None

    try:
        return contents.decoded_content.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("Skipping non-text file %s", path)
        return None


# ---------------------------------------------------------------------------
# Write operations
# ---------------------------------------------------------------------------
def post_pr_comment(repo: str, pr_number: int, body: str) -> int:
    """
    Post a general comment on a PR (not attached to a specific line).

    Returns:
        Comment ID

    Raises:
        ValueError: If posting fails
    """
    repo = validate_repo(repo)

    try:
        comment = _get_pull(repo, pr_number).create_issue_comment(body)
        logger.info("Posted comment %d on PR #%d", comment.id, pr_number)
        return comment.id

    except GithubException as e:
        raise ValueError(f"Failed to post comment: {_host_error_message(e)}") from e


def add_labels(repo: str, pr_number: int, labels: list[str]) -> list[str]:
    """
    Add labels to a PR. GitHub creates labels the repository lacks.

    Returns:
        Names of every label now on the PR

    Raises:
        ValueError: If labelling fails
    """
    repo = validate_repo(repo)
    if not labels:
        return []

    try:
        pr = _get_pull(repo, pr_number)
        pr.add_to_labels(*labels)
        logger.info("Labelled PR #%d: %s", pr_number, ", ".join(labels))
        return [label.name for label in pr.get_labels()]

    except GithubException as e:
        raise ValueError(f"Failed to add labels: {_host_error_message(e)}") from e


def post_review(repo: str, pr_number: int, review: ReviewSubmission) -> int:
    """
    Post a complete review with inline comments to a PR.

    The review event carries the verdict; each comment appears inline
    next to the relevant code.

    Returns:
        Review ID

    Raises:
        ValueError: If posting fails
    """
    repo = validate_repo(repo)

    try:
        pr = _get_pull(repo, pr_number)

        # The review API needs the commit the comments are anchored to
        commit = pr.get_commits().reversed[0]

        comments_payload = [
            {
                "path": comment.path,
                "line": comment.line,
                "side": comment.side,
                "body": comment.body,
            }
            for comment in review.comments
        ]

        github_review = pr.create_review(
            commit=commit,
            body=review.body,
            event=review.event,
            comments=comments_payload,
        )

        logger.info(
            "Posted %s review %d on PR #%d with %d comments",
            review.event,
            github_review.id,
            pr_number,
            len(comments_payload),
        )
        return github_review.id

    except GithubException as e:
        error_msg = _host_error_message(e)
        logger.error("Failed to post review: %s", error_msg)

        if isinstance(e.data, dict):
            for error in e.data.get("errors", []):
                logger.error("  - %s", error)

        raise ValueError(f"Failed to post review: {error_msg}") from e


def format_fallback_body(review: ReviewSubmission) -> str:
    """Summary plus the inline comments listed as plain markdown."""
    body = review.body + "\n\n" if review.body else ""
    body += f"**Review verdict:** `{review.event}`\n\n"

    if review.comments:
        body += "## Inline Comments\n\n"
        body += "_Could not post as inline comments. Listing here instead:_\n\n"
        for comment in review.comments:
            body += f"**{comment.path}** (line {comment.line}):\n"
            body += "\n".join(f"> {line}" for line in comment.body.split("\n"))
            body += "\n\n"

    return body


def post_review_with_fallback(
    repo: str,
    pr_number: int,
    review: ReviewSubmission,
) -> dict:
    """
    Post a review, falling back to a general comment if the review fails.

    The review API rejects comments on lines outside the diff and
    APPROVE/REQUEST_CHANGES on one's own PR; the fallback still gets the
    findings in front of the author.

    Returns:
        Dict with 'review_id' and/or 'comment_id', plus 'fallback' boolean
    """
    repo = validate_repo(repo)
    result: dict = {"fallback": False}

    try:
        result["review_id"] = post_review(repo, pr_number, review)
        return result

    except ValueError as e:
        logger.warning("Review failed, falling back to general comment: %s", e)
        result["fallback"] = True
        result["comment_id"] = post_pr_comment(
            repo, pr_number, format_fallback_body(review)
        )
        return result
