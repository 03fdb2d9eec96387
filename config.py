"""Shared configuration and utilities for PRLens."""

import functools
import logging
import os
import re
import time
from dataclasses import replace

from dotenv import load_dotenv
from google import genai
from google.genai import errors as genai_errors

from policy import DEFAULT_POLICY, ReviewPolicy

# ---------------------------------------------------------------------------
# Environment & logging (initialised once on first import)
# ---------------------------------------------------------------------------
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
USE_MOCK: bool = os.getenv("USE_MOCK", "false").lower() == "true"
DEFAULT_MODEL: str = os.getenv("PRLENS_MODEL", "gemini-2.5-flash-lite")
DEFAULT_PERSONA: str | None = os.getenv("PRLENS_PERSONA") or None

# Repo format: "owner/repo"
_REPO_PATTERN = re.compile(r"^[\w.-]+/[\w.-]+$")

# Gemini errors worth retrying (5xx: overloaded / transient)
_RETRYABLE_GEMINI_ERRORS: tuple[type[Exception], ...] = (genai_errors.ServerError,)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------
def validate_repo(repo: str) -> str:
    """Validate repository string matches 'owner/repo' format.

    Returns *repo* unchanged on success; raises ``ValueError`` otherwise.
    """
    if not _REPO_PATTERN.match(repo):
        raise ValueError(
            f"Invalid repo format: {repo!r}. Expected 'owner/repo' "
            f"(e.g. 'kulbir/PRLens')."
        )
    return repo


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def load_review_policy(base: ReviewPolicy = DEFAULT_POLICY) -> ReviewPolicy:
    """Build the review policy, applying PRLENS_* environment overrides to *base*."""
    approve = _env_int("PRLENS_APPROVE_THRESHOLD", base.verdict.approve_threshold)
    autofix = _env_int("PRLENS_AUTOFIX_THRESHOLD", base.autofix.apply_threshold)
    max_comments = _env_int("PRLENS_MAX_INLINE_COMMENTS", base.max_inline_comments)

    for name, value in (
        ("PRLENS_APPROVE_THRESHOLD", approve),
        ("PRLENS_AUTOFIX_THRESHOLD", autofix),
    ):
        if not 0 <= value <= 100:
            raise ValueError(f"{name} must be between 0 and 100, got {value}")

    return replace(
        base,
        verdict=replace(base.verdict, approve_threshold=approve),
        autofix=replace(base.autofix, apply_threshold=autofix),
        max_inline_comments=max(0, max_comments),
    )


# ---------------------------------------------------------------------------
# Retry decorator
# ---------------------------------------------------------------------------
def with_retry(
    max_retries: int = 3,
    base_delay: float = 1.0,
    retryable: tuple[type[Exception], ...] = (Exception,),
):
    """Decorator: retry a function with exponential back-off."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            last_exc: Exception | None = None
            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except retryable as exc:
                    last_exc = exc
                    if attempt < max_retries - 1:
                        delay = base_delay * (2**attempt)
                        logger.warning(
                            "Attempt %d/%d for %s failed: %s. Retrying in %.1fs...",
                            attempt + 1,
                            max_retries,
                            func.__name__,
                            exc,
                            delay,
                        )
                        time.sleep(delay)
            raise last_exc  # type: ignore[misc]

        return wrapper

    return decorator


# ---------------------------------------------------------------------------
# Cached API clients
# ---------------------------------------------------------------------------
@functools.lru_cache(maxsize=1)
def get_gemini_client() -> genai.Client:
    """Return a cached Gemini client (created once per process)."""
    api_key = os.getenv("GEMINI_API_KEY")
    if not api_key:
        raise ValueError("GEMINI_API_KEY not found. Set it in .env file.")
    return genai.Client(api_key=api_key)


# ---------------------------------------------------------------------------
# Gemini API call (with retry)
# ---------------------------------------------------------------------------
@with_retry(max_retries=3, base_delay=2.0, retryable=_RETRYABLE_GEMINI_ERRORS)
def call_gemini(
    prompt: str,
    model: str = DEFAULT_MODEL,
    json_mode: bool = True,
    temperature: float | None = None,
) -> str:
    """Call Gemini and return the raw response text.

    With *json_mode* the model is asked for ``application/json`` output;
    fix generation turns it off to get a bare code line back.
    Retries automatically on transient API errors.
    """
    client = get_gemini_client()
    config: dict = {}
    if json_mode:
        config["response_mime_type"] = "application/json"
    if temperature is not None:
        config["temperature"] = temperature
    response = client.models.generate_content(
        model=model,
        contents=prompt,
        config=config or None,
    )
    return response.text or ""
