"""Normalise raw agent output into canonical Finding records.

Agents answer in one of three shapes, tried strictest first:

1. JSON: an array of findings, or an object holding one
   (``comments``, ``findings``, ``issues`` or ``suggestions``).
2. Structured text: ``FILE:`` / ``LINE:`` / ``SEVERITY:`` / ``CATEGORY:`` /
   ``MESSAGE:`` / ``SUGGESTION:`` markers, one block per ``FILE:``.
3. Bullets: every ``-`` / ``*`` line becomes a general finding.

A self-reported score and the merge-blocking flag come from the top-level
``score`` / ``blockMerge`` keys of a JSON object, or from ``SCORE:`` /
``BLOCK_MERGE:`` lines in text. Finding text never sets them.

None of the decoders raise. Unusable input simply yields no findings.
"""

import json
import logging
import re
from dataclasses import dataclass, field

from pydantic import ValidationError

from models import Finding

logger = logging.getLogger(__name__)

# Object keys that may hold the findings array
_ARRAY_KEYS = ("comments", "findings", "issues", "suggestions")

# Candidate key -> Finding field
_FIELD_ALIASES: dict[str, str] = {
    "file": "file",
    "path": "file",
    "filename": "file",
    "line": "line",
    "startline": "line",
    "line_number": "line",
    "message": "message",
    "description": "message",
    "title": "message",
    "severity": "severity",
    "category": "category",
    "type": "category",
    "suggestion": "suggestion",
    "fix": "suggestion",
    "suggestedfix": "suggestion",
    "fixsuggestion": "suggestion",
    "ruleid": "rule_id",
    "rule_id": "rule_id",
    "rule": "rule_id",
    "blocking": "blocking",
    "blockmerge": "blocking",
    "block_merge": "blocking",
}

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")
_MARKER = re.compile(
    r"^(FILE|LINE|SEVERITY|CATEGORY|MESSAGE|SUGGESTION|RULE|BLOCKING):\s*(.*)$"
)
_BULLET = re.compile(r"^[-*]\s+(.*)$")
_SCORE = re.compile(r"^\s*SCORE:\s*(\d+)\s*$", re.IGNORECASE | re.MULTILINE)
_BLOCK_MERGE = re.compile(r"^\s*BLOCK_MERGE:\s*YES\s*$", re.IGNORECASE | re.MULTILINE)

# Top-level keys of a JSON envelope carrying response-level markers
_SCORE_KEYS = ("score", "selfScore")
_BLOCK_MERGE_KEYS = ("blockMerge", "block_merge")

_MARKER_FIELDS = {
    "FILE": "file",
    "LINE": "line",
    "SEVERITY": "severity",
    "CATEGORY": "category",
    "MESSAGE": "message",
    "SUGGESTION": "suggestion",
    "RULE": "rule_id",
    "BLOCKING": "blocking",
}


@dataclass
class ParsedOutput:
    """Findings plus the response-level markers some agents emit."""

    findings: list[Finding] = field(default_factory=list)
    self_score: int | None = None
    block_merge: bool = False
    decoder: str = "none"


# ---------------------------------------------------------------------------
# Decoders
# ---------------------------------------------------------------------------
@dataclass
class _JsonPayload:
    candidates: list
    envelope: dict = field(default_factory=dict)  # top-level object, if any
    prose: str = ""  # text surrounding embedded JSON


def _decode_json(text: str) -> _JsonPayload | None:
    """Return the findings array from JSON *text*, or None if there is none."""
    cleaned = _FENCE.sub("", text.strip())
    prose = ""

    try:
        obj = json.loads(cleaned)
    except (ValueError, RecursionError):
        # JSON embedded in prose: decode from the first bracket onwards
        starts = [i for i in (cleaned.find("["), cleaned.find("{")) if i != -1]
        if not starts:
            return None
        start = min(starts)
        try:
            obj, end = json.JSONDecoder().raw_decode(cleaned[start:])
        except (ValueError, RecursionError):
            return None
        # A bracketed fragment of prose is not a findings array
        if isinstance(obj, list) and not any(isinstance(i, dict) for i in obj):
            return None
        prose = cleaned[:start] + "\n" + cleaned[start + end:]

    if isinstance(obj, list):
        return _JsonPayload(obj, prose=prose)
    if isinstance(obj, dict):
        for key in _ARRAY_KEYS:
            if isinstance(obj.get(key), list):
                return _JsonPayload(obj[key], obj, prose)
    return None


def _decode_structured(text: str) -> list[dict]:
    candidates: list[dict] = []
    current: dict | None = None

    for raw_line in text.splitlines():
        match = _MARKER.match(raw_line.strip())
        if not match:
            continue
        marker, value = match.group(1), match.group(2).strip()

        if marker == "FILE":
            if current is not None:
                candidates.append(current)
            current = {"file": value}
        elif current is not None:
            current[_MARKER_FIELDS[marker]] = value

    if current is not None:
        candidates.append(current)
    return candidates


def _decode_bullets(text: str) -> list[dict]:
    candidates: list[dict] = []
    for raw_line in text.splitlines():
        match = _BULLET.match(raw_line.strip())
        if not match:
            continue
        message = match.group(1).strip()
        if not any(ch.isalnum() for ch in message):
            continue
        candidates.append(
            {
                "file": "general",
                "message": message,
                "severity": "medium",
                "category": "general",
            }
        )
    return candidates


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
def _normalise_keys(candidate: dict) -> dict:
    normalised: dict = {}
    for key, value in candidate.items():
        target = _FIELD_ALIASES.get(str(key).lower())
        if target and target not in normalised:
            normalised[target] = value
    return normalised


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("yes", "true", "1")
    return bool(value)


def _as_score(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, (int, float)):
        return max(0, min(100, int(value)))
    return None


def _text_markers(text: str) -> tuple[int | None, bool]:
    """SCORE: / BLOCK_MERGE: markers, honoured only on lines of their own."""
    score_match = _SCORE.search(text)
    self_score = _as_score(score_match.group(1)) if score_match else None
    return self_score, bool(_BLOCK_MERGE.search(text))


def _json_markers(payload: _JsonPayload) -> tuple[int | None, bool]:
    """Envelope keys win; otherwise markers may sit in the prose around the JSON."""
    self_score, block_merge = _text_markers(payload.prose)
    for key in _SCORE_KEYS:
        if key in payload.envelope:
            self_score = _as_score(payload.envelope[key])
            break
    for key in _BLOCK_MERGE_KEYS:
        if key in payload.envelope:
            block_merge = _as_bool(payload.envelope[key])
            break
    return self_score, block_merge


def _to_findings(
    candidates: list,
    source: str,
    default_file: str | None,
    block_merge: bool,
) -> list[Finding]:
    findings: list[Finding] = []

    for candidate in candidates:
        if not isinstance(candidate, dict):
            logger.warning("Dropping non-object finding from %s", source or "agent")
            continue

        data = _normalise_keys(candidate)
        if default_file and not data.get("file"):
            data["file"] = default_file
        data["blocking"] = block_merge or _as_bool(data.get("blocking", False))
        data["source"] = source

        try:
            findings.append(Finding.model_validate(data))
        except ValidationError as e:
            logger.warning(
                "Dropping invalid finding from %s (file=%r, line=%r): %d error(s)",
                source or "agent",
                data.get("file"),
                data.get("line"),
                e.error_count(),
            )

    return findings


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def parse_agent_output(
    raw: str | None,
    source: str = "",
    default_file: str | None = None,
) -> ParsedOutput:
    """Decode *raw* agent output, falling back through progressively looser decoders.

    Args:
        raw: Text returned by an LLM or rule engine
        source: Agent name recorded on every finding
        default_file: File to attribute findings to when a candidate omits it

    Returns:
        ParsedOutput. Never raises.
    """
    if not raw or not raw.strip():
        return ParsedOutput()

    payload = _decode_json(raw)
    if payload is not None:
        # Decoded JSON is authoritative, even when empty.
        self_score, block_merge = _json_markers(payload)
        findings = _to_findings(payload.candidates, source, default_file, block_merge)
        return ParsedOutput(findings, self_score, block_merge, "json")

    self_score, block_merge = _text_markers(raw)
    for name, decoder in (("structured", _decode_structured), ("bullets", _decode_bullets)):
        findings = _to_findings(decoder(raw), source, default_file, block_merge)
        if findings:
            return ParsedOutput(findings, self_score, block_merge, name)

    logger.warning("No findings could be parsed from %s output", source or "agent")
    return ParsedOutput(self_score=self_score, block_merge=block_merge)


def parse_findings(
    raw: str | None,
    source: str = "",
    default_file: str | None = None,
) -> list[Finding]:
    """Parse *raw* agent output into a list of findings (possibly empty)."""
    return parse_agent_output(raw, source, default_file).findings
