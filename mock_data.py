"""Mock agent responses for testing without API calls.

Each response uses a different output shape the parser must handle.
``$filename`` is substituted with the file under review.
"""

from string import Template

from models import AgentRole

# Structured text with response-level markers
MOCK_SECURITY_RESPONSE = Template("""SCORE: 40
BLOCK_MERGE: NO

FILE: $filename
LINE: 3
SEVERITY: high
CATEGORY: security
MESSAGE: Hardcoded API key detected in config
SUGGESTION: Read the key from an environment variable
RULE: SEC-001
""")

# Fenced JSON object holding a comments array
MOCK_QUALITY_RESPONSE = Template("""```json
{
  "comments": [
    {
      "file": "$filename",
      "line": 3,
      "message": "Hardcoded API key detected — move to env",
      "severity": "medium",
      "category": "quality"
    },
    {
      "file": "$filename",
      "line": 7,
      "message": "Magic number 86400 used for the cache timeout",
      "severity": "low",
      "category": "quality",
      "suggestion": "Extract a named constant such as CACHE_TTL_SECONDS",
      "ruleId": "QUAL-002"
    }
  ]
}
```""")

# Bare JSON array
MOCK_PERFORMANCE_RESPONSE = Template("""[
  {
    "file": "$filename",
    "line": 12,
    "message": "Nested loop over users and orders is O(n*m)",
    "severity": "medium",
    "category": "algorithm",
    "suggestion": "Index orders by user id in a dict before the loop"
  }
]""")

# Plain bullets
MOCK_GENERAL_RESPONSE = Template("""Overall the change looks reasonable.

- New endpoint has no accompanying tests
- Debug print left in the request handler
""")

MOCK_RESPONSES: dict[AgentRole, Template] = {
    AgentRole.SECURITY: MOCK_SECURITY_RESPONSE,
    AgentRole.QUALITY: MOCK_QUALITY_RESPONSE,
    AgentRole.PERFORMANCE: MOCK_PERFORMANCE_RESPONSE,
    AgentRole.GENERAL: MOCK_GENERAL_RESPONSE,
}

MOCK_FIX_RESPONSE = "REMOVE_LINE"


def mock_response(role: AgentRole, filename: str) -> str:
    """Canned response for *role*, or an empty array for roles without one."""
    template = MOCK_RESPONSES.get(role)
    if template is None:
        return "[]"
    return template.safe_substitute(filename=filename)
