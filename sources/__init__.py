"""Change-request references and the source-control client."""

from .github_client import GitHubClient
from .references import (
    MAX_REFERENCES,
    PR_URL_PATTERN,
    parse_reference,
    resolve_references,
)

__all__ = [
    "GitHubClient",
    "MAX_REFERENCES",
    "PR_URL_PATTERN",
    "parse_reference",
    "resolve_references",
]
