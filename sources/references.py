"""Change-request URL parsing and batch validation."""

from __future__ import annotations

import re
from typing import Iterable, List, Set

from core import ResolvedReference
from utils.exceptions import (
    CrossRepositoryReference,
    DuplicateReference,
    InvalidReference,
    ReferenceCountError,
)

MAX_REFERENCES = 10

PR_URL_PATTERN = re.compile(r"(?:https?://)?github\.com/([^/\s]+)/([^/\s]+)/pull/(\d+)")


def parse_reference(url: str, *, display_order: int = 0) -> ResolvedReference:
    """Parse one PR URL. Raises InvalidReference when it does not match."""
    text = str(url or "").strip()
    match = PR_URL_PATTERN.search(text)
    if not match:
        raise InvalidReference(text)
    owner, repo, number = match.group(1), match.group(2), int(match.group(3))
    return ResolvedReference(
        owner=owner,
        repo=repo,
        number=number,
        url=f"https://github.com/{owner}/{repo}/pull/{number}",
        display_order=display_order,
    )


def resolve_references(urls: Iterable[str]) -> List[ResolvedReference]:
    """
    Validate a batch of 1-10 PR URLs.

    Every URL must parse, all must point at the same owner/repo (compared
    case-insensitively), and no PR number may repeat. Input order becomes the
    display order.
    """
    items = [str(url or "").strip() for url in list(urls or [])]
    items = [url for url in items if url]
    if not items:
        raise ReferenceCountError("At least one PR URL is required")
    if len(items) > MAX_REFERENCES:
        raise ReferenceCountError(f"Maximum {MAX_REFERENCES} PRs allowed", {"count": len(items)})

    resolved: List[ResolvedReference] = []
    seen_numbers: Set[int] = set()
    for idx, url in enumerate(items):
        ref = parse_reference(url, display_order=idx)
        if resolved:
            first = resolved[0]
            if ref.repo_full_name.lower() != first.repo_full_name.lower():
                raise CrossRepositoryReference(first.repo_full_name, ref.repo_full_name)
        if ref.number in seen_numbers:
            raise DuplicateReference(ref.number)
        seen_numbers.add(ref.number)
        resolved.append(ref)
    return resolved
