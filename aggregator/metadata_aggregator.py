"""
Metadata Aggregator
Concurrent per-PR fetch of metadata, file diffs, commits and comments.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from core import ChangeRequestData, FileDiff, ResolvedReference
from sources import GitHubClient
from utils.exceptions import SourceFetchError


logger = logging.getLogger(__name__)

MAX_PATCH_LINES = 500


def truncate_patch(patch: Optional[str], max_lines: int, *, total_lines: Optional[int] = None) -> Optional[str]:
    """
    Keep the first ``max_lines`` lines of a diff and append a marker line.

    ``total_lines`` lets a caller re-truncate an already shortened patch while
    still reporting the count against the original diff.
    """
    if not patch:
        return patch
    lines = patch.split("\n")
    original = max(int(total_lines or 0), len(lines))
    if original <= max_lines:
        return patch
    kept = "\n".join(lines[:max_lines])
    return f"{kept}\n... ({original - max_lines} more lines truncated)"


def _prepare_file(item: FileDiff) -> FileDiff:
    line_count = len(item.patch.split("\n")) if item.patch else 0
    return item.model_copy(
        update={
            "patch": truncate_patch(item.patch, MAX_PATCH_LINES),
            "patch_lines": line_count,
        }
    )


def compute_totals(items: Sequence[ChangeRequestData]) -> Dict[str, int]:
    """Sum files/additions/deletions; a single item maps to its own metrics."""
    return {
        "total_files_changed": sum(item.files_changed for item in items),
        "total_additions": sum(item.additions for item in items),
        "total_deletions": sum(item.deletions for item in items),
    }


class MetadataAggregator:
    """
    Fetches everything the narrative needs for a batch of PRs.

    All items and all endpoints of an item run concurrently. The first failure
    cancels the rest and is raised as ``SourceFetchError``; no partial result is
    returned.
    """

    def __init__(self, client: Optional[GitHubClient] = None, item_timeout_sec: float = 60.0):
        self.client = client or GitHubClient()
        self.item_timeout_sec = max(1.0, float(item_timeout_sec))

    async def _fetch_one(self, ref: ResolvedReference) -> ChangeRequestData:
        pr, files, commits, comments = await asyncio.gather(
            self.client.get_pull_request(ref.owner, ref.repo, ref.number),
            self.client.list_files(ref.owner, ref.repo, ref.number),
            self.client.list_commits(ref.owner, ref.repo, ref.number),
            self.client.list_comments(ref.owner, ref.repo, ref.number),
        )
        user: Dict[str, Any] = pr.get("user") or {}
        return ChangeRequestData(
            reference=ref,
            title=str(pr.get("title") or f"PR #{ref.number}"),
            description=str(pr.get("body") or ""),
            author=str(user.get("login") or ""),
            author_avatar=str(user.get("avatar_url") or ""),
            files_changed=int(pr.get("changed_files") or 0),
            additions=int(pr.get("additions") or 0),
            deletions=int(pr.get("deletions") or 0),
            files=[_prepare_file(item) for item in files],
            commits=commits,
            comments=comments,
        )

    async def _fetch_with_timeout(self, ref: ResolvedReference) -> ChangeRequestData:
        try:
            return await asyncio.wait_for(self._fetch_one(ref), timeout=self.item_timeout_sec)
        except asyncio.TimeoutError as exc:
            raise SourceFetchError(
                f"Timed out fetching {ref.repo_full_name}#{ref.number}"
            ) from exc

    async def aggregate(self, refs: Sequence[ResolvedReference]) -> List[ChangeRequestData]:
        """Return one ``ChangeRequestData`` per reference, in display order."""
        ordered = sorted(refs, key=lambda ref: ref.display_order)
        tasks = [asyncio.ensure_future(self._fetch_with_timeout(ref)) for ref in ordered]
        try:
            results = await asyncio.gather(*tasks)
        except SourceFetchError:
            for task in tasks:
                task.cancel()
            raise
        except Exception as exc:
            for task in tasks:
                task.cancel()
            raise SourceFetchError(f"Failed to fetch PR data: {exc}") from exc

        logger.info(
            "aggregate_done prs=%s files=%s",
            ",".join(str(ref.number) for ref in ordered),
            sum(len(item.files) for item in results),
        )
        return list(results)
