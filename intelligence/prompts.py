"""Prompt text and document formatting for narrative generation."""

from __future__ import annotations

from typing import List, Sequence

from aggregator import compute_totals, truncate_patch
from core import ChangeRequestData, FileDiff

SINGLE_MAX_COMMITS = 10
MULTI_PATCH_LINES = 200
MULTI_MAX_COMMITS = 5
MULTI_FILE_POOL = 15
MULTI_MIN_FILES = 3


SINGLE_SYSTEM_PROMPT = """You turn technical code changes into clear, persuasive business stories.

Your readers are executives, founders and engineering managers, not developers. They need to know:
1. WHAT is shipping, in plain English
2. WHY it matters to customers and the business
3. The value it delivers

Rules:
- Open with business value, never implementation detail
- Write in an active, confident voice
- Use no technical jargon at all (never say "refactored", "middleware", "API endpoints", "modules" or "components")
- Describe every change by its effect on users or the business
- Keep it tight; each sentence must earn its place
- Sound professional and human

How to translate:
- "Added input validation" -> "New checks make sure customer information is entered correctly"
- "Refactored database queries" -> "Pages now load faster for customers"
- "Fixed null pointer exception" -> "Fixed a problem that caused errors for some customers"
- "Updated dependencies" -> "Security upkeep that keeps customer data safe\""""

SINGLE_USER_PROMPT = """Review this pull request and produce:

1. SUMMARY: 2-3 sentences for a non-technical executive on what the change does and why it matters.

2. SCRIPT: narration for a 60-90 second demo video, in four beats:
   Hook (5-10 seconds): open with the business value.
   What Changed (20-30 seconds): the change in plain English, framed by what users will notice.
   Why It Matters (15-20 seconds): tie it to business goals.
   Wrap-up (5-10 seconds): restate the value delivered.

3. CHANGE TYPE: exactly one of feature, bugfix, refactor, docs, other.

Reply with only this JSON object:
{
  "summary": "2-3 sentence summary",
  "script": "full narration script",
  "changeType": "feature|bugfix|refactor|docs|other"
}

Pull request:

"""

MULTI_SYSTEM_PROMPT = """You combine several technical code changes into ONE clear, persuasive business story.

Your readers are executives, founders and engineering managers, not developers. They need to know:
1. The single THEME or goal that connects these changes
2. WHAT is shipping, in plain English
3. WHY it matters to customers and the business
4. The combined value it delivers

Most important: find the thread that ties every pull request together. Never list or summarize the pull requests one by one. Tell one story.

Rules:
- Lead with the shared theme and its business value
- Write in an active, confident voice
- Use no technical jargon at all (never say "refactored", "middleware", "API endpoints", "modules" or "components")
- Describe every change by its effect on users or the business
- Keep it tight; each sentence must earn its place
- Sound professional and human

How to frame combined work:
- Several sign-in changes -> "A security upgrade that protects every customer account"
- A mix of screen and server changes -> "A faster, simpler experience for customers"
- A batch of bug fixes -> "Reliability work that keeps the service dependable\""""

MULTI_USER_PROMPT = """Review these related pull requests together and produce:

1. UNIFIED TITLE: a 5-10 word headline for the shared theme. Not a list.
   Good: "Checkout experience rebuilt from the ground up"
   Bad: "PR #123, PR #124 and PR #125"
   Bad: "Login, UI fixes and API updates"

2. SUMMARY: 2-3 sentences for a non-technical executive on what the changes achieve together and why it matters.

3. SCRIPT: narration for a 90-120 second demo video, in four beats:
   Hook (10-15 seconds): open with the overall business value.
   The Story (40-50 seconds): one narrative showing how the changes work together, never a section per pull request.
   Why It Matters (20-25 seconds): tie it to business goals.
   Wrap-up (10-15 seconds): restate the combined value.

4. CHANGE TYPE: exactly one of feature, bugfix, refactor, docs, other, chosen for the overall theme.

Reply with only this JSON object:
{
  "unifiedTitle": "5-10 word title",
  "summary": "2-3 sentence summary",
  "script": "full narration script",
  "changeType": "feature|bugfix|refactor|docs|other"
}

Pull requests:

"""


def _file_block(file: FileDiff, heading: str, patch: str) -> str:
    block = f"\n{heading} {file.filename} ({file.status})\n+{file.additions} -{file.deletions}\n"
    if patch:
        block += "```diff\n" + patch + "\n```\n"
    return block


def format_single_document(item: ChangeRequestData) -> str:
    parts: List[str] = [
        f"# Pull Request: {item.title}\n\n",
        f"**Author:** {item.author}\n",
        f"**Files Changed:** {item.files_changed}\n",
        f"**Additions:** +{item.additions}\n",
        f"**Deletions:** -{item.deletions}\n\n",
    ]
    if item.description:
        parts.append(f"## Description\n{item.description}\n\n")

    parts.append("## Commits\n")
    for commit in item.commits[:SINGLE_MAX_COMMITS]:
        parts.append(f"- {commit.sha}: {commit.message}\n")
    parts.append("\n")

    parts.append("## Files Changed\n")
    for file in item.files:
        parts.append(_file_block(file, "###", file.patch or ""))
    return "".join(parts)


def files_per_item(item_count: int) -> int:
    """Per-PR file allowance for a combined document; shrinks as PRs are added."""
    return max(MULTI_MIN_FILES, MULTI_FILE_POOL // max(1, int(item_count)))


def format_multi_document(items: Sequence[ChangeRequestData], owner: str, repo: str) -> str:
    totals = compute_totals(items)
    parts: List[str] = [
        f"# Combined Pull Requests for {owner}/{repo}\n\n",
        f"**Total PRs:** {len(items)}\n",
        f"**Total Files Changed:** {totals['total_files_changed']}\n",
        f"**Total Additions:** +{totals['total_additions']}\n",
        f"**Total Deletions:** -{totals['total_deletions']}\n\n",
        "---\n\n",
    ]

    max_files = files_per_item(len(items))
    for idx, item in enumerate(items):
        parts.append(f"## PR #{item.number}: {item.title}\n\n")
        parts.append(f"**Author:** {item.author}\n")
        parts.append(f"**Files Changed:** {item.files_changed}\n")
        parts.append(f"**Additions:** +{item.additions}\n")
        parts.append(f"**Deletions:** -{item.deletions}\n\n")
        if item.description:
            parts.append(f"### Description\n{item.description}\n\n")

        parts.append("### Commits\n")
        for commit in item.commits[:MULTI_MAX_COMMITS]:
            parts.append(f"- {commit.sha}: {commit.message}\n")
        if len(item.commits) > MULTI_MAX_COMMITS:
            parts.append(f"- ... and {len(item.commits) - MULTI_MAX_COMMITS} more commits\n")
        parts.append("\n")

        parts.append("### Key Files Changed\n")
        for file in item.files[:max_files]:
            patch = truncate_patch(file.patch, MULTI_PATCH_LINES, total_lines=file.patch_lines) or ""
            parts.append(_file_block(file, "####", patch))
        if len(item.files) > max_files:
            parts.append(f"\n*... and {len(item.files) - max_files} more files*\n")

        if idx < len(items) - 1:
            parts.append("\n---\n\n")
    return "".join(parts)
