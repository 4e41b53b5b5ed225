from __future__ import annotations

import json
from typing import List

import pytest

from config import LLMSettings
from core import ChangeRequestData, ChangeType, CommitInfo, FileDiff
from intelligence import (
    BaseLLM,
    LLMResponse,
    Message,
    NarrativeSynthesizer,
    extract_json_object,
    files_per_item,
    format_multi_document,
    format_single_document,
    parse_narrative,
)
from sources import resolve_references
from utils.exceptions import NarrativeParseError


class FakeLLM(BaseLLM):
    def __init__(self, reply: str):
        super().__init__(model="fake-model")
        self.reply = reply
        self.calls: List[dict] = []

    @property
    def provider(self) -> str:
        return "fake"

    async def acomplete(self, messages: List[Message], **kwargs) -> LLMResponse:
        self.calls.append({"messages": messages, **kwargs})
        return LLMResponse(content=self.reply, model=self.model, usage={"total_tokens": 42})


def _items(count: int, *, files: int = 2, commits: int = 2) -> List[ChangeRequestData]:
    refs = resolve_references([f"https://github.com/acme/widgets/pull/{n}" for n in range(1, count + 1)])
    return [
        ChangeRequestData(
            reference=ref,
            title=f"Checkout step {ref.number}",
            description=f"Improves checkout part {ref.number}",
            author="alice",
            files_changed=files,
            additions=5,
            deletions=1,
            files=[
                FileDiff(filename=f"src/file_{i}.py", additions=5, deletions=1, patch="+x", patch_lines=1)
                for i in range(files)
            ],
            commits=[CommitInfo(sha=f"c{i:06d}", message=f"commit {i}") for i in range(commits)],
        )
        for ref in refs
    ]


SINGLE_REPLY = json.dumps({"summary": "Faster checkout.", "script": "Hook. Story.", "changeType": "feature"})
MULTI_REPLY = json.dumps(
    {
        "unifiedTitle": "Checkout rebuilt for speed",
        "summary": "Checkout is faster.",
        "script": "One story.",
        "changeType": "refactor",
    }
)


def test_extract_json_object_handles_fences_and_prose() -> None:
    assert extract_json_object('```json\n{"a": 1}\n```') == {"a": 1}
    assert extract_json_object('Sure! Here it is: {"a": 2} hope that helps') == {"a": 2}
    with pytest.raises(NarrativeParseError):
        extract_json_object("no json here")
    with pytest.raises(NarrativeParseError):
        extract_json_object("")


def test_parse_narrative_validates_fields() -> None:
    narrative = parse_narrative(SINGLE_REPLY, multi=False)
    assert narrative.change_type == ChangeType.FEATURE
    assert narrative.unified_title is None

    with pytest.raises(NarrativeParseError):
        parse_narrative(json.dumps({"summary": "x", "script": "y", "changeType": "chore"}), multi=False)
    with pytest.raises(NarrativeParseError):
        parse_narrative(json.dumps({"summary": "", "script": "y", "changeType": "docs"}), multi=False)
    with pytest.raises(NarrativeParseError):
        parse_narrative(SINGLE_REPLY, multi=True)


def test_single_document_caps_commits_at_ten() -> None:
    item = _items(1, commits=40)[0]
    document = format_single_document(item)
    assert document.startswith("# Pull Request: Checkout step 1")
    assert "- c000009: commit 9" in document
    assert "- c000010: commit 10" not in document
    assert document.count("- c0000") == 10
    assert "### src/file_0.py (modified)" in document
    assert "```diff\n+x\n```" in document


def test_multi_document_caps_commits_and_files() -> None:
    items = _items(4, files=6, commits=7)
    document = format_multi_document(items, "acme", "widgets")

    assert files_per_item(4) == 3
    assert files_per_item(2) == 7
    assert files_per_item(20) == 3
    assert "# Combined Pull Requests for acme/widgets" in document
    assert "**Total PRs:** 4" in document
    assert "**Total Files Changed:** 24" in document
    assert "- c000004: commit 4" in document
    assert "- c000005: commit 5" not in document
    assert "- ... and 2 more commits" in document
    assert "#### src/file_2.py" in document
    assert "#### src/file_3.py" not in document
    assert "*... and 3 more files*" in document
    assert document.count("\n---\n") == 4


def test_multi_document_truncates_patches_to_original_length() -> None:
    item = _items(2)[0]
    shortened = "\n".join(f"+{i}" for i in range(500)) + "\n... (100 more lines truncated)"
    item.files[0] = item.files[0].model_copy(update={"patch": shortened, "patch_lines": 600})
    document = format_multi_document([item, _items(2)[1]], "acme", "widgets")
    assert "... (400 more lines truncated)" in document


@pytest.mark.asyncio
async def test_synthesize_single_uses_single_prompt() -> None:
    llm = FakeLLM(SINGLE_REPLY)
    synthesizer = NarrativeSynthesizer(llm=llm, settings=LLMSettings(max_tokens=2000, multi_max_tokens=3000))

    narrative = await synthesizer.synthesize(_items(1))

    assert narrative.summary == "Faster checkout."
    call = llm.calls[0]
    assert call["max_tokens"] == 2000
    assert "Pull request:" in call["messages"][1].content
    assert "# Pull Request: Checkout step 1" in call["messages"][1].content


@pytest.mark.asyncio
async def test_synthesize_multi_requires_unified_title() -> None:
    llm = FakeLLM(MULTI_REPLY)
    synthesizer = NarrativeSynthesizer(llm=llm, settings=LLMSettings(max_tokens=2000, multi_max_tokens=3000))

    narrative = await synthesizer.synthesize(_items(2))

    assert narrative.unified_title == "Checkout rebuilt for speed"
    assert narrative.change_type == ChangeType.REFACTOR
    assert llm.calls[0]["max_tokens"] == 3000
    assert "# Combined Pull Requests for acme/widgets" in llm.calls[0]["messages"][1].content

    with pytest.raises(NarrativeParseError):
        await NarrativeSynthesizer(llm=FakeLLM(SINGLE_REPLY), settings=LLMSettings()).synthesize(_items(2))
