"""Narrative synthesis: PR data in, summary/script/classification out."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional, Sequence

from pydantic import BaseModel, ValidationError, field_validator

from config import LLMSettings, get_llm_settings
from core import ChangeRequestData, ChangeType, Narrative
from utils.exceptions import NarrativeParseError

from .llm import BaseLLM, Message, get_llm
from .prompts import (
    MULTI_SYSTEM_PROMPT,
    MULTI_USER_PROMPT,
    SINGLE_SYSTEM_PROMPT,
    SINGLE_USER_PROMPT,
    format_multi_document,
    format_single_document,
)

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.S)
_OBJECT = re.compile(r"\{[\s\S]*\}")


class _SinglePayload(BaseModel):
    summary: str
    script: str
    changeType: ChangeType

    @field_validator("summary", "script", mode="before")
    @classmethod
    def _non_empty_text(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("must be a non-empty string")
        return value.strip()

    @field_validator("changeType", mode="before")
    @classmethod
    def _strict_change_type(cls, value: Any) -> Any:
        if not isinstance(value, str):
            raise ValueError("changeType must be a string")
        return value.strip()


class _MultiPayload(_SinglePayload):
    unifiedTitle: str

    @field_validator("unifiedTitle", mode="before")
    @classmethod
    def _non_empty_title(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("must be a non-empty string")
        return value.strip()


def extract_json_object(text: str) -> dict:
    """
    Pull the JSON object out of a model reply.

    Accepts a bare object, a fenced ```json block, or one object surrounded by
    prose. Anything else raises NarrativeParseError.
    """
    raw = str(text or "").strip()
    if not raw:
        raise NarrativeParseError("Empty response from narrative model")

    fenced = _FENCE.match(raw)
    if fenced:
        raw = fenced.group(1)

    match = _OBJECT.search(raw)
    if not match:
        raise NarrativeParseError("Could not find a JSON object in narrative response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise NarrativeParseError(f"Could not parse JSON from narrative response: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise NarrativeParseError("Narrative response JSON is not an object")
    return data


def parse_narrative(text: str, *, multi: bool) -> Narrative:
    """Validate a model reply against the single or combined schema."""
    data = extract_json_object(text)
    schema = _MultiPayload if multi else _SinglePayload
    try:
        payload = schema.model_validate(data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise NarrativeParseError(f"Narrative response failed validation: {problems}") from exc

    return Narrative(
        summary=payload.summary,
        script=payload.script,
        change_type=payload.changeType,
        unified_title=getattr(payload, "unifiedTitle", None),
    )


class NarrativeSynthesizer:
    """
    Builds the prompt for one or many PRs and validates the reply.

    More than one item switches to the combined prompt, whose reply must also
    carry a unified title.
    """

    def __init__(self, llm: Optional[BaseLLM] = None, settings: Optional[LLMSettings] = None):
        self.settings = settings or get_llm_settings()
        self._llm = llm

    @property
    def llm(self) -> BaseLLM:
        if self._llm is None:
            self._llm = get_llm(settings=self.settings)
        return self._llm

    async def synthesize(self, items: Sequence[ChangeRequestData]) -> Narrative:
        if not items:
            raise ValueError("at least one change request is required")

        multi = len(items) > 1
        if multi:
            first = items[0].reference
            system_prompt = MULTI_SYSTEM_PROMPT
            user_prompt = MULTI_USER_PROMPT + format_multi_document(items, first.owner, first.repo)
            max_tokens = self.settings.multi_max_tokens
        else:
            system_prompt = SINGLE_SYSTEM_PROMPT
            user_prompt = SINGLE_USER_PROMPT + format_single_document(items[0])
            max_tokens = self.settings.max_tokens

        response = await self.llm.acomplete(
            [Message.system(system_prompt), Message.user(user_prompt)],
            max_tokens=max_tokens,
        )
        logger.info(
            "narrative_generated items=%s model=%s usage=%s",
            len(items),
            response.model,
            response.usage,
        )
        return parse_narrative(response.content, multi=multi)

    async def aclose(self) -> None:
        if self._llm is not None:
            await self._llm.aclose()
