"""
Intelligence Module
LLM providers and narrative synthesis.
"""
from .llm import AnthropicLLM, BaseLLM, LLMResponse, Message, OpenAILLM, get_llm
from .narrative import NarrativeSynthesizer, extract_json_object, parse_narrative
from .prompts import files_per_item, format_multi_document, format_single_document

__all__ = [
    "AnthropicLLM",
    "BaseLLM",
    "LLMResponse",
    "Message",
    "NarrativeSynthesizer",
    "OpenAILLM",
    "extract_json_object",
    "files_per_item",
    "format_multi_document",
    "format_single_document",
    "get_llm",
    "parse_narrative",
]
