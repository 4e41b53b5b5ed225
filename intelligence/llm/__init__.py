"""
LLM Module
Multi-provider LLM abstraction.
"""
from .anthropic_llm import AnthropicLLM
from .base import BaseLLM, LLMResponse, Message, MessageRole
from .factory import get_llm
from .openai_llm import OpenAILLM

__all__ = [
    "AnthropicLLM",
    "BaseLLM",
    "LLMResponse",
    "Message",
    "MessageRole",
    "OpenAILLM",
    "get_llm",
]
