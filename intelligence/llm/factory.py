"""
LLM Factory
Builds an LLM instance from settings.
"""
import logging
from typing import Optional

from config import LLMSettings, get_llm_settings
from utils.exceptions import ConfigurationError

from .anthropic_llm import AnthropicLLM
from .base import BaseLLM
from .openai_llm import OpenAILLM


logger = logging.getLogger(__name__)


DEFAULT_MODELS = {
    "anthropic": "claude-sonnet-4-20250514",
    "openai": "gpt-4o",
}


def get_llm(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    settings: Optional[LLMSettings] = None,
    **kwargs,
) -> BaseLLM:
    """
    Create an LLM client.

    Args:
        provider: anthropic or openai (defaults to LLM_PROVIDER)
        model: model name (defaults to LLM_MODEL_NAME, then the provider default)
        settings: LLM settings (defaults to the process settings)
        **kwargs: temperature, max_tokens, api_key, base_url

    Example:
        llm = get_llm()
        llm = get_llm(provider="openai", model="gpt-4o")
    """
    settings = settings or get_llm_settings()
    provider = (provider or settings.provider or "").strip().lower()
    model = model or settings.model_name or DEFAULT_MODELS.get(provider)
    logger.debug("llm_client provider=%s model=%s", provider, model)

    api_keys = {
        "anthropic": settings.anthropic_api_key,
        "openai": settings.openai_api_key,
    }
    api_key = kwargs.pop("api_key", None) or api_keys.get(provider)

    kwargs.setdefault("temperature", settings.temperature)
    kwargs.setdefault("max_tokens", settings.max_tokens)

    if provider == "anthropic":
        return AnthropicLLM(model=model, api_key=api_key, **kwargs)
    if provider == "openai":
        return OpenAILLM(model=model, api_key=api_key, base_url=kwargs.pop("base_url", None), **kwargs)
    raise ConfigurationError(f"Unsupported LLM provider: {provider}")
