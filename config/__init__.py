"""
Configuration Management Module
"""
from .settings import (
    ApiKeySettings,
    AppSettings,
    GitHubSettings,
    LLMSettings,
    RenderSettings,
    Settings,
    StorageSettings,
    VoiceSettings,
    get_api_key_settings,
    get_github_settings,
    get_llm_settings,
    get_render_settings,
    get_settings,
    get_storage_settings,
    get_voice_settings,
)

__all__ = [
    "ApiKeySettings",
    "AppSettings",
    "GitHubSettings",
    "LLMSettings",
    "RenderSettings",
    "Settings",
    "StorageSettings",
    "VoiceSettings",
    "get_api_key_settings",
    "get_github_settings",
    "get_llm_settings",
    "get_render_settings",
    "get_settings",
    "get_storage_settings",
    "get_voice_settings",
]
