"""
Settings Configuration
Pydantic-based configuration, one section per external collaborator.
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class GitHubSettings(BaseSettings):
    """Source-control REST API"""
    token: Optional[str] = Field(default=None, description="GitHub token")
    api_base_url: str = Field(default="https://api.github.com", description="REST API root")
    timeout_s: float = Field(default=30.0, description="Request timeout (seconds)")
    per_page: int = Field(default=100, description="Page size for list endpoints")

    class Config:
        env_prefix = "GITHUB_"


class LLMSettings(BaseSettings):
    """Narrative-generation LLM"""
    provider: str = Field(default="anthropic", description="LLM provider: anthropic, openai")
    model_name: Optional[str] = Field(default=None, description="Model name (provider default when unset)")
    temperature: float = Field(default=0.7, description="Sampling temperature")
    max_tokens: int = Field(default=2000, description="Max tokens for a single-PR narrative")
    multi_max_tokens: int = Field(default=3000, description="Max tokens for a combined narrative")

    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API key")
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")

    class Config:
        env_prefix = "LLM_"


class VoiceSettings(BaseSettings):
    """Speech synthesis (ElevenLabs)"""
    api_key: Optional[str] = Field(default=None, description="ElevenLabs API key")
    api_base_url: str = Field(default="https://api.elevenlabs.io/v1", description="API root")
    voice_id: str = Field(default="pNInz6obpgDQGcFmaJgB", description="Narrator voice")
    model_id: str = Field(default="eleven_turbo_v2", description="TTS model")
    stability: float = Field(default=0.5, ge=0.0, le=1.0)
    similarity_boost: float = Field(default=0.75, ge=0.0, le=1.0)
    fallback_bitrate_kbps: int = Field(default=128, description="Bitrate assumed when duration probing fails")
    timeout_s: float = Field(default=120.0)

    class Config:
        env_prefix = "ELEVENLABS_"


class RenderSettings(BaseSettings):
    """Render and headless-capture server"""
    server_url: Optional[str] = Field(default=None, description="Render server root; unset disables rendering")
    webhook_secret: Optional[str] = Field(default=None, description="Shared bearer secret for render/capture calls and callbacks")
    timeout_s: float = Field(default=30.0)
    capture_timeout_ms: int = Field(default=30000, description="Per-capture browser timeout")
    viewport_width: int = Field(default=1920)
    viewport_height: int = Field(default=1080)

    class Config:
        env_prefix = "RENDER_"


class StorageSettings(BaseSettings):
    """Media storage"""
    media_root: str = Field(default="./data/media", description="Local media directory")
    public_base_url: str = Field(default="http://localhost:8000/media", description="Public URL prefix for stored media")

    class Config:
        env_prefix = "STORAGE_"


class ApiKeySettings(BaseSettings):
    """Public API credentials and quota"""
    salt: str = Field(default="prreel-dev-salt", description="Salt mixed into stored key hashes")
    prefix: str = Field(default="rk_", description="Plaintext key prefix")
    max_active: int = Field(default=10, description="Active keys allowed per owner")
    rate_limit: int = Field(default=10, description="Requests per window")
    rate_window_s: int = Field(default=60, description="Window length (seconds)")

    class Config:
        env_prefix = "API_KEY_"


class AppSettings(BaseSettings):
    """Public app settings"""
    public_url: str = Field(default="http://localhost:8000", description="Base URL for share, status and callback links")
    log_level: str = Field(default="INFO")

    class Config:
        env_prefix = "APP_"


class Settings(BaseSettings):
    """Aggregated configuration"""

    github: GitHubSettings = Field(default_factory=GitHubSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    voice: VoiceSettings = Field(default_factory=VoiceSettings)
    render: RenderSettings = Field(default_factory=RenderSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    api_keys: ApiKeySettings = Field(default_factory=ApiKeySettings)
    app: AppSettings = Field(default_factory=AppSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """Load settings after applying an optional ``.env`` file (default ``config/.env``)."""
        if env_path is None:
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            github=GitHubSettings(),
            llm=LLMSettings(),
            voice=VoiceSettings(),
            render=RenderSettings(),
            storage=StorageSettings(),
            api_keys=ApiKeySettings(),
            app=AppSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings singleton."""
    return Settings.load_from_env_file()


def get_github_settings() -> GitHubSettings:
    return get_settings().github


def get_llm_settings() -> LLMSettings:
    return get_settings().llm


def get_voice_settings() -> VoiceSettings:
    return get_settings().voice


def get_render_settings() -> RenderSettings:
    return get_settings().render


def get_storage_settings() -> StorageSettings:
    return get_settings().storage


def get_api_key_settings() -> ApiKeySettings:
    return get_settings().api_keys
