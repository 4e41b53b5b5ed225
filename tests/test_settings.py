from config import ApiKeySettings, RenderSettings, Settings, VoiceSettings


def test_sections_read_prefixed_environment(monkeypatch) -> None:
    monkeypatch.setenv("RENDER_SERVER_URL", "https://render.example.com")
    monkeypatch.setenv("RENDER_WEBHOOK_SECRET", "s3cret")
    monkeypatch.setenv("API_KEY_RATE_LIMIT", "25")
    monkeypatch.setenv("ELEVENLABS_API_KEY", "xi-key")

    assert RenderSettings().server_url == "https://render.example.com"
    assert RenderSettings().webhook_secret == "s3cret"
    assert ApiKeySettings().rate_limit == 25
    assert VoiceSettings().api_key == "xi-key"


def test_defaults_leave_optional_collaborators_disabled(monkeypatch) -> None:
    for name in ("RENDER_SERVER_URL", "RENDER_WEBHOOK_SECRET", "GITHUB_TOKEN", "ELEVENLABS_API_KEY"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(render=RenderSettings(), voice=VoiceSettings())
    assert settings.render.server_url is None
    assert settings.voice.api_key is None
    assert settings.api_keys.prefix == "rk_"
    assert settings.api_keys.rate_limit == 10
    assert settings.api_keys.rate_window_s == 60
    assert settings.llm.max_tokens == 2000
    assert settings.llm.multi_max_tokens == 3000


def test_load_from_env_file(tmp_path, monkeypatch) -> None:
    # Registers the variable so teardown removes what load_dotenv sets.
    monkeypatch.setenv("APP_PUBLIC_URL", "unset")
    monkeypatch.delenv("APP_PUBLIC_URL")
    env_file = tmp_path / ".env"
    env_file.write_text("APP_PUBLIC_URL=https://reels.example.com\n")

    settings = Settings.load_from_env_file(env_file)
    assert settings.app.public_url == "https://reels.example.com"
