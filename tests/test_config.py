"""Tests for environment based settings."""

from chatbot.config import DEFAULT_EMPTY_REPLY, load_settings


def test_defaults(monkeypatch):
    for name in ("GEMINI_API_KEY", "GOOGLE_API_KEY", "DEMO_MOCK", "LOCAL_ONLY", "CORS_ORIGINS",
                 "GEMINI_MODEL", "GEMINI_TEMPERATURE", "GEMINI_MAX_OUTPUT_TOKENS", "EMPTY_REPLY_PLACEHOLDER", "PORT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("chatbot.config.load_dotenv", lambda: None)

    settings = load_settings()

    assert settings.gemini_model == "gemini-1.5-flash"
    assert settings.temperature == 0.7
    assert settings.max_output_tokens == 500
    assert settings.backend == "gemini"
    assert settings.cors_origins == ["http://localhost:5173"]
    assert settings.empty_reply_placeholder == DEFAULT_EMPTY_REPLY
    assert settings.port == 3000


def test_overrides(monkeypatch):
    monkeypatch.setattr("chatbot.config.load_dotenv", lambda: None)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("GOOGLE_API_KEY", "abc")
    monkeypatch.setenv("DEMO_MOCK", "yes")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.example, http://b.example,")

    settings = load_settings()

    assert settings.gemini_api_key == "abc"
    assert settings.backend == "demo"
    assert settings.cors_origins == ["http://a.example", "http://b.example"]
