import pytest

from backend.config import OPENAI_DEFAULT_MODEL, Settings
from backend.database.repository import make_title


def test_secret_key_is_required(monkeypatch):
    monkeypatch.delenv("AUTH_SECRET_KEY", raising=False)
    with pytest.raises(ValueError, match="AUTH_SECRET_KEY"):
        Settings()


def test_database_url_is_required(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(ValueError, match="DATABASE_URL"):
        Settings()


def test_defaults(monkeypatch):
    monkeypatch.delenv("LLM_MODEL", raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://a.test, http://b.test")
    settings = Settings()
    assert settings.provider_name == "openai"
    assert settings.provider_base_url is None
    assert settings.llm_model == OPENAI_DEFAULT_MODEL
    assert settings.allowed_origins == ["http://a.test", "http://b.test"]
    assert settings.trust_user_id_header is False
    assert settings.max_connections == 100


def test_make_title():
    assert make_title("  hello   world ") == "hello world"
    assert make_title("") == "New Chat"
    title = make_title("a" * 80)
    assert title == "a" * 50 + "..."


@pytest.mark.parametrize("value,expected", [("true", True), ("1", True), ("false", False), ("", False)])
def test_trust_user_id_header_flag(monkeypatch, value, expected):
    monkeypatch.setenv("TRUST_USER_ID_HEADER", value)
    assert Settings().trust_user_id_header is expected
