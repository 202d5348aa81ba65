import pytest
from pydantic import ValidationError

from mentionbot.app.core.config import Settings


def test_defaults(monkeypatch) -> None:
    for name in ("RATE_LIMIT_REQUESTS", "RATE_LIMIT_WINDOW_SECONDS", "DEEPSEEK_MODEL", "SEARCH_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.rate_limit_requests == 5
    assert settings.rate_limit_window_seconds == 60.0
    assert settings.deepseek_model == "deepseek-chat"
    assert settings.search_timeout == 5.0
    assert settings.reply_max_length == 2000


def test_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("RATE_LIMIT_REQUESTS", "10")
    monkeypatch.setenv("BOT_USER_ID", "1234")

    settings = Settings(_env_file=None)

    assert settings.rate_limit_requests == 10
    assert settings.bot_user_id == "1234"


@pytest.mark.parametrize(
    ("enabled", "key", "expected"),
    [
        (True, "tvly-key", True),
        (True, "", False),
        (False, "tvly-key", False),
    ],
)
def test_search_available(enabled: bool, key: str, expected: bool) -> None:
    settings = Settings(_env_file=None, search_enabled=enabled, tavily_api_key=key)
    assert settings.search_available is expected


@pytest.mark.parametrize(
    "overrides",
    [
        {"rate_limit_requests": 0},
        {"history_limit": 0},
        {"rate_limit_window_seconds": 0},
        {"completion_deadline": -1},
        {"reply_max_length": 3},
        {"deepseek_temperature": 2.5},
    ],
)
def test_rejects_invalid_values(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)
