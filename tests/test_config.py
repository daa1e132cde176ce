from __future__ import annotations

from pathlib import Path

import pytest

from arena_watch.config import ConfigError, load_config

BASE_ENV = {
    "ARENA_COLLECTION_API_URL": (
        "https://api.are.na/v2/channels/one/contents, https://api.are.na/v2/channels/two/contents"
    ),
}


def test_environment_only_config_uses_defaults(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    config = load_config(environ=BASE_ENV)

    assert config.feeds.urls == [
        "https://api.are.na/v2/channels/one/contents",
        "https://api.are.na/v2/channels/two/contents",
    ]
    assert config.poll.interval_seconds == 60
    assert config.server.port == 3000
    assert config.pairing.primary is False
    assert config.pairing.delay_seconds == 60
    assert config.telegram.bot_token is None
    assert config.storage.path == str((tmp_path / "data/arena.sqlite").resolve())
    assert config.log_level == "INFO"


def test_environment_values_are_parsed(tmp_path: Path) -> None:
    env = {
        **BASE_ENV,
        "BOT_API_TOKEN": "123:abc",
        "TELEGRAM_CHAT_ID": "-100123",
        "PORT": "8080",
        "PARTNER_URL": "https://partner.example.com",
        "PING_SECRET": "s3cret",
        "IS_PRIMARY": "yes",
        "POLL_INTERVAL_SECONDS": "120",
        "DATABASE_PATH": str(tmp_path / "state.sqlite"),
        "LOG_LEVEL": "debug",
    }

    config = load_config(environ=env)

    assert config.telegram.bot_token == "123:abc"
    assert config.telegram.chat_id == "-100123"
    assert config.server.port == 8080
    assert config.pairing.partner_url == "https://partner.example.com"
    assert config.pairing.primary is True
    assert config.poll.interval_seconds == 120
    assert config.storage.path == str(tmp_path / "state.sqlite")
    assert config.log_level == "DEBUG"
    assert sorted(config.secrets()) == ["123:abc", "s3cret"]


def test_yaml_file_is_overridden_by_environment(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "\n".join(
            [
                "feeds:",
                "  urls:",
                "    - https://api.are.na/v2/channels/yaml/contents",
                "  timeout_seconds: 10",
                "telegram:",
                "  chat_id: '-1'",
                "storage:",
                "  path: state/arena.sqlite",
                "pairing:",
                "  primary: true",
                "  delay_seconds: 30",
                "log_level: warning",
            ]
        ),
        encoding="utf-8",
    )

    config = load_config(config_path, environ={"TELEGRAM_CHAT_ID": "-2"})

    assert config.feeds.urls == ["https://api.are.na/v2/channels/yaml/contents"]
    assert config.feeds.timeout_seconds == 10
    assert config.telegram.chat_id == "-2"
    assert config.storage.path == str((tmp_path / "state/arena.sqlite").resolve())
    assert config.pairing.primary is True
    assert config.pairing.delay_seconds == 30
    assert config.log_level == "WARNING"


def test_missing_feed_urls_is_an_error() -> None:
    with pytest.raises(ConfigError, match="feed URL"):
        load_config(environ={})


def test_missing_config_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "missing.yaml", environ=BASE_ENV)


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("PORT", "eighty", "server.port must be an integer"),
        ("POLL_INTERVAL_SECONDS", "0", "poll.interval_seconds must be >= 1"),
        ("IS_PRIMARY", "maybe", "pairing.primary must be a boolean"),
    ],
)
def test_invalid_values_are_rejected(name: str, value: str, message: str) -> None:
    with pytest.raises(ConfigError, match=message):
        load_config(environ={**BASE_ENV, name: value})


def test_partner_without_secret_is_rejected() -> None:
    with pytest.raises(ConfigError, match="PING_SECRET"):
        load_config(environ={**BASE_ENV, "PARTNER_URL": "https://partner.example.com"})
