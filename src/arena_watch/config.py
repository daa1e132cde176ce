from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml


class ConfigError(ValueError):
    """Raised when configuration is invalid."""


@dataclass(slots=True)
class TelegramSettings:
    bot_token: str | None = None
    chat_id: str | None = None


@dataclass(slots=True)
class FeedSettings:
    urls: list[str] = field(default_factory=list)
    timeout_seconds: int = 30


@dataclass(slots=True)
class PollSettings:
    interval_seconds: int = 60


@dataclass(slots=True)
class StorageSettings:
    path: str = "data/arena.sqlite"


@dataclass(slots=True)
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 3000


@dataclass(slots=True)
class PairingSettings:
    partner_url: str | None = None
    secret: str | None = None
    primary: bool = False
    delay_seconds: int = 60


@dataclass(slots=True)
class AppConfig:
    feeds: FeedSettings
    telegram: TelegramSettings = field(default_factory=TelegramSettings)
    poll: PollSettings = field(default_factory=PollSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    server: ServerSettings = field(default_factory=ServerSettings)
    pairing: PairingSettings = field(default_factory=PairingSettings)
    log_level: str = "INFO"

    def secrets(self) -> list[str]:
        values = [self.telegram.bot_token, self.pairing.secret]
        return [value for value in values if value]


def _as_string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        raise ConfigError(f"Expected a list of strings, got: {type(value)!r}")
    return [str(item).strip() for item in value if str(item).strip()]


def _as_optional_string(value: Any) -> str | None:
    if value is None:
        return None
    normalized = str(value).strip()
    return normalized or None


def _as_bool(value: Any, *, field_name: str) -> bool:
    if isinstance(value, bool):
        return value

    if isinstance(value, int) and value in {0, 1}:
        return bool(value)

    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes", "on"}:
            return True
        if normalized in {"false", "0", "no", "off", ""}:
            return False

    raise ConfigError(f"{field_name} must be a boolean")


def _as_int(value: Any, *, field_name: str, minimum: int | None = None) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be an integer")

    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be an integer") from exc

    if minimum is not None and parsed < minimum:
        raise ConfigError(f"{field_name} must be >= {minimum}")
    return parsed


def _section(parsed: Mapping[str, Any], name: str) -> dict[str, Any]:
    raw = parsed.get(name, {}) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{name} must be a mapping")
    return dict(raw)


# (section, key) -> environment variable; environment wins over the YAML file.
_ENV_OVERRIDES: dict[tuple[str, str], str] = {
    ("telegram", "bot_token"): "BOT_API_TOKEN",
    ("telegram", "chat_id"): "TELEGRAM_CHAT_ID",
    ("feeds", "urls"): "ARENA_COLLECTION_API_URL",
    ("feeds", "timeout_seconds"): "FEED_TIMEOUT_SECONDS",
    ("poll", "interval_seconds"): "POLL_INTERVAL_SECONDS",
    ("storage", "path"): "DATABASE_PATH",
    ("server", "host"): "HOST",
    ("server", "port"): "PORT",
    ("pairing", "partner_url"): "PARTNER_URL",
    ("pairing", "secret"): "PING_SECRET",
    ("pairing", "primary"): "IS_PRIMARY",
    ("pairing", "delay_seconds"): "PING_DELAY_SECONDS",
}


def _read_yaml(path: str | Path) -> tuple[dict[str, Any], Path]:
    config_path = Path(path).expanduser().resolve()
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        parsed = yaml.safe_load(handle) or {}

    if not isinstance(parsed, dict):
        raise ConfigError("Config root must be a mapping")
    return parsed, config_path.parent


def _resolve_relative_path(base_dir: Path, raw_path: str) -> str:
    candidate = Path(raw_path).expanduser()
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    env = os.environ if environ is None else environ

    parsed: dict[str, Any] = {}
    base_dir = Path.cwd()
    if path is not None:
        parsed, base_dir = _read_yaml(path)

    sections = {
        name: _section(parsed, name)
        for name in ("telegram", "feeds", "poll", "storage", "server", "pairing")
    }
    for (section, key), env_var in _ENV_OVERRIDES.items():
        value = env.get(env_var)
        if value is not None and value.strip():
            sections[section][key] = value

    feeds = sections["feeds"]
    feed_urls = _as_string_list(feeds.get("urls"))
    if not feed_urls:
        raise ConfigError(
            "Config must define at least one feed URL "
            "(feeds.urls or ARENA_COLLECTION_API_URL)"
        )
    feed_settings = FeedSettings(
        urls=feed_urls,
        timeout_seconds=_as_int(
            feeds.get("timeout_seconds", 30),
            field_name="feeds.timeout_seconds",
            minimum=1,
        ),
    )

    telegram = sections["telegram"]
    telegram_settings = TelegramSettings(
        bot_token=_as_optional_string(telegram.get("bot_token")),
        chat_id=_as_optional_string(telegram.get("chat_id")),
    )

    poll_settings = PollSettings(
        interval_seconds=_as_int(
            sections["poll"].get("interval_seconds", 60),
            field_name="poll.interval_seconds",
            minimum=1,
        )
    )

    storage_path = (
        _as_optional_string(sections["storage"].get("path")) or "data/arena.sqlite"
    )
    storage_settings = StorageSettings(
        path=_resolve_relative_path(base_dir, storage_path),
    )

    server = sections["server"]
    server_settings = ServerSettings(
        host=_as_optional_string(server.get("host")) or "0.0.0.0",
        port=_as_int(server.get("port", 3000), field_name="server.port", minimum=0),
    )

    pairing = sections["pairing"]
    pairing_settings = PairingSettings(
        partner_url=_as_optional_string(pairing.get("partner_url")),
        secret=_as_optional_string(pairing.get("secret")),
        primary=_as_bool(pairing.get("primary", False), field_name="pairing.primary"),
        delay_seconds=_as_int(
            pairing.get("delay_seconds", 60),
            field_name="pairing.delay_seconds",
            minimum=1,
        ),
    )
    if pairing_settings.partner_url and not pairing_settings.secret:
        raise ConfigError("pairing.secret (PING_SECRET) is required when a partner URL is set")

    log_level = env.get("LOG_LEVEL") or parsed.get("log_level", "INFO")

    return AppConfig(
        feeds=feed_settings,
        telegram=telegram_settings,
        poll=poll_settings,
        storage=storage_settings,
        server=server_settings,
        pairing=pairing_settings,
        log_level=str(log_level).strip().upper() or "INFO",
    )
