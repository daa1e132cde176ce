from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class RedactingFormatter(logging.Formatter):
    """Masks secret values (bot token, ping secret) in rendered records."""

    def __init__(self, secrets: list[str], fmt: str, datefmt: str | None = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        # Longest first so a secret containing another is masked whole.
        self._secrets = sorted({secret for secret in secrets if secret}, key=len, reverse=True)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def setup_logging(level: str, secrets: list[str] | None = None) -> None:
    numeric_level = getattr(logging, str(level).upper(), logging.INFO)

    handler = logging.StreamHandler()
    handler.setLevel(numeric_level)
    handler.setFormatter(RedactingFormatter(secrets or [], fmt=LOG_FORMAT, datefmt=DATE_FORMAT))

    logging.basicConfig(level=numeric_level, handlers=[handler], force=True)
    # urllib3 logs full request URLs at DEBUG, including the bot token path.
    logging.getLogger("urllib3").setLevel(max(numeric_level, logging.INFO))
