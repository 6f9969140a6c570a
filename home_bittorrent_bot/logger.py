"""Structured logging configuration using structlog.

Records from structlog and from stdlib loggers (python-telegram-bot, httpx)
share one processor chain and one handler on stdout: JSON lines in
production, colored console output in development.

Secrets are masked twice over. Fields whose name looks sensitive are
replaced outright, and the configured secret values plus anything shaped
like a Bot API token are cut out of every string. The second pass matters
because PTB and httpx put request URLs, which embed the token, into
exception messages and their own log lines.
"""

import logging
import re
import sys
from collections.abc import Iterable
from typing import Any

import structlog
from structlog.types import EventDict, Processor

MASK = "***"

SENSITIVE_KEY_PARTS = ("token", "password", "secret", "authorization", "cookie", "credentials")

# <bot id>:<35 char secret>, as in https://api.telegram.org/bot<token>/getMe
BOT_TOKEN_PATTERN = re.compile(r"(?<!\d)\d{6,}:[A-Za-z0-9_-]{30,}")


class SecretCensor:
    """structlog processor masking secrets in keys and string values.

    Args:
        secrets: Literal values to remove wherever they appear (empty ones are ignored).
    """

    def __init__(self, secrets: Iterable[str] = ()) -> None:
        # Longest first so a secret containing another is masked whole
        self._secrets = sorted({s for s in secrets if s}, key=len, reverse=True)

    def scrub(self, text: str) -> str:
        """Remove known secrets and token-shaped substrings from text."""
        for secret in self._secrets:
            text = text.replace(secret, MASK)
        return BOT_TOKEN_PATTERN.sub(MASK, text)

    def _censor(self, key: str, value: Any) -> Any:
        if any(part in key.lower() for part in SENSITIVE_KEY_PARTS):
            return MASK
        if isinstance(value, str):
            return self.scrub(value)
        if isinstance(value, dict):
            return {k: self._censor(str(k), v) for k, v in value.items()}
        if isinstance(value, list | tuple):
            return [self._censor(key, item) for item in value]
        return value

    def __call__(self, _logger: Any, _method_name: str, event_dict: EventDict) -> EventDict:
        return {key: self._censor(key, value) for key, value in event_dict.items()}


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True,
    secrets: Iterable[str] = (),
) -> None:
    """Configure structlog and route stdlib logging through it.

    Safe to call again once settings are known; the root handler is replaced.

    Args:
        log_level: Standard logging level name.
        json_output: Render JSON lines instead of colored console output.
        secrets: Values to mask in every record, e.g. the bot token.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        SecretCensor(secrets),
    ]

    if json_output:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        # Reconfigured once settings are loaded; loggers must not keep the first chain
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())

    # One INFO line per Bot API call otherwise
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a logger bound to name."""
    return structlog.get_logger(name)
