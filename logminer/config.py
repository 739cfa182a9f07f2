"""Service configuration read from the environment."""

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s=%r, using %d", name, raw, default)
        return default


def _bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    logger.warning("Invalid boolean for %s=%r, using %s", name, raw, default)
    return default


def _list(env: Mapping[str, str], name: str) -> list[str]:
    raw = env.get(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    """Explicit configuration handed to every component."""
    monitor_enabled: bool = True
    monitor_file: str = "logs/stream.log"
    recipients: list[str] = field(default_factory=list)
    context_lines: int = 6
    window_hours: int = 1
    log_dir: str = "logs"
    transaction_file: str = ""
    search_window_seconds: int = 60
    min_token_length: int = 4
    max_clusters: int = 10
    max_file_size_mb: int = 100
    smtp_host: str = ""
    smtp_port: int = 25
    smtp_sender: str = "log-monitor@localhost"
    webhook_url: str = ""
    log_level: str = "INFO"

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    @property
    def default_transaction_file(self) -> str:
        return self.transaction_file or self.monitor_file

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``env`` (defaults to ``os.environ``)."""
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            monitor_enabled=_bool(env, "LOG_MONITOR_ENABLED", defaults.monitor_enabled),
            monitor_file=env.get("LOG_MONITOR_FILE", defaults.monitor_file),
            recipients=_list(env, "LOG_MONITOR_RECIPIENTS"),
            context_lines=max(0, _int(env, "LOG_MONITOR_CONTEXT_LINES", defaults.context_lines)),
            window_hours=max(1, _int(env, "LOG_MONITOR_WINDOW_HOURS", defaults.window_hours)),
            log_dir=env.get("LOG_DIR", defaults.log_dir),
            transaction_file=env.get("TRANSACTION_LOG_FILE", defaults.transaction_file),
            search_window_seconds=_int(env, "SEARCH_WINDOW_SECONDS", defaults.search_window_seconds),
            min_token_length=_int(env, "MIN_TOKEN_LENGTH", defaults.min_token_length),
            max_clusters=_int(env, "MAX_CLUSTERS", defaults.max_clusters),
            max_file_size_mb=_int(env, "MAX_FILE_SIZE_MB", defaults.max_file_size_mb),
            smtp_host=env.get("SMTP_HOST", defaults.smtp_host),
            smtp_port=_int(env, "SMTP_PORT", defaults.smtp_port),
            smtp_sender=env.get("SMTP_SENDER", defaults.smtp_sender),
            webhook_url=env.get("ALERT_WEBHOOK_URL", defaults.webhook_url),
            log_level=env.get("LOG_LEVEL", defaults.log_level),
        )
