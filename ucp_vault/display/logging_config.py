"""Logging configuration setup."""

import copy
import logging
import logging.config
import os
import re
from datetime import datetime
from typing import Any, Optional, Set, Tuple  # noqa: UP035

from ucp_vault.constants import LOG_DIR

# ── Secret redaction filter ──────────────────────────────────────────────

REDACTION_PLACEHOLDER = "***REDACTED***"
MIN_REDACTED_LENGTH = 4


class SecretRedactionFilter(logging.Filter):
    """Scrub credential values out of log records.

    :class:`~ucp_vault.secrets.store.SecretStore` registers every API key,
    OAuth2 token and client secret it resolves from secure storage, so a
    value that leaves the vault through a reference can never reach a log
    file verbatim.  Values shorter than ``MIN_REDACTED_LENGTH`` are ignored;
    they would mangle unrelated text.
    """

    def __init__(self) -> None:
        super().__init__()
        self._values: Set[str] = set()
        self._pattern: Optional["re.Pattern[str]"] = None

    @property
    def registered(self) -> int:
        return len(self._values)

    def register(self, *values: Optional[str]) -> None:
        added = False
        for value in values:
            if value and len(value) >= MIN_REDACTED_LENGTH and value not in self._values:
                self._values.add(value)
                added = True
        if added:
            # Longest first so a key containing another key is replaced whole.
            alternatives = sorted(self._values, key=len, reverse=True)
            self._pattern = re.compile("|".join(re.escape(v) for v in alternatives))

    def clear(self) -> None:
        self._values.clear()
        self._pattern = None

    def _scrub(self, value: Any) -> Any:
        if self._pattern is None or not isinstance(value, str):
            return value
        return self._pattern.sub(REDACTION_PLACEHOLDER, value)

    def filter(self, record: logging.LogRecord) -> bool:
        if self._pattern is None:
            return True
        record.msg = self._scrub(record.msg)
        if isinstance(record.args, dict):
            record.args = {k: self._scrub(v) for k, v in record.args.items()}
        elif isinstance(record.args, tuple):
            record.args = tuple(self._scrub(a) for a in record.args)
        return True


secret_redaction_filter = SecretRedactionFilter()

BASE_LOG_CFG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple_file": {
            "format": ("%(asctime)s - %(name)25s:%(lineno)-4d - " "%(levelname)-7s - %(message)s"),
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
        "console": {
            "format": "%(levelname)-7s %(message)s",
        },
    },
    "handlers": {
        "file_handler": {
            "class": "logging.FileHandler",
            "level": "DEBUG",
            "formatter": "simple_file",
            "filename": "temp_log_name.log",
            "encoding": "utf-8",
        },
        "console_handler": {
            "class": "logging.StreamHandler",
            "level": "WARNING",
            "formatter": "console",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "ucp_vault": {
            "handlers": ["file_handler", "console_handler"],
            "propagate": False,
            "level": "INFO",
        },
    },
    "root": {
        "handlers": ["file_handler"],
        "level": "WARNING",
    },
}


def setup_logging(log_lvl_str: str, *, log_dir: str = LOG_DIR) -> Tuple[str, str]:
    """
    Set up the logging system.

    Uses a timestamped log file under *log_dir* and applies the requested
    level to the ``ucp_vault`` logger tree.

    Args:
        log_lvl_str: The desired log level string (e.g., 'debug', 'info').
        log_dir: Directory for log files.

    Returns:
        A tuple of (log_file_path, validated_log_level).
    """
    log_lvl_valid = log_lvl_str.upper()
    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if log_lvl_valid not in valid_levels:
        log_lvl_valid = "INFO"

    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    os.makedirs(log_dir, exist_ok=True)
    log_fpath = os.path.join(log_dir, f"ucp_vault_{ts}_{log_lvl_valid}.log")

    log_cfg: dict = copy.deepcopy(BASE_LOG_CFG)
    log_cfg["handlers"]["file_handler"]["filename"] = log_fpath
    log_cfg["loggers"]["ucp_vault"]["level"] = log_lvl_valid
    log_cfg["root"]["level"] = log_lvl_valid if log_lvl_valid == "DEBUG" else "WARNING"

    logging.config.dictConfig(log_cfg)
    # Handlers are attached to the package logger, not root.
    for handler in logging.getLogger("ucp_vault").handlers + logging.root.handlers:
        handler.addFilter(secret_redaction_filter)
    logging.getLogger(__name__).debug(
        "Logging initialized. Level: %s, log file: %s", log_lvl_valid, log_fpath
    )
    return log_fpath, log_lvl_valid
