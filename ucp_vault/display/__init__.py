"""Logging and terminal presentation helpers."""

from ucp_vault.display.logging_config import secret_redaction_filter, setup_logging
from ucp_vault.display.progress import with_progress

__all__ = ["secret_redaction_filter", "setup_logging", "with_progress"]
