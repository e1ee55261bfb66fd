"""
Logging utilities for the FastAPI application.

Provides a consistent logging format and keeps bearer credentials out of the
emitted lines.
"""

import logging
import re
import sys

_BEARER_PATTERN = re.compile(r"(?i)(bearer\s+)[A-Za-z0-9\-._~+/]+=*")


class BearerTokenFilter(logging.Filter):
    """Scrub ``Bearer <token>`` fragments from formatted log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if "earer" in message:
            scrubbed = _BEARER_PATTERN.sub(r"\1[redacted]", message)
            if scrubbed != message:
                record.msg = scrubbed
                record.args = None
        return True


def mask_value(value: str | None, visible: int = 10) -> str:
    """Return a short prefix of a sensitive value suitable for diagnostics."""
    if not value:
        return "none"
    return f"{value[:visible]}..."


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, BearerTokenFilter) for f in handler.filters):
            handler.addFilter(BearerTokenFilter())


__all__ = ["BearerTokenFilter", "configure_logging", "mask_value"]
