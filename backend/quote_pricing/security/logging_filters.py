"""Logging filters that scrub sensitive content."""

from __future__ import annotations

import logging
import re

_SENSITIVE_PATTERN = re.compile(
    r"(?P<scheme>[a-z][a-z0-9+\-.]*://)(?P<user>[^:@/\s]*):(?P<secret>[^@/\s]+)@",
    re.IGNORECASE,
)


def redact(message: str) -> str:
    """Mask passwords embedded in connection URLs."""

    return _SENSITIVE_PATTERN.sub(r"\g<scheme>\g<user>:**REDACTED**@", message)


class SensitiveFilter(logging.Filter):
    """Replace credentials in log messages and arguments with a redaction marker."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(
                redact(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        return True


__all__ = ["SensitiveFilter", "redact"]
