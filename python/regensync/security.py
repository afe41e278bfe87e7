"""
Log sanitization for the regensync logger tree.

Request URLs, queued bodies and push payloads are client-controlled and end up
in log messages. ``LogSanitizerFilter`` escapes control characters in string
arguments before a record reaches any handler, so a crafted URL cannot forge
extra log lines.
"""

import logging
import re
from typing import Any

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")
_NEWLINES = re.compile(r"[\r\n]")

MAX_LOG_ARG_LENGTH = 500


def sanitize_for_log(value: Any) -> Any:
    """Escape newlines, drop other control characters and cap the length."""
    if not isinstance(value, str):
        return value
    value = _NEWLINES.sub(lambda m: "\\r" if m.group() == "\r" else "\\n", value)
    value = _CONTROL_CHARS.sub("", value)
    if len(value) > MAX_LOG_ARG_LENGTH:
        value = value[:MAX_LOG_ARG_LENGTH] + "...[truncated]"
    return value


class LogSanitizerFilter(logging.Filter):
    """Sanitizes string ``args`` of every record passing through."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.args, dict):
            record.args = {key: sanitize_for_log(value) for key, value in record.args.items()}
        elif isinstance(record.args, tuple):
            record.args = tuple(sanitize_for_log(arg) for arg in record.args)
        if isinstance(record.msg, str) and not record.args:
            record.msg = sanitize_for_log(record.msg)
        return True


def install_log_sanitizer(root: str = "regensync") -> int:
    """
    Attach ``LogSanitizerFilter`` to ``root`` and every existing child logger.

    Logger filters only see records created on their own logger, so each
    module logger needs its own instance. Returns the number of loggers that
    received a filter; loggers that already have one are skipped.
    """
    names = [root] + [
        name
        for name in list(logging.root.manager.loggerDict)
        if name.startswith(root + ".")
    ]
    installed = 0
    for name in names:
        target = logging.getLogger(name)
        if any(isinstance(f, LogSanitizerFilter) for f in target.filters):
            continue
        target.addFilter(LogSanitizerFilter())
        installed += 1
    return installed
