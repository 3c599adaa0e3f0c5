"""Tagged logger that records the calling file, line and function."""

from __future__ import annotations

import logging
import os
import sys
from enum import IntEnum

_LOG = logging.getLogger(__name__)


class Urgency(IntEnum):
    INFO = 0
    WARN = 1
    ERROR = 2
    FATAL = 3


_NAMES = {
    Urgency.INFO: "INFO",
    Urgency.WARN: "WARNING",
    Urgency.ERROR: "ERROR",
    Urgency.FATAL: "FATAL",
}

_LEVELS = {
    Urgency.INFO: logging.INFO,
    Urgency.WARN: logging.WARNING,
    Urgency.ERROR: logging.ERROR,
    Urgency.FATAL: logging.CRITICAL,
}


class FatalLogError(RuntimeError):
    """Raised after a message is logged with FATAL urgency."""


def urgency_name(urgency: int) -> str:
    try:
        return _NAMES[Urgency(urgency)]
    except ValueError:
        return "UNKNOWN_URGENCY"


class Logger:
    """Logger that prefixes messages with an id, urgency and call site."""

    def __init__(self, id: str, enabled: bool = True) -> None:
        self.id = id
        self.enabled = enabled

    def ulogf(self, caller_depth: int, urgency: int, format: str, *args: object) -> None:
        """Log a printf-style message; ``caller_depth`` 0 is this method."""
        if not self.enabled:
            return
        try:
            frame = sys._getframe(caller_depth)
            file = os.path.basename(frame.f_code.co_filename)
            line = frame.f_lineno
            fn_name = frame.f_code.co_name + "()"
        except ValueError:
            file, line, fn_name = "?", 0, "?()"

        msg = format % args if args else format
        prefix = f"[{self.id}] {urgency_name(urgency)} {file}:{line} {fn_name} : "
        try:
            level = _LEVELS[Urgency(urgency)]
        except ValueError:
            level = logging.INFO
        _LOG.log(level, prefix + msg)
        if urgency == Urgency.FATAL:
            raise FatalLogError("Log was used with FATAL")

    def info(self, format: str, *args: object) -> None:
        self.ulogf(2, Urgency.INFO, format, *args)

    def warning(self, format: str, *args: object) -> None:
        self.ulogf(2, Urgency.WARN, format, *args)

    def error(self, format: str, *args: object) -> None:
        self.ulogf(2, Urgency.ERROR, format, *args)

    def fatal(self, format: str, *args: object) -> None:
        self.ulogf(2, Urgency.FATAL, format, *args)