"""Dual-sink logging for probe runners.

Every message is stored as a structured ``TestLogEntry`` for the result and
forwarded to a process logger under a ``[Runner:application]`` prefix for
operational tailing. Registered secrets are masked in both sinks.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from app_probe.models.result import LogLevel, LogSource, TestLogEntry

REDACTED = "***"

LEVELS: Mapping[LogLevel, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(kw_only=True)
class ProbeLog:
    """Collects structured log entries for one probe invocation."""

    logger: logging.Logger
    prefix: str
    entries: list[TestLogEntry] = field(default_factory=list)
    _secrets: set[str] = field(default_factory=set, repr=False)

    def register_secret(self, value: str) -> None:
        """Mask ``value`` in every message recorded from now on."""
        if value:
            self._secrets.add(value)

    def redact(self, text: str) -> str:
        """Replace registered secrets in ``text``."""
        # Longest first so a secret containing another is fully masked.
        for secret in sorted(self._secrets, key=len, reverse=True):
            text = text.replace(secret, REDACTED)
        return text

    def redact_value(self, value: Any) -> Any:
        """Redact strings nested anywhere inside ``value``."""
        if isinstance(value, str):
            return self.redact(value)
        if isinstance(value, Mapping):
            return {str(k): self.redact_value(v) for k, v in value.items()}
        if isinstance(value, Sequence | set):
            return [self.redact_value(v) for v in value]
        return value

    def log(
        self,
        level: LogLevel,
        message: str,
        data: Mapping[str, Any] | None = None,
        *,
        source: LogSource = "test-runner",
    ) -> None:
        """Record an entry and forward it to the process logger."""
        message = self.redact(message)
        if data is not None:
            data = self.redact_value(data)

        self.entries.append(
            TestLogEntry(
                timestamp=datetime.now(timezone.utc),
                level=level,
                message=message,
                data=data,
                source=source,
            )
        )

        if data:
            self.logger.log(LEVELS[level], "%s %s %s", self.prefix, message, data)
        else:
            self.logger.log(LEVELS[level], "%s %s", self.prefix, message)

    def debug(
        self,
        message: str,
        data: Mapping[str, Any] | None = None,
        *,
        source: LogSource = "test-runner",
    ) -> None:
        """Record a debug entry."""
        self.log("debug", message, data, source=source)

    def info(
        self,
        message: str,
        data: Mapping[str, Any] | None = None,
        *,
        source: LogSource = "test-runner",
    ) -> None:
        """Record an info entry."""
        self.log("info", message, data, source=source)

    def warning(
        self,
        message: str,
        data: Mapping[str, Any] | None = None,
        *,
        source: LogSource = "test-runner",
    ) -> None:
        """Record a warning entry."""
        self.log("warn", message, data, source=source)

    def error(
        self,
        message: str,
        data: Mapping[str, Any] | None = None,
        *,
        source: LogSource = "test-runner",
    ) -> None:
        """Record an error entry."""
        self.log("error", message, data, source=source)


def error_data(exc: BaseException) -> dict[str, str]:
    """Describe an exception for structured log data."""
    return {"error": str(exc), "type": type(exc).__name__}
