"""
Access logging for dispatched requests.

One record per request on the ``heron.access`` logger, carrying the client
address, verb, normalized route path, status and elapsed time both in the
message and as ``extra`` fields on the ``LogRecord``.

Formats:
- ``dev``: color-coded terminal output
- ``structured``: one JSON object per line
- ``combined``: Apache Combined Log Format
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Set, Union


RESET = "\033[0m"

# Upper status bound (exclusive) -> color
_STATUS_BANDS = (
    (300, "\033[32m"),
    (400, "\033[36m"),
    (500, "\033[33m"),
)
_SERVER_ERROR = "\033[31m"
_CLIENT = "\033[35m"
_PLAIN = "\033[37m"

_VERB_COLORS = {
    "GET": "\033[32m",
    "POST": "\033[34m",
    "PUT": "\033[33m",
    "PATCH": "\033[33m",
    "DELETE": "\033[31m",
}

# Upper duration bound in ms (exclusive) -> color
_DURATION_BANDS = (
    (200.0, "\033[2m"),
    (1000.0, "\033[33m"),
)


def _band(value: float, bands, fallback: str) -> str:
    for bound, color in bands:
        if value < bound:
            return color
    return fallback


class AccessLogFormatter:
    """Pluggable formatter for access log lines."""

    def format_request(
        self,
        *,
        client: str,
        method: str,
        path: str,
        status: int,
        duration_ms: float,
        content_length: int = 0,
    ) -> str:
        raise NotImplementedError


class CombinedLogFormatter(AccessLogFormatter):
    """Apache Combined Log Format."""

    def format_request(self, **kwargs: Any) -> str:
        stamp = datetime.now(timezone.utc).strftime("%d/%b/%Y:%H:%M:%S %z")
        request_line = f'{kwargs["method"]} {kwargs["path"]} HTTP/1.1'
        size = kwargs.get("content_length", 0)
        return (
            f'{kwargs["client"]} - - [{stamp}] "{request_line}" '
            f'{kwargs["status"]} {size} {kwargs["duration_ms"]:.1f}ms'
        )


class StructuredLogFormatter(AccessLogFormatter):
    """One JSON object per request."""

    def format_request(self, **kwargs: Any) -> str:
        payload = dict(
            timestamp=datetime.now(timezone.utc).isoformat(),
            client=kwargs["client"],
            method=kwargs["method"],
            path=kwargs["path"],
            status=kwargs["status"],
            duration_ms=round(kwargs["duration_ms"], 2),
            content_length=kwargs.get("content_length", 0),
        )
        return json.dumps(payload, default=str)


class DevLogFormatter(AccessLogFormatter):
    """Colored single-line output for a terminal."""

    def format_request(self, **kwargs: Any) -> str:
        verb = kwargs["method"]
        status = kwargs["status"]
        elapsed = kwargs["duration_ms"]

        verb_part = f'{_VERB_COLORS.get(verb, _PLAIN)}{verb:7}{RESET}'
        status_part = f'{_band(status, _STATUS_BANDS, _SERVER_ERROR)}({status}){RESET}'
        elapsed_part = f'{_band(elapsed, _DURATION_BANDS, _SERVER_ERROR)}+{elapsed:.0f}ms{RESET}'
        return f'{_CLIENT}{kwargs["client"]}{RESET}: {verb_part} {kwargs["path"]} {status_part} {elapsed_part}'


FORMATTERS = {
    "combined": CombinedLogFormatter,
    "structured": StructuredLogFormatter,
    "dev": DevLogFormatter,
}


class AccessLog:
    """
    Emits one access record per dispatched request.

    Args:
        logger_name: Logger name (default "heron.access")
        format: "dev", "structured", "combined" or a formatter instance
        level: Log level for ordinary requests
        error_level: Log level for 5xx responses
        slow_threshold_ms: Requests slower than this are logged as warnings
        skip_paths: Route paths that are never logged
        enabled: Turn the whole log off
    """

    def __init__(
        self,
        logger_name: str = "heron.access",
        format: Union[str, AccessLogFormatter] = "dev",
        level: int = logging.INFO,
        error_level: int = logging.ERROR,
        slow_threshold_ms: float = 1000.0,
        skip_paths: Optional[Set[str]] = None,
        enabled: bool = True,
    ):
        self.logger = logging.getLogger(logger_name)
        self.enabled = enabled
        self._level = level
        self._error_level = error_level
        self._slow_threshold = slow_threshold_ms
        self._skip_paths = skip_paths or set()

        if isinstance(format, str):
            self._formatter = FORMATTERS.get(format, DevLogFormatter)()
        else:
            self._formatter = format

    def record(
        self,
        *,
        client: Optional[str],
        method: str,
        path: str,
        status: int,
        duration_ms: float,
        content_length: int = 0,
    ) -> None:
        if not self.enabled or path in self._skip_paths:
            return

        client = client or "-"
        line = self._formatter.format_request(
            client=client,
            method=method,
            path=path,
            status=status,
            duration_ms=duration_ms,
            content_length=content_length,
        )
        extra = {
            "client": client,
            "method": method,
            "path": path,
            "status": status,
            "duration_ms": round(duration_ms, 3),
        }

        if status >= 500:
            self.logger.log(self._error_level, line, extra=extra)
        elif duration_ms > self._slow_threshold:
            self.logger.warning(f"SLOW {line}", extra=extra)
        else:
            self.logger.log(self._level, line, extra=extra)


def setup_logging(level: str = "info") -> None:
    """Configure root logging the way ``heron serve`` does."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


__all__ = [
    "AccessLog",
    "AccessLogFormatter",
    "CombinedLogFormatter",
    "StructuredLogFormatter",
    "DevLogFormatter",
    "setup_logging",
]
