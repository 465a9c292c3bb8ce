"""
Structured key=value logging for the relay.

Wraps the standard library ``logging`` module. Every record carries its
structured fields in the ``structured_kv`` extra, which
[StructuredFormatter][lilrelay.core.logger.StructuredFormatter] renders as
``level logger message key=value ...``. Plain ``logging.getLogger()`` calls
go through the same formatter, so server, access, and event logs share one
shape.

Values containing spaces, equals signs, or quotes are escaped and wrapped in
double quotes. Long values (event content, raw frames) are truncated.

Examples:
    ```python
    from lilrelay.core.logger import Logger

    logger = Logger("relay")
    conn_logger = logger.bind(remote="10.0.0.1:50412")
    conn_logger.info("subscription_opened", sub="feed", filters=2)
    # Output: info relay subscription_opened remote=10.0.0.1:50412 sub=feed filters=2
    ```
"""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any, ClassVar


def _truncate(value: Any, max_value_length: int | None) -> str:
    s = str(value)
    if max_value_length and len(s) > max_value_length:
        return s[:max_value_length] + f"...<truncated {len(s) - max_value_length} chars>"
    return s


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Format a dictionary as space-separated key=value pairs.

    Args:
        kwargs: Key-value pairs to format.
        max_value_length: Maximum characters per value before truncation.
            Pass None to disable truncation.
        prefix: String prepended to the output (default: single space).

    Returns:
        Formatted string, e.g. ``' sub=feed reason="slow consumer"'``, or
        an empty string if *kwargs* is empty.
    """
    if not kwargs:
        return ""

    parts = []
    for k, v in kwargs.items():
        s = _truncate(v, max_value_length)
        if not s or " " in s or "=" in s or '"' in s or "'" in s:
            escaped = s.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{k}="{escaped}"')
        else:
            parts.append(f"{k}={s}")
    return prefix + " ".join(parts)


class StructuredFormatter(logging.Formatter):
    """Render records as ``level logger message key=value ...``.

    Records without ``structured_kv`` (third-party loggers such as uvicorn)
    are emitted with the same prefix and no trailing pairs.
    """

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        extra: dict[str, Any] = getattr(record, "structured_kv", {})
        if extra:
            base += format_kv_pairs(extra)
        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)
        return base


class Logger:
    """Structured logger that appends keyword arguments as extra fields.

    Mirrors the standard logging API with an added ``**kwargs`` parameter.
    [bind()][lilrelay.core.logger.Logger.bind] returns a child logger whose
    fields are prepended to every record, which is how each connection
    tags its lines with its remote address.

    Examples:
        ```python
        logger = Logger("relay")
        logger.info("event_accepted", id="ab12...", kind=1)
        # Output: info relay event_accepted id=ab12... kind=1
        ```
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize a structured logger.

        Args:
            name: Underlying ``logging.getLogger(name)`` name.
            json_output: If True, emit JSON objects instead of key=value pairs.
            max_value_length: Maximum character length for individual values
                before truncation. Defaults to 1000.
            context: Fields attached to every record.
        """
        if max_value_length is None:
            max_value_length = self._DEFAULT_MAX_VALUE_LENGTH
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = max_value_length
        self._context: dict[str, Any] = dict(context or {})

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **kwargs: Any) -> Logger:
        """Return a logger that adds *kwargs* to every record."""
        return Logger(
            self._logger.name,
            json_output=self._json_output,
            max_value_length=self._max_value_length,
            context={**self._context, **kwargs},
        )

    def _format_json(self, msg: str, level: str, kwargs: dict[str, Any]) -> str:
        record = {
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            "level": level,
            "service": self._logger.name,
            "message": msg,
            **kwargs,
        }
        return json.dumps(record, default=str)

    def _make_extra(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        if not kwargs:
            return {}
        return {
            "structured_kv": {k: _truncate(v, self._max_value_length) for k, v in kwargs.items()}
        }

    def _log(self, level: int, msg: str, kwargs: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        fields = {**self._context, **kwargs}
        if self._json_output:
            name = logging.getLevelName(level).lower()
            self._logger.log(level, self._format_json(msg, name, fields), exc_info=exc_info)
        else:
            self._logger.log(level, msg, extra=self._make_extra(fields), exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log a DEBUG level message with optional key=value pairs."""
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log an INFO level message with optional key=value pairs."""
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log a WARNING level message with optional key=value pairs."""
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        """Log an ERROR level message with optional key=value pairs."""
        self._log(logging.ERROR, msg, kwargs)

    def critical(self, msg: str, **kwargs: Any) -> None:
        """Log a CRITICAL level message with optional key=value pairs."""
        self._log(logging.CRITICAL, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log an ERROR level message with the active traceback."""
        self._log(logging.ERROR, msg, kwargs, exc_info=True)
