"""Structured JSON logging for Google Cloud Logging integration.

Cloud Run captures structured JSON from stdout as Cloud Logging entries,
providing severity levels, labels, and trace correlation automatically.
This module plugs ``StructuredLogFormatter`` into the standard library
``logging`` package.
"""

from __future__ import annotations

import logging
import sys

from opentelemetry import context as otel_context

from gcf_log_formatter.config import Settings, settings as default_settings
from gcf_log_formatter.formatter import StructuredLogFormatter, level_from_levelno
from gcf_log_formatter.models.schemas import Caller, LogEvent

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RESERVED_ATTRS = frozenset(
    (
        "args", "asctime", "created", "exc_info", "exc_text", "filename",
        "funcName", "levelname", "levelno", "lineno", "message", "module",
        "msecs", "msg", "name", "pathname", "process", "processName",
        "relativeCreated", "stack_info", "taskName", "thread", "threadName",
        "otel_context",
    )
)

ERROR_KEY = "error"


class CloudJSONFormatter(logging.Formatter):
    """Formats log records as JSON for Cloud Logging ingestion."""

    def __init__(
        self,
        formatter: StructuredLogFormatter | None = None,
        *,
        report_caller: bool = False,
    ) -> None:
        super().__init__()
        self.formatter = formatter or StructuredLogFormatter()
        self.report_caller = report_caller

    def to_event(self, record: logging.LogRecord) -> LogEvent:
        fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if record.exc_info and record.exc_info[0] is not None:
            fields[ERROR_KEY] = self.formatException(record.exc_info)

        caller = None
        if self.report_caller:
            caller = Caller(function=record.funcName, file=record.pathname, line=record.lineno)

        ctx = getattr(record, "otel_context", None)
        return LogEvent(
            level=level_from_levelno(record.levelno),
            message=record.getMessage(),
            fields=fields,
            context=ctx if ctx is not None else otel_context.get_current(),
            caller=caller,
        )

    def format(self, record: logging.LogRecord) -> str:
        return self.formatter.render(self.to_event(record))


def setup_logging(config: Settings | None = None) -> StructuredLogFormatter:
    config = config or default_settings
    formatter = StructuredLogFormatter(labels=config.labels)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CloudJSONFormatter(formatter, report_caller=config.report_caller))
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(config.level)
    return formatter
