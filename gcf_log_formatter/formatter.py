"""Google Cloud Logging structured formatter.

Turns a ``LogEvent`` into one line of JSON in the structured-logging
schema that Cloud Run and Cloud Functions parse from stdout:

    {"severity": "Info", "logging.googleapis.com/trace": "...",
     "logging.googleapis.com/spanId": "...", "labels": {...},
     "jsonPayload": {"message": "...", ...}}

A single formatter instance is shared across calls and threads.  Its only
state is the static ``labels`` mapping, which is copied into every record.
"""

from __future__ import annotations

import json
import logging

from opentelemetry import trace
from pydantic import ValidationError

from gcf_log_formatter.models.schemas import Caller, Level, LogEvent, OutputRecord, Severity

_SEVERITY_BY_LEVEL: dict[Level, Severity] = {
    Level.PANIC: Severity.EMERGENCY,
    Level.FATAL: Severity.ALERT,
    Level.ERROR: Severity.ERROR,
    Level.WARN: Severity.WARNING,
    Level.INFO: Severity.INFO,
    Level.DEBUG: Severity.DEBUG,
    Level.TRACE: Severity.DEFAULT,
}


class SerializationError(ValueError):
    """Raised when an event cannot be encoded as JSON."""


def google_severity(level: Level) -> Severity:
    """Map a log level to its Cloud Logging severity, defaulting to ``Default``."""
    try:
        return _SEVERITY_BY_LEVEL[level]
    except (KeyError, TypeError):
        return Severity.DEFAULT


def level_from_levelno(levelno: int) -> Level:
    """Map a stdlib ``logging`` level number onto a ``Level``."""
    if levelno > logging.CRITICAL:
        return Level.PANIC
    if levelno >= logging.CRITICAL:
        return Level.FATAL
    if levelno >= logging.ERROR:
        return Level.ERROR
    if levelno >= logging.WARNING:
        return Level.WARN
    if levelno >= logging.INFO:
        return Level.INFO
    if levelno >= logging.DEBUG:
        return Level.DEBUG
    return Level.TRACE


def _format_exception(caller: Caller) -> str:
    return f"{caller.function}\n\t{caller.file}:{caller.line}\n"


class StructuredLogFormatter:
    """Formats log events for Cloud Logging ingestion."""

    def __init__(self, labels: dict[str, str] | None = None) -> None:
        self.labels: dict[str, str] = dict(labels) if labels else {}

    def levels(self) -> list[Level]:
        return list(Level)

    def build_record(self, event: LogEvent) -> OutputRecord:
        """Build the output record for *event* without serializing it."""
        severity = google_severity(event.level)

        trace_id = span_id = ""
        if event.context is not None:
            span_context = trace.get_current_span(event.context).get_span_context()
            if span_context.is_valid:
                trace_id = trace.format_trace_id(span_context.trace_id)
                span_id = trace.format_span_id(span_context.span_id)

        payload = dict(event.fields)
        payload["message"] = event.message
        if severity is Severity.ERROR and event.caller:
            payload["exception"] = _format_exception(event.caller)

        try:
            return OutputRecord(
                severity=severity.value,
                trace=trace_id,
                span_id=span_id,
                labels=dict(self.labels),
                json_payload=payload,
            )
        except ValidationError as exc:
            raise SerializationError(str(exc)) from exc

    def render(self, event: LogEvent) -> str:
        """Return the JSON text for *event*, without a trailing newline."""
        record = self.build_record(event)
        try:
            return json.dumps(record.to_wire(), separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise SerializationError(str(exc)) from exc

    def format(self, event: LogEvent) -> bytes:
        """Return *event* as a newline-terminated line of UTF-8 JSON."""
        return self.render(event).encode("utf-8") + b"\n"
