from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from opentelemetry.context import Context
from pydantic import BaseModel, ConfigDict, Field

TRACE_KEY = "logging.googleapis.com/trace"
SPAN_ID_KEY = "logging.googleapis.com/spanId"


class Level(str, Enum):
    """Log levels, most severe first."""

    PANIC = "panic"
    FATAL = "fatal"
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"
    TRACE = "trace"


class Severity(str, Enum):
    DEFAULT = "Default"
    DEBUG = "Debug"
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"
    ALERT = "Alert"
    EMERGENCY = "Emergency"


@dataclass(frozen=True)
class Caller:
    """Source location of the logging call."""

    function: str
    file: str
    line: int

    def __bool__(self) -> bool:
        return bool(self.function or self.file)


@dataclass
class LogEvent:
    level: Level
    message: str = ""
    fields: dict[str, Any] = field(default_factory=dict)
    context: Context | None = None
    caller: Caller | None = None


class OutputRecord(BaseModel):
    """One Cloud Logging structured entry."""

    model_config = ConfigDict(populate_by_name=True)

    severity: str = ""
    trace: str = Field(default="", alias=TRACE_KEY)
    span_id: str = Field(default="", alias=SPAN_ID_KEY)
    labels: dict[str, str] = Field(default_factory=dict)
    json_payload: dict[str, Any] = Field(default_factory=dict, alias="jsonPayload")

    def to_wire(self) -> dict[str, Any]:
        """Return the wire mapping, leaving out empty optional keys."""
        wire: dict[str, Any] = {}
        if self.severity:
            wire["severity"] = self.severity
        if self.trace:
            wire[TRACE_KEY] = self.trace
        if self.span_id:
            wire[SPAN_ID_KEY] = self.span_id
        if self.labels:
            wire["labels"] = self.labels
        wire["jsonPayload"] = self.json_payload
        return wire
