"""Logging configuration loaded from environment variables.

Uses a frozen dataclass for immutable, type-safe settings with validation.
Labels are static metadata attached to every log entry, for example the
deployment environment or the Cloud Run service name.
"""

import logging
import os
from dataclasses import dataclass, field

_VALID_LEVELS = frozenset(("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"))


def _parse_bool(value: str) -> bool:
    """Parse a boolean from an environment string, accepting common truthy values."""
    return value.strip().lower() in ("true", "1", "yes")


def _parse_labels(value: str) -> dict[str, str]:
    """Parse ``key=value`` pairs separated by commas, skipping malformed items."""
    labels: dict[str, str] = {}
    for item in value.split(","):
        key, sep, label = item.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        labels[key] = label.strip()
    return labels


@dataclass(frozen=True)
class Settings:
    """Immutable logging settings populated from environment variables."""

    log_level: str = "INFO"
    labels: dict[str, str] = field(default_factory=dict)
    report_caller: bool = False
    service_name: str = ""

    def __post_init__(self) -> None:
        """Validate settings after initialisation."""
        if self.log_level not in _VALID_LEVELS:
            object.__setattr__(self, "log_level", "INFO")
        if self.service_name and "service" not in self.labels:
            object.__setattr__(self, "labels", {**self.labels, "service": self.service_name})

    @property
    def level(self) -> int:
        return logging.getLevelName(self.log_level)

    @classmethod
    def load(cls) -> "Settings":
        """Create a Settings instance from the current environment variables."""
        return cls(
            log_level=os.environ.get("LOG_LEVEL", "INFO").strip().upper(),
            labels=_parse_labels(os.environ.get("LOG_LABELS", "")),
            report_caller=_parse_bool(os.environ.get("LOG_REPORT_CALLER", "false")),
            service_name=os.environ.get("SERVICE_NAME") or os.environ.get("K_SERVICE", ""),
        )


settings = Settings.load()
