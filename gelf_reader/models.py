"""Decoded GELF message model."""

from dataclasses import dataclass, field
from typing import Any

SEVERITY_NAMES = (
    "EMERGENCY",
    "ALERT",
    "CRITICAL",
    "ERROR",
    "WARNING",
    "NOTICE",
    "INFO",
    "DEBUG",
)


@dataclass
class GELFMessage:
    version: str = ""
    host: str = ""
    short: str = ""
    full: str = ""
    time_unix: float = 0.0
    level: int = 0
    facility: str = ""
    file: str = ""
    line: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        """The full message, or the short one when no full message was sent."""
        return self.full or self.short

    @property
    def severity(self) -> str:
        if 0 <= self.level < len(SEVERITY_NAMES):
            return SEVERITY_NAMES[self.level]
        return "UNKNOWN"

    def to_dict(self) -> dict:
        """Render back to GELF field names, leaving out empty optional fields."""
        entry = {
            "version": self.version,
            "host": self.host,
            "short_message": self.short,
            "timestamp": self.time_unix,
            "level": self.level,
        }
        for key, value in (("full_message", self.full), ("facility", self.facility),
                           ("file", self.file), ("line", self.line)):
            if value:
                entry[key] = value
        for key, value in self.extra.items():
            entry[f"_{key}"] = value
        return entry
