# proxy_supervisor/classifier.py
# Version: 1.0.0
# Engine log line classification

"""
Line Classifier

Turns one raw line of engine output into a structured event. The engine
writes logfmt-style records:

    time="2024-05-01T10:00:00.123456789+08:00" level=info msg="..."

Lines that do not carry such a record are reported as unstructured (None).
"""

from dataclasses import dataclass
from typing import Optional

from proxy_supervisor.constants import (
    ENGINE_DEFAULT_LEVEL,
    ENGINE_LOG_LEVELS,
    ENGINE_LOG_PATTERN,
)


@dataclass(frozen=True)
class LogEvent:
    """Structured view of one engine output line"""

    timestamp: Optional[str]
    level: int
    message: str

    def render(self) -> str:
        """Text used when the event is re-emitted as a log record"""
        if self.timestamp:
            return f"{self.timestamp} {self.message}"
        return self.message


def map_level(token: str) -> int:
    """Map an engine level token to a logging level, INFO when unknown"""
    return ENGINE_LOG_LEVELS.get(token, ENGINE_DEFAULT_LEVEL)


def classify(line: str) -> Optional[LogEvent]:
    """
    Classify a raw engine output line

    Args:
        line: One line of engine output, without its line terminator

    Returns:
        LogEvent if the line contains a structured record, None otherwise
    """
    match = ENGINE_LOG_PATTERN.search(line)
    if match is None:
        return None

    time_base, millis, offset, level, message = match.groups()
    return LogEvent(
        timestamp=f"{time_base}.{millis}{offset}",
        level=map_level(level),
        message=message,
    )


def unstructured_event(line: str) -> LogEvent:
    """Event for a line passed through verbatim"""
    return LogEvent(timestamp=None, level=ENGINE_DEFAULT_LEVEL, message=line)
