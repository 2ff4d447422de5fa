"""Turns raw log lines into LogRecord objects."""

from __future__ import annotations

import hashlib
import logging
import re
import time
from collections.abc import Callable

from .errors import MalformedLine
from .models import LogRecord, Severity

logger = logging.getLogger(__name__)

ERROR_MARKER = "[ERROR]"
WARNING_MARKER = "[WARNING]"

_LEADING_DIGITS = re.compile(r"^[0-9]+")
# Longer leading numbers do not fit a 64-bit millisecond timestamp
MAX_TIMESTAMP_DIGITS = 19


def current_millis() -> int:
    """Wall-clock time in unix milliseconds."""
    return int(time.time() * 1000)


class LineClassifier:
    """Classifies one line of text.

    Severity precedence is ERROR, then WARNING, then INFO, regardless of where
    the markers appear in the line. The timestamp is the leading run of digits;
    lines without one get the classification time, so backfilled lines carry
    the time they were read rather than the time they were written. A leading
    number longer than ``MAX_TIMESTAMP_DIGITS`` is treated as no timestamp.

    Attributes:
        clock: Callable returning unix milliseconds.
    """

    def __init__(self, clock: Callable[[], int] = current_millis):
        self.clock = clock

    def classify(self, line: str) -> LogRecord:
        """Build a record for ``line``.

        Raises:
            MalformedLine: If the line is blank or contains a NUL byte.
        """
        if not isinstance(line, str):
            raise MalformedLine(f"Expected text line, got {type(line).__name__}")
        if not line.strip():
            raise MalformedLine("Blank line")
        if "\x00" in line:
            raise MalformedLine("Line contains NUL byte")

        return LogRecord(
            content=line,
            timestamp=self._extract_timestamp(line),
            severity=self._extract_severity(line),
            fingerprint=hashlib.md5(line.encode("utf-8", errors="replace")).hexdigest(),
        )

    def _extract_severity(self, line: str) -> Severity:
        if ERROR_MARKER in line:
            return Severity.ERROR
        if WARNING_MARKER in line:
            return Severity.WARNING
        return Severity.INFO

    def _extract_timestamp(self, line: str) -> int:
        match = _LEADING_DIGITS.match(line)
        if match:
            digits = match.group(0)
            if len(digits) <= MAX_TIMESTAMP_DIGITS:
                return int(digits)
            logger.debug(f"Leading number of {len(digits)} digits is not a timestamp")
        return self.clock()
