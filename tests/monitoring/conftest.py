"""Shared fixtures for monitoring component tests."""

import pytest

from tailwatch.monitoring.classifier import LineClassifier
from tailwatch.monitoring.models import LogRecord, Severity


@pytest.fixture
def classifier(clock) -> LineClassifier:
    return LineClassifier(clock=clock)


@pytest.fixture
def make_record():
    """Build LogRecord objects with distinct content."""

    def _make(n: int, severity: Severity = Severity.INFO) -> LogRecord:
        return LogRecord(
            content=f"{n} [{severity.value}] message {n}",
            timestamp=n,
            severity=severity,
            fingerprint=f"{n:032x}",
        )

    return _make
