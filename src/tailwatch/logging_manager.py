"""Structured logging for the log watcher.

Provides console output, a rotating JSON log of the watcher's own activity,
and a JSONL audit trail of every event the watcher publishes.
"""

import json
import logging
import logging.handlers
from datetime import datetime
from pathlib import Path
from typing import Any

from tailwatch.events.bus import EventBus
from tailwatch.events.models import WatcherEvent

# Attributes every LogRecord has; anything else came in through extra=
_STANDARD_ATTRS = frozenset(
    [
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "exc_info",
        "exc_text",
        "stack_info",
        "asctime",
        "taskName",
        "extras",
    ]
)


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    extras = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_ATTRS:
            continue
        try:
            json.dumps(value)  # Ensure serializable
            extras[key] = value
        except (TypeError, ValueError):
            extras[key] = str(value)
    return extras


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, extra fields included."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        log_obj.update(_extra_fields(record))
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_obj)


class LoggingManager:
    """Configures the ``tailwatch`` logger tree.

    Attributes:
        log_dir: Directory holding ``tailwatch.log`` and ``audit/``.
        log_level: Console log level.
    """

    def __init__(self, log_dir: str | Path = "/tmp/tailwatch_logs", log_level: str = "INFO"):
        """Initialize logging manager.

        Args:
            log_dir: Base directory for all logs
            log_level: Console log level name
        """
        self.log_dir = Path(log_dir)
        self.log_level = getattr(logging, log_level.upper())

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.audit_dir = self.log_dir / "audit"
        self.audit_dir.mkdir(exist_ok=True)

        self._subscriptions: list[tuple[EventBus, str]] = []

        self._setup_watcher_logger()
        self._setup_audit_logger()

        # Let every tailwatch.* module logger defer to the handlers above
        for name in list(logging.Logger.manager.loggerDict.keys()):
            if name.startswith("tailwatch.") and name != "tailwatch.audit":
                child_logger = logging.getLogger(name)
                if isinstance(child_logger, logging.Logger):  # Skip PlaceHolders
                    child_logger.setLevel(logging.NOTSET)
                    child_logger.propagate = True
                    child_logger.handlers.clear()

    def _setup_watcher_logger(self):
        """Setup main logger with console and rotating JSON file handlers."""
        logger = logging.getLogger("tailwatch")
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        logger.handlers.clear()

        console_handler = logging.StreamHandler()
        console_handler.setLevel(self.log_level)
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(console_handler)

        file_handler = logging.handlers.RotatingFileHandler(
            self.log_dir / "tailwatch.log",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JsonLineFormatter())
        logger.addHandler(file_handler)

        self.watcher_logger = logger

    def _setup_audit_logger(self):
        """Setup event audit logger (JSON Lines, daily rotation)."""
        logger = logging.getLogger("tailwatch.audit")
        logger.setLevel(logging.INFO)
        logger.propagate = False
        logger.handlers.clear()

        file_handler = logging.handlers.TimedRotatingFileHandler(
            self.audit_dir / "events.jsonl",
            when="midnight",
            interval=1,
            backupCount=30,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(JsonLineFormatter())
        logger.addHandler(file_handler)

        self.audit_logger = logger

    def log_event(self, event: WatcherEvent) -> None:
        """Write one watcher event to the audit trail."""
        data = event.payload()
        # Record bodies can be large; the audit trail keeps counts only
        if "lines" in data:
            data = {**data, "lines": len(data["lines"])}
        self.audit_logger.info(
            event.event_type,
            extra={
                "event_type": event.event_type,
                "source": event.source,
                "event_timestamp": event.timestamp.isoformat(),
                "data": data,
            },
        )

    def attach(self, bus: EventBus) -> str:
        """Audit every event published on ``bus``.

        Returns:
            The subscription ID.
        """
        subscription_id = bus.subscribe_all(self.log_event)
        self._subscriptions.append((bus, subscription_id))
        return subscription_id

    def shutdown(self) -> None:
        """Detach from buses and close file handlers."""
        for bus, subscription_id in self._subscriptions:
            bus.unsubscribe(subscription_id)
        self._subscriptions.clear()

        for logger in (self.watcher_logger, self.audit_logger):
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)
