"""Diagnostics capture for the table engine.

Keeps the most recent log records in a ring buffer so that vetoed deletes,
rolled back mutations and failed requests can be shown to the user or
exported, and announces each record as ``PortalEvent.LOG_RECORD_ADDED``.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from dataclasses import dataclass
from threading import RLock
from typing import Deque, Dict, List, Optional

from .event_bus import EventBus, PortalEvent

__all__ = [
    "LogEntry",
    "LoggingService",
]


@dataclass(frozen=True)
class LogEntry:
    level: str
    name: str
    message: str
    created: float


class _RingBufferHandler(logging.Handler):
    def __init__(self, svc: "LoggingService") -> None:
        super().__init__()
        self._svc = svc

    def emit(self, record: logging.LogRecord) -> None:  # noqa: D401
        self._svc._ingest_record(record)


class LoggingService:
    def __init__(
        self,
        capacity: int = 500,
        *,
        event_bus: EventBus | None = None,
        level: int = logging.INFO,
    ) -> None:
        self._lock = RLock()
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)
        self._event_bus = event_bus
        self._handler = _RingBufferHandler(self)
        self._handler.setLevel(level)
        self._attached: List[logging.Logger] = []
        # Levels set on loggers before attach lowered them, restored on detach
        self._saved_levels: Dict[str, int] = {}

    # Lifecycle --------------------------------------------------------
    def attach(self, *logger_names: str) -> None:
        """Capture records from the named loggers (root logger when none)."""
        for name in logger_names or ("",):
            logger = logging.getLogger(name or None)
            if logger in self._attached:
                continue
            logger.addHandler(self._handler)
            if logger.getEffectiveLevel() > self._handler.level:
                self._saved_levels[logger.name] = logger.level
                logger.setLevel(self._handler.level)
            self._attached.append(logger)

    def detach(self) -> None:
        for logger in self._attached:
            logger.removeHandler(self._handler)
            if logger.name in self._saved_levels:
                logger.setLevel(self._saved_levels.pop(logger.name))
        self._attached.clear()

    # Internal ingestion -----------------------------------------------
    def _ingest_record(self, record: logging.LogRecord) -> None:
        entry = LogEntry(
            level=record.levelname,
            name=record.name,
            message=record.getMessage(),
            created=record.created,
        )
        with self._lock:
            self._entries.append(entry)
        if self._event_bus is not None:
            self._event_bus.publish(
                PortalEvent.LOG_RECORD_ADDED,
                {"level": entry.level, "name": entry.name, "message": entry.message[:120]},
            )

    # Query ------------------------------------------------------------
    def recent(self, limit: Optional[int] = None) -> List[LogEntry]:
        with self._lock:
            data = list(self._entries)
        return data[-limit:] if limit is not None else data

    def filter(
        self, *, level: str | None = None, name_contains: str | None = None
    ) -> List[LogEntry]:
        return [
            e
            for e in self.recent()
            if (not level or e.level == level) and (not name_contains or name_contains in e.name)
        ]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def export_jsonl(self, path: str, *, level: str | None = None) -> int:
        """Write the (optionally level-filtered) entries as JSON Lines.

        Returns number of lines written.
        """
        entries = self.filter(level=level)
        with open(path, "w", encoding="utf-8") as f:
            for e in entries:
                f.write(
                    json.dumps(
                        {"level": e.level, "name": e.name, "message": e.message, "created": e.created},
                        sort_keys=True,
                    )
                    + "\n"
                )
        return len(entries)
