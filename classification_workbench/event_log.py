"""
Append-only event log for workbench actions.
"""

import logging
import threading
from datetime import datetime
from typing import Iterator, List, Optional, Tuple

from .models.data_models import LogEntry, LogKind


logger = logging.getLogger(__name__)

_LEVELS = {
    LogKind.INFO: logging.INFO,
    LogKind.SUCCESS: logging.INFO,
    LogKind.ERROR: logging.ERROR,
}


class EventLog:
    """
    Timestamped, typed, append-only log.

    Entries are kept in arrival order with non-decreasing timestamps and are
    mirrored to the standard ``logging`` module.
    """

    def __init__(self, logger_name: Optional[str] = None):
        self._entries: List[LogEntry] = []
        self._lock = threading.Lock()
        self._logger = logging.getLogger(logger_name) if logger_name else logger

    def append(self, message: str, kind: LogKind = LogKind.INFO) -> LogEntry:
        """
        Append an entry.

        Args:
            message: Human-readable message
            kind: Entry kind

        Returns:
            The stored entry
        """
        kind = LogKind(kind)
        with self._lock:
            timestamp = datetime.now()
            if self._entries and timestamp < self._entries[-1].timestamp:
                # wall clock stepped backwards
                timestamp = self._entries[-1].timestamp
            entry = LogEntry(message=message, kind=kind, timestamp=timestamp)
            self._entries.append(entry)

        self._logger.log(_LEVELS[kind], f"[{kind.value}] {message}")
        return entry

    def info(self, message: str) -> LogEntry:
        return self.append(message, LogKind.INFO)

    def success(self, message: str) -> LogEntry:
        return self.append(message, LogKind.SUCCESS)

    def error(self, message: str) -> LogEntry:
        return self.append(message, LogKind.ERROR)

    def entries(self) -> Tuple[LogEntry, ...]:
        """Full history in arrival order."""
        with self._lock:
            return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self.entries())
