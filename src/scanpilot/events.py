import queue
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class LogEntry:
    summary: str
    details: str
    created_at: int = field(default_factory=lambda: int(time.time()))
    id: str = ""

    def __post_init__(self):
        if not self.id:
            object.__setattr__(self, "id", f"{self.created_at}-{uuid.uuid4()}")

    def timestamp(self) -> str:
        return datetime.fromtimestamp(self.created_at, tz=timezone.utc).strftime(TIME_FORMAT)

    def headline(self) -> str:
        return f"{self.timestamp()} -- {self.summary}"


class LogChannel:
    """
    Unbounded FIFO of (summary, details) pairs from any producer to the UI.
    The UI is the only consumer and drains it without blocking.
    """

    def __init__(self):
        self._queue: "queue.Queue[Tuple[str, str]]" = queue.Queue()

    def emit(self, summary: str, details: str = "") -> None:
        self._queue.put((summary, details))

    def drain(self) -> List[Tuple[str, str]]:
        items = []
        while True:
            try:
                items.append(self._queue.get_nowait())
            except queue.Empty:
                return items

    def get(self, timeout: Optional[float] = None) -> Tuple[str, str]:
        """Blocking read; used by the headless scan command."""
        return self._queue.get(timeout=timeout)


class LogBook:
    """UI-side store of log entries plus the current selection."""

    def __init__(self):
        self.entries: List[LogEntry] = []
        self.selected: Optional[int] = None

    def add(self, summary: str, details: str = "") -> LogEntry:
        entry = LogEntry(summary=summary, details=details)
        self.entries.append(entry)
        if self.selected is None:
            self.selected = 0
        return entry

    def pull(self, channel: LogChannel) -> int:
        pairs = channel.drain()
        for summary, details in pairs:
            self.add(summary, details)
        return len(pairs)

    def selected_entry(self) -> Optional[LogEntry]:
        if self.selected is None or not (0 <= self.selected < len(self.entries)):
            return None
        return self.entries[self.selected]

    def select_next(self) -> None:
        if not self.entries:
            return
        if self.selected is None or self.selected >= len(self.entries) - 1:
            self.selected = 0
        else:
            self.selected += 1

    def select_previous(self) -> None:
        if not self.entries:
            return
        if self.selected is None:
            self.selected = 0
        elif self.selected == 0:
            self.selected = len(self.entries) - 1
        else:
            self.selected -= 1

    def __len__(self) -> int:
        return len(self.entries)
