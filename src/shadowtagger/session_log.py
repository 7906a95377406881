from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable

from .models import SessionEntry

SessionSink = Callable[[SessionEntry], object]

logger = logging.getLogger("shadowtagger.session")


def record_quietly(sink: SessionSink | None, entry: SessionEntry) -> bool:
    """Hand ``entry`` to ``sink``; a failing sink is logged and never reaches the caller."""
    if sink is None:
        return False
    try:
        sink(entry)
    except Exception as exc:
        logger.warning("Session sink failed for %r: %s", entry.selector, exc)
        return False
    return True


@dataclass(slots=True)
class SessionLog:
    sink: SessionSink | None = None
    entries: list[SessionEntry] = field(default_factory=list)

    def record(self, selector: str, shadow_context: dict, url_pattern: str) -> SessionEntry:
        entry = SessionEntry(selector=selector, shadow_context=dict(shadow_context), url_pattern=url_pattern)
        self.entries.append(entry)
        record_quietly(self.sink, entry)
        return entry

    def latest(self) -> SessionEntry | None:
        return self.entries[-1] if self.entries else None

    def to_payload(self) -> list[dict]:
        return [entry.to_payload() for entry in self.entries]

    def clear(self) -> None:
        self.entries.clear()
