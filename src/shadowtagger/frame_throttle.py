from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable


@dataclass(slots=True)
class FrameThrottle:
    """At most one pending recomputation per frame; a newer request replaces the older one."""

    superseded: int = 0
    _pending: Callable[[], object] | None = field(default=None, repr=False)

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def request(self, callback: Callable[[], object]) -> bool:
        """Schedule ``callback`` for the next frame. Returns ``False`` when it replaced a pending one."""
        replaced = self._pending is not None
        if replaced:
            self.superseded += 1
        self._pending = callback
        return not replaced

    def cancel(self) -> None:
        self._pending = None

    def run_frame(self) -> object | None:
        # cleared first so the callback may schedule the next frame
        callback, self._pending = self._pending, None
        if callback is None:
            return None
        return callback()
