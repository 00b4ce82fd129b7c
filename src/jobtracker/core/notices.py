from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Literal

NoticeLevel = Literal["success", "error", "info"]


@dataclass(frozen=True, slots=True)
class Notice:
    text: str
    level: NoticeLevel = "info"


class NoticeBoard:
    """Holds the single transient status message shown to the user.

    Posting a notice replaces the previous one and schedules it to disappear
    after ``delay_sec`` on the running event loop.
    """

    def __init__(self, delay_sec: float):
        self.delay_sec = delay_sec
        self.current: Notice | None = None
        self._handle: asyncio.TimerHandle | None = None

    def post(self, text: str, level: NoticeLevel = "info") -> Notice:
        self._cancel_timer()
        notice = Notice(text=text, level=level)
        self.current = notice

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # no loop to clear it from; the next post or clear() replaces it
            return notice

        self._handle = loop.call_later(self.delay_sec, self._expire, notice)
        return notice

    def clear(self) -> None:
        self._cancel_timer()
        self.current = None

    def _expire(self, notice: Notice) -> None:
        if self.current is notice:
            self.current = None
        self._handle = None

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
