"""Transient admin notices that dismiss themselves after a few seconds."""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from storefront.core.settings import settings


class NoticeKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Notice:
    message: str
    kind: NoticeKind
    posted_at: float

    @property
    def is_error(self) -> bool:
        return self.kind is NoticeKind.ERROR


class NoticeBoard:
    """Holds at most one notice; a newer notice replaces the older one."""

    def __init__(
        self,
        *,
        dismiss_after_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.dismiss_after_seconds = (
            settings.notice_dismiss_seconds if dismiss_after_seconds is None else dismiss_after_seconds
        )
        self._clock = clock
        self._notice: Notice | None = None

    def notify(self, message: str, kind: NoticeKind = NoticeKind.SUCCESS) -> Notice:
        self._notice = Notice(message=message, kind=kind, posted_at=self._clock())
        return self._notice

    def success(self, message: str) -> Notice:
        return self.notify(message, NoticeKind.SUCCESS)

    def error(self, message: str) -> Notice:
        return self.notify(message, NoticeKind.ERROR)

    @property
    def current(self) -> Notice | None:
        notice = self._notice
        if notice is None:
            return None
        if self._clock() - notice.posted_at >= self.dismiss_after_seconds:
            self._notice = None
            return None
        return notice

    def dismiss(self) -> None:
        self._notice = None
