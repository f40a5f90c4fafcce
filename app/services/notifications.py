"""Auto-dismissing notifications and explicit-close modal popups."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Callable, Literal, Protocol

NotificationKind = Literal["info", "success", "error"]
ClickTarget = Literal["backdrop", "content", "button"]

DEFAULT_NOTIFICATION_SECONDS = 3.0


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Minimal timer capability used by :class:`Notifier`."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...

    def time(self) -> float: ...


class LoopScheduler:
    """Schedule callbacks on the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self._resolve_loop().call_later(delay, callback)

    def time(self) -> float:
        return self._resolve_loop().time()


@dataclass(frozen=True, eq=False)
class Notification:
    kind: NotificationKind
    title: str
    message: str
    shown_at: float
    duration: float

    @property
    def expires_at(self) -> float:
        return self.shown_at + self.duration

    def to_payload(self, now: float) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "title": self.title,
            "message": self.message,
            "expiresIn": max(0.0, round(self.expires_at - now, 3)),
        }


class Notifier:
    """Shows at most one notification and owns its dismissal timer.

    Showing a notification replaces the current one and cancels its timer.
    The timer is released on every exit path: expiry, explicit dismissal,
    replacement and :meth:`close`.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        duration: float = DEFAULT_NOTIFICATION_SECONDS,
    ) -> None:
        if duration <= 0:
            raise ValueError("Notification duration must be positive")
        self._scheduler = scheduler
        self._duration = duration
        self._current: Notification | None = None
        self._handle: TimerHandle | None = None
        self._closed = False

    @property
    def current(self) -> Notification | None:
        return self._current

    @property
    def closed(self) -> bool:
        return self._closed

    def show(self, kind: NotificationKind, title: str, message: str) -> Notification:
        if self._closed:
            raise RuntimeError("Notifier has been closed")
        self._release_timer()
        notification = Notification(
            kind=kind,
            title=title,
            message=message,
            shown_at=self._scheduler.time(),
            duration=self._duration,
        )
        self._current = notification
        self._handle = self._scheduler.call_later(
            self._duration, partial(self._expire, notification)
        )
        return notification

    def info(self, title: str, message: str) -> Notification:
        return self.show("info", title, message)

    def success(self, title: str, message: str) -> Notification:
        return self.show("success", title, message)

    def error(self, title: str, message: str) -> Notification:
        return self.show("error", title, message)

    def dismiss(self) -> None:
        self._release_timer()
        self._current = None

    def close(self) -> None:
        """Tear down: cancel any pending dismissal and refuse further shows."""

        self.dismiss()
        self._closed = True

    def _expire(self, notification: Notification) -> None:
        # A replaced notification's callback must not clear its successor.
        if self._current is not notification:
            return
        self._current = None
        self._handle = None

    def _release_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def to_payload(self) -> dict[str, Any] | None:
        if self._current is None:
            return None
        return self._current.to_payload(self._scheduler.time())

    def __enter__(self) -> "Notifier":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class PopupName(str, Enum):
    WELCOME = "welcome"
    FEATURE = "feature"
    INFO = "info"


class PopupBoard:
    """Independent modal overlays that only ever close on user action."""

    def __init__(self) -> None:
        self._open: dict[PopupName, bool] = {name: False for name in PopupName}

    def is_open(self, name: PopupName) -> bool:
        return self._open[name]

    def open(self, name: PopupName) -> None:
        self._open[name] = True

    def close(self, name: PopupName, *, target: ClickTarget = "button") -> bool:
        """Handle a close gesture and return whether the popup closed.

        Clicks that originate inside the popup content never reach the
        backdrop handler, so they leave the popup open.
        """

        if target == "content":
            return False
        was_open = self._open[name]
        self._open[name] = False
        return was_open

    def to_payload(self) -> dict[str, bool]:
        return {name.value: is_open for name, is_open in self._open.items()}
