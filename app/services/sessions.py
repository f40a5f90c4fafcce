"""Per-visitor browsing sessions tying filter, gate, playback and notices."""

from __future__ import annotations

import logging
import re
import secrets
import time
from typing import Any, Callable, Literal

from ..filtering import NO_RESULTS_MESSAGE, FilterCriteria, FilterResult
from ..models import ALL_CATEGORY, Catalog, Identifier
from .flags import HAS_VISITED_KEY, FlagStore, VisitorStorage
from .gate import (
    ERROR_MESSAGES,
    ErrorKind,
    GateState,
    ItemNotFoundError,
    SelectionGateController,
)
from .notifications import (
    DEFAULT_NOTIFICATION_SECONDS,
    ClickTarget,
    LoopScheduler,
    Notifier,
    PopupBoard,
    PopupName,
    Scheduler,
)

logger = logging.getLogger(__name__)

SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{16,64}$")

MediaEvent = Literal["ready", "error"]


class BrowsingSession:
    """Everything one visitor has on screen, observed by one notifier."""

    def __init__(
        self,
        session_id: str,
        catalog: Catalog,
        storage: VisitorStorage,
        notifier: Notifier,
        *,
        autoplay: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.id = session_id
        self.catalog = catalog
        self.controller = SelectionGateController()
        self.notifier = notifier
        self.popups = PopupBoard()
        self.criteria = FilterCriteria()
        self._storage = storage
        self._autoplay = autoplay
        self._clock = clock
        self.last_seen = clock()
        self.view_id: str | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        """Show the welcome popup to first-time visitors."""

        if await self._storage.get(HAS_VISITED_KEY) is None:
            self.popups.open(PopupName.WELCOME)

    def touch(self) -> None:
        self.last_seen = self._clock()

    def begin_view(self) -> str:
        """Mark a freshly rendered page as the one currently on screen."""

        self.view_id = secrets.token_hex(8)
        return self.view_id

    def current_results(self) -> FilterResult:
        return self.criteria.apply(self.catalog.items)

    def apply_filter(self, query: str, category: str = ALL_CATEGORY) -> FilterResult:
        criteria = FilterCriteria(query=query, category=category)
        result = criteria.apply(self.catalog.items)
        if criteria != self.criteria:
            self.criteria = criteria
            if criteria.is_default:
                self.notifier.info("Filters cleared", result.summary())
            elif result.is_empty:
                self.notifier.info("No results", NO_RESULTS_MESSAGE)
            else:
                self.notifier.info("Filter applied", result.summary())
        return result

    def clear_filters(self) -> FilterResult:
        return self.apply_filter("", ALL_CATEGORY)

    def select(self, item_id: Identifier) -> GateState:
        item = self.catalog.get(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        state = self.controller.select(item)
        if state is GateState.SELECTED_LOCKED:
            self.notifier.info(
                "Password required",
                f"{item.title} is locked. Please enter the password to continue.",
            )
        elif self._autoplay:
            self.controller.play()
        return self.controller.state

    def submit_password(self, candidate: str) -> bool:
        granted = self.controller.submit_password(candidate)
        if granted:
            self.notifier.success("Access granted", f"Enjoy {self._now_playing()}.")
            if self._autoplay:
                self.controller.play()
        else:
            self.notifier.error(
                "Access denied", ERROR_MESSAGES[ErrorKind.WRONG_PASSWORD]
            )
        return granted

    def play(self) -> int:
        return self.controller.play()

    def select_episode(self, episode_id: Identifier) -> int:
        return self.controller.select_episode(episode_id)

    def report_media(self, token: int, event: MediaEvent) -> bool:
        """Apply a video element signal; stale signals are dropped."""

        if event == "ready":
            applied = self.controller.media_ready(token)
            if applied:
                self.notifier.success("Ready", f"{self._now_playing()} is ready to play.")
        else:
            applied = self.controller.media_failed(token)
            if applied:
                self.notifier.error(
                    "Playback error", ERROR_MESSAGES[ErrorKind.MEDIA_LOAD_FAILED]
                )
        return applied

    def close_player(self) -> None:
        self.controller.close()

    def open_popup(self, name: PopupName) -> None:
        self.popups.open(name)

    async def close_popup(self, name: PopupName, target: ClickTarget = "button") -> bool:
        closed = self.popups.close(name, target=target)
        if closed and name is PopupName.WELCOME:
            await self._storage.set(HAS_VISITED_KEY, "true")
        return closed

    def teardown(self) -> None:
        """Release everything the session holds; safe to call twice."""

        if self._closed:
            return
        self.controller.close()
        self.notifier.close()
        self._closed = True

    def _now_playing(self) -> str:
        item = self.controller.selected_item
        if item is None:
            return "this title"
        episode = self.controller.selected_episode
        if episode is not None:
            return f"{item.title} · {episode.title}"
        return item.title

    def to_payload(self) -> dict[str, Any]:
        return {
            **self.controller.to_payload(),
            "filter": self.criteria.to_payload(),
            "notification": self.notifier.to_payload(),
            "popups": self.popups.to_payload(),
        }


class SessionRegistry:
    """Creates, looks up and expires browsing sessions by visitor id."""

    def __init__(
        self,
        catalog: Catalog,
        flag_store: FlagStore,
        *,
        notification_seconds: float = DEFAULT_NOTIFICATION_SECONDS,
        idle_seconds: float = 1_800,
        autoplay: bool = True,
        scheduler_factory: Callable[[], Scheduler] = LoopScheduler,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.catalog = catalog
        self._flag_store = flag_store
        self._notification_seconds = notification_seconds
        self._idle_seconds = idle_seconds
        self._autoplay = autoplay
        self._scheduler_factory = scheduler_factory
        self._clock = clock
        self._sessions: dict[str, BrowsingSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str | None) -> BrowsingSession | None:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    async def resolve(self, session_id: str | None) -> tuple[BrowsingSession, bool]:
        """Return the visitor's live session, creating one when needed.

        The boolean is ``True`` when a new session was started and the
        visitor cookie should be (re)issued. A returning visitor whose
        session expired keeps their id so their stored flags still apply.
        """

        self.prune()
        existing = self.get(session_id)
        if existing is not None:
            existing.touch()
            return existing, False

        if session_id and SESSION_ID_RE.match(session_id):
            new_id = session_id
        else:
            new_id = secrets.token_urlsafe(24)
        session = BrowsingSession(
            new_id,
            self.catalog,
            VisitorStorage(self._flag_store, new_id),
            Notifier(self._scheduler_factory(), duration=self._notification_seconds),
            autoplay=self._autoplay,
            clock=self._clock,
        )
        await session.start()
        self._sessions[new_id] = session
        logger.info("Started browsing session %s…", new_id[:8])
        return session, True

    def end(self, session_id: str | None) -> bool:
        if not session_id:
            return False
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.teardown()
        logger.info("Ended browsing session %s…", session_id[:8])
        return True

    def prune(self) -> int:
        """Tear down sessions idle for longer than the configured window."""

        now = self._clock()
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if now - session.last_seen > self._idle_seconds
        ]
        for session_id in expired:
            self.end(session_id)
        return len(expired)

    def leave(self, session_id: str | None, view_id: str | None) -> bool:
        """End the session when the page on screen is unloaded.

        Beacons from a page that has already been replaced by another view
        are ignored.
        """

        session = self.get(session_id)
        if session is None or not view_id or session.view_id != view_id:
            return False
        return self.end(session_id)

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.end(session_id)
