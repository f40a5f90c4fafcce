"""Selection and password gate for catalog playback."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from ..models import CatalogItem, Episode, Identifier
from .playback import PlaybackPanel, PlaybackStatus

logger = logging.getLogger(__name__)


class GateState(str, Enum):
    IDLE = "idle"
    SELECTED_LOCKED = "selected_locked"
    SELECTED_UNLOCKED = "selected_unlocked"
    PLAYING = "playing"


class ErrorKind(str, Enum):
    WRONG_PASSWORD = "wrong_password"
    ITEM_NOT_FOUND = "item_not_found"
    MEDIA_LOAD_FAILED = "media_load_failed"


ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.WRONG_PASSWORD: "Incorrect password",
    ErrorKind.ITEM_NOT_FOUND: "This title is not in the catalog.",
    ErrorKind.MEDIA_LOAD_FAILED: "The video could not be loaded.",
}


class GateError(Exception):
    """Base class for selection and gate failures."""

    kind: ErrorKind | None = None


class InvalidTransitionError(GateError):
    """Raised when an operation is not allowed in the current state."""


class ItemNotFoundError(GateError):
    kind = ErrorKind.ITEM_NOT_FOUND

    def __init__(self, item_id: object):
        super().__init__(f"Catalog item {item_id!r} not found")
        self.item_id = item_id


class EpisodeNotFoundError(GateError):
    def __init__(self, item_id: object, episode_id: object):
        super().__init__(f"Episode {episode_id!r} not found for item {item_id!r}")
        self.item_id = item_id
        self.episode_id = episode_id


class SelectionGateController:
    """State machine deciding what is selected and whether it may play.

    ``idle`` -> ``selected_locked`` | ``selected_unlocked`` -> ``playing``.
    Series and single titles share the same machine; for series the
    playback source is the selected episode instead of the item url.
    """

    def __init__(self, panel: PlaybackPanel | None = None) -> None:
        self.panel = panel or PlaybackPanel()
        self._state = GateState.IDLE
        self._item: CatalogItem | None = None
        self._episode: Episode | None = None
        self._attempted_password = ""
        self._last_error: ErrorKind | None = None

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def selected_item(self) -> CatalogItem | None:
        return self._item

    @property
    def selected_episode(self) -> Episode | None:
        return self._episode

    @property
    def attempted_password(self) -> str:
        return self._attempted_password

    @property
    def last_error(self) -> ErrorKind | None:
        return self._last_error

    @property
    def unlocked(self) -> bool:
        return self._state in {GateState.SELECTED_UNLOCKED, GateState.PLAYING}

    @property
    def media_url(self) -> str | None:
        """Return the source that playback would bind to right now."""

        if self._episode is not None:
            return self._episode.url
        if self._item is not None:
            return self._item.url
        return None

    def select(self, item: CatalogItem) -> GateState:
        """Target ``item``, replacing whatever was selected before."""

        self.panel.unbind()
        self._item = item
        self._episode = item.first_episode()
        self._attempted_password = ""
        self._last_error = None
        self._state = (
            GateState.SELECTED_LOCKED if item.locked else GateState.SELECTED_UNLOCKED
        )
        return self._state

    def submit_password(self, candidate: str) -> bool:
        """Try to unlock the selected item; wrong guesses never lock out."""

        if self._state is not GateState.SELECTED_LOCKED or self._item is None:
            raise InvalidTransitionError(
                f"Cannot submit a password while {self._state.value}"
            )
        self._attempted_password = candidate
        if self._item.check_password(candidate):
            self._last_error = None
            self._state = GateState.SELECTED_UNLOCKED
            logger.info("Unlocked catalog item %s", self._item.id)
            return True
        self._last_error = ErrorKind.WRONG_PASSWORD
        return False

    def play(self) -> int:
        """Bind the resolved source and (re-)enter the loading state."""

        if not self.unlocked:
            raise InvalidTransitionError(f"Cannot play while {self._state.value}")
        source = self.media_url
        if source is None:  # pragma: no cover - guarded by model validation
            raise InvalidTransitionError("Selected item has no playable source")
        self._state = GateState.PLAYING
        if self._last_error is ErrorKind.MEDIA_LOAD_FAILED:
            self._last_error = None
        return self.panel.bind(source)

    def select_episode(self, episode: Episode | Identifier) -> int:
        """Switch to another episode of the selected series and reload."""

        if not self.unlocked or self._item is None:
            raise InvalidTransitionError(
                f"Cannot change episode while {self._state.value}"
            )
        episode_id = episode.id if isinstance(episode, Episode) else episode
        resolved = self._item.find_episode(episode_id)
        if resolved is None:
            raise EpisodeNotFoundError(self._item.id, episode_id)
        self._episode = resolved
        return self.play()

    def media_ready(self, token: int) -> bool:
        if self._state is not GateState.PLAYING:
            return False
        return self.panel.mark_ready(token)

    def media_failed(self, token: int) -> bool:
        if self._state is not GateState.PLAYING:
            return False
        if not self.panel.mark_failed(token):
            return False
        self._last_error = ErrorKind.MEDIA_LOAD_FAILED
        return True

    def close(self) -> None:
        self.panel.unbind()
        self._state = GateState.IDLE
        self._item = None
        self._episode = None
        self._attempted_password = ""
        self._last_error = None

    @property
    def playback_status(self) -> PlaybackStatus | None:
        if self._state is not GateState.PLAYING:
            return None
        return self.panel.status

    def to_payload(self) -> dict[str, Any]:
        """Return the browser-facing view of the gate state."""

        item_payload = self._item.to_public_payload() if self._item else None
        episode_payload = (
            self._episode.model_dump(mode="json") if self._episode else None
        )
        return {
            "state": self._state.value,
            "unlocked": self.unlocked,
            "item": item_payload,
            "episode": episode_payload,
            "lastError": self._last_error.value if self._last_error else None,
            "errorMessage": (
                ERROR_MESSAGES[self._last_error] if self._last_error else None
            ),
            "playback": (
                self.panel.to_payload() if self._state is GateState.PLAYING else None
            ),
        }
