"""Binding between the selected media source and the browser video element."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class PlaybackStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class PlaybackPanel:
    """Tracks the load status of whatever source is currently bound.

    Every bind hands out a new token. Signals from the video element carry
    the token they were issued for, so a late ``ready``/``error`` for a
    source that has since been replaced is ignored.
    """

    def __init__(self) -> None:
        self._source: str | None = None
        self._status: PlaybackStatus | None = None
        self._token = 0

    @property
    def source(self) -> str | None:
        return self._source

    @property
    def status(self) -> PlaybackStatus | None:
        return self._status

    @property
    def token(self) -> int:
        return self._token

    @property
    def is_bound(self) -> bool:
        return self._source is not None

    def bind(self, source: str) -> int:
        """Point the panel at ``source`` and enter the loading state."""

        self._token += 1
        self._source = source
        self._status = PlaybackStatus.LOADING
        return self._token

    def unbind(self) -> None:
        # The token keeps counting so signals for the old binding stay stale.
        self._source = None
        self._status = None

    def mark_ready(self, token: int) -> bool:
        return self._settle(token, PlaybackStatus.READY)

    def mark_failed(self, token: int) -> bool:
        return self._settle(token, PlaybackStatus.FAILED)

    def _settle(self, token: int, status: PlaybackStatus) -> bool:
        if not self.is_bound or token != self._token:
            logger.debug(
                "Ignoring stale %s signal for token %s (current %s)",
                status.value,
                token,
                self._token,
            )
            return False
        if self._status is not PlaybackStatus.LOADING:
            logger.debug(
                "Ignoring %s signal while playback is %s",
                status.value,
                self._status.value if self._status else None,
            )
            return False
        self._status = status
        return True

    def to_payload(self) -> dict[str, Any] | None:
        if not self.is_bound:
            return None
        return {
            "source": self._source,
            "status": self._status.value if self._status else None,
            "token": self._token,
        }
