"""Pydantic models describing the catalog and API payloads."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .utils import same_identifier

ALL_CATEGORY = "All"

Identifier = int | str


class Episode(BaseModel):
    """A single playable part of a series item."""

    model_config = ConfigDict(frozen=True)

    id: Identifier
    title: str
    url: str
    duration: str | None = None


class CatalogItem(BaseModel):
    """Represents a single title listed in the catalog."""

    model_config = ConfigDict(frozen=True)

    id: Identifier
    title: str
    category: str
    thumbnail: str | None = None
    description: str | None = None
    locked: bool = False
    # Shipped in plaintext with the catalog file; compared verbatim.
    password: str | None = Field(default=None, repr=False)
    url: str | None = None
    episodes: tuple[Episode, ...] | None = None

    @model_validator(mode="after")
    def _check_invariants(self) -> "CatalogItem":
        if self.locked and not self.password:
            raise ValueError(f"Locked item {self.id!r} requires a non-empty password")
        if not self.locked and self.password is not None:
            raise ValueError(f"Item {self.id!r} has a password but is not locked")
        if self.episodes is not None:
            if not self.episodes:
                raise ValueError(f"Item {self.id!r} declares an empty episode list")
            seen: set[str] = set()
            for episode in self.episodes:
                key = str(episode.id)
                if key in seen:
                    raise ValueError(
                        f"Item {self.id!r} has duplicate episode id {episode.id!r}"
                    )
                seen.add(key)
        elif not self.url:
            raise ValueError(f"Item {self.id!r} needs a url or a list of episodes")
        return self

    @property
    def is_series(self) -> bool:
        return self.episodes is not None

    def first_episode(self) -> Episode | None:
        if not self.episodes:
            return None
        return self.episodes[0]

    def find_episode(self, episode_id: Identifier) -> Episode | None:
        """Return the episode matching ``episode_id`` if it belongs to this item."""

        for episode in self.episodes or ():
            if same_identifier(episode.id, episode_id):
                return episode
        return None

    def check_password(self, candidate: str) -> bool:
        """Compare ``candidate`` against the stored password.

        Plain equality: case-sensitive, no normalisation and not
        timing-safe. The password is public to anyone holding the catalog.
        """

        return self.locked and candidate == self.password

    def to_public_payload(self) -> dict[str, Any]:
        """Return the item as sent to browsers, without the password."""

        payload = self.model_dump(mode="json", exclude={"password"})
        if payload.get("episodes") is None:
            payload.pop("episodes", None)
        return payload


class Catalog(BaseModel):
    """Immutable, validated collection of catalog items."""

    model_config = ConfigDict(frozen=True)

    items: tuple[CatalogItem, ...] = ()

    @model_validator(mode="after")
    def _check_unique_ids(self) -> "Catalog":
        seen: set[str] = set()
        for item in self.items:
            key = str(item.id)
            if key in seen:
                raise ValueError(f"Duplicate catalog item id {item.id!r}")
            seen.add(key)
        return self

    @classmethod
    def from_payload(cls, data: object) -> "Catalog":
        """Build a catalog from the decoded JSON data file.

        Accepts either a bare list of items or an object wrapping the list
        under ``items`` or ``movies``.
        """

        if isinstance(data, dict):
            raw_items = data.get("items")
            if raw_items is None:
                raw_items = data.get("movies")
        else:
            raw_items = data
        if not isinstance(raw_items, list):
            raise ValueError("Catalog data must be a list of items")
        return cls.model_validate({"items": raw_items})

    @property
    def categories(self) -> tuple[str, ...]:
        """Return the filter vocabulary, ``"All"`` first then first-seen order."""

        vocabulary = [ALL_CATEGORY]
        for item in self.items:
            if item.category not in vocabulary:
                vocabulary.append(item.category)
        return tuple(vocabulary)

    def get(self, item_id: Identifier) -> CatalogItem | None:
        for item in self.items:
            if same_identifier(item.id, item_id):
                return item
        return None

    def __len__(self) -> int:
        return len(self.items)


class SelectRequest(BaseModel):
    """Payload for ``POST /api/session/select``."""

    model_config = ConfigDict(populate_by_name=True)

    item_id: Identifier = Field(alias="itemId")


class PasswordRequest(BaseModel):
    password: str


class EpisodeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    episode_id: Identifier = Field(alias="episodeId")


class MediaSignalRequest(BaseModel):
    """Signal reported by the browser's video element."""

    token: int
    event: Literal["ready", "error"]


class FilterRequest(BaseModel):
    query: str = ""
    category: str = ALL_CATEGORY


class PopupCloseRequest(BaseModel):
    target: Literal["backdrop", "content", "button"] = "button"
