from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.models import Catalog, CatalogItem


def test_catalog_categories_start_with_all(catalog: Catalog) -> None:
    assert catalog.categories == ("All", "Drama", "Comedy", "Anime")


def test_catalog_lookup_accepts_string_identifiers(catalog: Catalog) -> None:
    assert catalog.get("1").title == "Foo"
    assert catalog.get(1).title == "Foo"
    assert catalog.get("series-1").title == "Ghost Stories"
    assert catalog.get("404") is None


def test_catalog_from_payload_accepts_wrapped_lists() -> None:
    catalog = Catalog.from_payload(
        {"movies": [{"id": 1, "title": "A", "category": "X", "url": "a.mp4"}]}
    )

    assert len(catalog) == 1


def test_catalog_rejects_non_list_payload() -> None:
    with pytest.raises(ValueError, match="must be a list"):
        Catalog.from_payload({"movies": "nope"})


def test_catalog_rejects_duplicate_ids() -> None:
    with pytest.raises(ValidationError, match="Duplicate catalog item id"):
        Catalog.from_payload(
            [
                {"id": 1, "title": "A", "category": "X", "url": "a.mp4"},
                {"id": "1", "title": "B", "category": "X", "url": "b.mp4"},
            ]
        )


def test_locked_item_requires_password() -> None:
    with pytest.raises(ValidationError, match="requires a non-empty password"):
        CatalogItem(id=1, title="A", category="X", url="a.mp4", locked=True)
    with pytest.raises(ValidationError, match="requires a non-empty password"):
        CatalogItem(id=1, title="A", category="X", url="a.mp4", locked=True, password="")


def test_password_only_allowed_on_locked_items() -> None:
    with pytest.raises(ValidationError, match="not locked"):
        CatalogItem(id=1, title="A", category="X", url="a.mp4", password="x")


def test_episode_list_must_be_non_empty_and_unique() -> None:
    with pytest.raises(ValidationError, match="empty episode list"):
        CatalogItem(id=1, title="A", category="X", episodes=[])
    with pytest.raises(ValidationError, match="duplicate episode id"):
        CatalogItem(
            id=1,
            title="A",
            category="X",
            episodes=[
                {"id": 1, "title": "One", "url": "1.mp4"},
                {"id": 1, "title": "Again", "url": "2.mp4"},
            ],
        )


def test_item_without_episodes_needs_url() -> None:
    with pytest.raises(ValidationError, match="needs a url"):
        CatalogItem(id=1, title="A", category="X")


def test_password_check_is_exact(catalog: Catalog) -> None:
    item = catalog.get(2)

    assert item.check_password("x")
    assert not item.check_password("X")
    assert not item.check_password(" x")
    assert not catalog.get(1).check_password("")


def test_public_payload_hides_password(catalog: Catalog) -> None:
    payload = catalog.get("series-1").to_public_payload()

    assert "password" not in payload
    assert payload["locked"] is True
    assert [episode["id"] for episode in payload["episodes"]] == [1, 2]
    assert "episodes" not in catalog.get(1).to_public_payload()


def test_password_not_in_repr(catalog: Catalog) -> None:
    assert "abc" not in repr(catalog.get("series-1"))


def test_find_episode(catalog: Catalog) -> None:
    series = catalog.get("series-1")

    assert series.is_series
    assert series.first_episode().id == 1
    assert series.find_episode("2").title == "Episode 2"
    assert series.find_episode(9) is None
    assert catalog.get(1).first_episode() is None
