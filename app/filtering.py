"""Title and category filtering over the catalog."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from .models import ALL_CATEGORY, CatalogItem

NO_RESULTS_MESSAGE = "No movies found. Try a different search or category."


def filter_catalog(
    items: Sequence[CatalogItem],
    query: str = "",
    category: str = ALL_CATEGORY,
) -> list[CatalogItem]:
    """Return the items matching ``query`` and ``category`` in catalog order.

    ``query`` is a case-insensitive substring of the title; an empty query
    matches every item. ``category`` must equal the item's category exactly
    unless it is the ``"All"`` wildcard.
    """

    needle = (query or "").lower()
    return [
        item
        for item in items
        if (not needle or needle in item.title.lower())
        and (category == ALL_CATEGORY or item.category == category)
    ]


@dataclass(frozen=True)
class FilterCriteria:
    """The inputs of a filter; results are always recomputed from these."""

    query: str = ""
    category: str = ALL_CATEGORY

    @property
    def is_default(self) -> bool:
        return not self.query and self.category == ALL_CATEGORY

    def apply(self, items: Sequence[CatalogItem]) -> "FilterResult":
        return FilterResult(
            criteria=self,
            items=filter_catalog(items, self.query, self.category),
            total=len(items),
        )

    def to_payload(self) -> dict[str, str]:
        return {"query": self.query, "category": self.category}


@dataclass(frozen=True)
class FilterResult:
    criteria: FilterCriteria
    items: list[CatalogItem]
    total: int

    @property
    def is_empty(self) -> bool:
        return not self.items

    def summary(self) -> str:
        """Return the "Showing N of M movies" counter text."""

        return f"Showing {len(self.items)} of {self.total} movies"

    def to_payload(self) -> dict[str, Any]:
        return {
            **self.criteria.to_payload(),
            "items": [item.to_public_payload() for item in self.items],
            "visible": len(self.items),
            "total": self.total,
            "summary": self.summary(),
            "message": NO_RESULTS_MESSAGE if self.is_empty else None,
        }
