"""Filter engine behaviour tests."""

from __future__ import annotations

from app.filtering import NO_RESULTS_MESSAGE, FilterCriteria, filter_catalog
from app.models import ALL_CATEGORY, Catalog


def _ids(items) -> list[object]:
    return [item.id for item in items]


def test_filter_matches_title_substring_case_insensitively(catalog: Catalog) -> None:
    assert _ids(filter_catalog(catalog.items, "fo", ALL_CATEGORY)) == [1, 3]
    assert _ids(filter_catalog(catalog.items, "FOOT", ALL_CATEGORY)) == [3]


def test_empty_query_and_all_category_is_identity(catalog: Catalog) -> None:
    assert filter_catalog(catalog.items, "", ALL_CATEGORY) == list(catalog.items)


def test_category_requires_exact_equality(catalog: Catalog) -> None:
    assert _ids(filter_catalog(catalog.items, "", "Drama")) == [1, 3]
    assert filter_catalog(catalog.items, "", "drama") == []


def test_query_and_category_are_combined(catalog: Catalog) -> None:
    assert _ids(filter_catalog(catalog.items, "o", "Anime")) == ["series-1", "series-2"]
    assert _ids(filter_catalog(catalog.items, "ghost", "Drama")) == []


def test_query_only_matches_titles(catalog: Catalog) -> None:
    # "Friday" only appears in a description.
    assert filter_catalog(catalog.items, "friday", ALL_CATEGORY) == []


def test_results_are_an_ordered_subset_of_the_catalog(catalog: Catalog) -> None:
    order = {item.id: index for index, item in enumerate(catalog.items)}
    for query, category in [("o", ALL_CATEGORY), ("", "Anime"), ("s", "Drama"), ("zzz", ALL_CATEGORY)]:
        result = filter_catalog(catalog.items, query, category)
        positions = [order[item.id] for item in result]
        assert positions == sorted(positions)
        for item in result:
            assert item in catalog.items
            assert query.lower() in item.title.lower()
            assert category == ALL_CATEGORY or item.category == category


def test_filter_result_reports_counts_and_empty_message(catalog: Catalog) -> None:
    result = FilterCriteria(query="zzz").apply(catalog.items)

    assert result.is_empty
    assert result.summary() == "Showing 0 of 5 movies"
    payload = result.to_payload()
    assert payload["message"] == NO_RESULTS_MESSAGE
    assert payload["items"] == []

    populated = FilterCriteria(category="Drama").apply(catalog.items)
    assert populated.to_payload()["message"] is None
    assert populated.summary() == "Showing 2 of 5 movies"


def test_filter_results_never_expose_passwords(catalog: Catalog) -> None:
    payload = FilterCriteria().apply(catalog.items).to_payload()

    assert all("password" not in item for item in payload["items"])


def test_default_criteria() -> None:
    assert FilterCriteria().is_default
    assert not FilterCriteria(query="a").is_default
    assert not FilterCriteria(category="Drama").is_default
