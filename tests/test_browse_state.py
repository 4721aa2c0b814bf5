"""
Tests for browse criteria query params and page state.
"""

from marketplace.services.browse_state import BrowseCriteria, PageState


def test_twenty_five_items_ten_per_page():
    items = list(range(25))
    state = PageState.for_results(len(items), current_page=3, items_per_page=10)
    assert state.total_pages == 3
    assert state.slice(items) == [20, 21, 22, 23, 24]


def test_changing_items_per_page_resets_to_first_page():
    state = PageState.for_results(100, current_page=4, items_per_page=10)
    state.change_items_per_page(20)
    assert state.current_page == 1
    assert state.items_per_page == 20


def test_unexpected_items_per_page_falls_back_to_default():
    assert PageState(items_per_page=15).items_per_page == 10
    state = PageState()
    state.change_items_per_page(999)
    assert state.items_per_page == 10


def test_page_beyond_total_resets_to_first():
    state = PageState.for_results(5, current_page=7, items_per_page=10)
    assert state.current_page == 1


def test_empty_results_keep_requested_page():
    state = PageState.for_results(0, current_page=2, items_per_page=10)
    assert state.total_pages == 0
    assert state.slice([]) == []


def test_result_count_change_resets_page():
    state = PageState.for_results(50, current_page=3, items_per_page=10)
    state.set_total(50)
    assert state.current_page == 3
    state.set_total(42)
    assert state.current_page == 1


def test_change_page_only_within_bounds():
    state = PageState.for_results(25, items_per_page=10)
    assert state.change_page(3) is True
    assert state.change_page(4) is False
    assert state.change_page(0) is False
    assert state.current_page == 3


def test_to_dict_shape():
    state = PageState.for_results(25, current_page=2, items_per_page=10)
    assert state.to_dict() == {"total": 25, "totalPages": 3, "currentPage": 2, "limit": 10}


def test_query_args_parse_all_fields():
    criteria = BrowseCriteria.from_query_args({
        "q": " postgres ",
        "category": "databases",
        "sort": "name-desc",
        "view": "viewAll",
        "types": "AI Agents,mcp_server",
        "categories": "Research,Productivity",
        "ratings": "4,5",
        "priceMin": "10",
        "priceMax": "250.5",
        "tags": "ai,web",
        "minStars": "100",
        "official": "true",
        "github": "1",
        "npm": "false",
        "page": "2",
        "limit": "20",
    })
    assert criteria.query == "postgres"
    assert criteria.category == "databases"
    assert criteria.sort == "name_desc"
    assert criteria.view == "viewAll"
    assert criteria.types == ["AI Agents", "mcp_server"]
    assert criteria.categories == ["Research", "Productivity"]
    assert criteria.ratings == [4, 5]
    assert criteria.price_min == 10
    assert criteria.price_max == 250.5
    assert criteria.tags == ["ai", "web"]
    assert criteria.min_stars == 100
    assert criteria.official_only is True
    assert criteria.has_github is True
    assert criteria.has_npm is False
    assert criteria.page == 2
    assert criteria.limit == 20


def test_defaults_are_not_written_back():
    assert BrowseCriteria.from_query_args({}).to_query_args() == {}
    assert BrowseCriteria(page=1, limit=10, sort="popularity").to_query_args() == {}


def test_query_args_write_only_changed_values():
    criteria = BrowseCriteria(query="agent", tags=["ai"], price_max=500, official_only=True, page=2)
    assert criteria.to_query_args() == {
        "q": "agent",
        "tags": "ai",
        "priceMax": "500",
        "official": "true",
        "page": "2",
    }
    assert BrowseCriteria.from_query_args(criteria.to_query_args()) == criteria


def test_invalid_values_fall_back_to_defaults():
    criteria = BrowseCriteria.from_query_args({"view": "grid", "page": "abc", "limit": "15", "priceMin": "x"})
    assert criteria.view == "categorized"
    assert criteria.page == 1
    assert criteria.limit == 10
    assert criteria.price_min == 0


def test_active_filter_count():
    criteria = BrowseCriteria(official_only=True, min_stars=10, tags=["ai", "web"], types=["mcp_server"])
    assert criteria.active_filter_count() == 5


def test_non_finite_numbers_are_ignored():
    criteria = BrowseCriteria.from_query_args({"ratings": "inf,4,nan", "priceMax": "inf", "minStars": "-inf"})
    assert criteria.ratings == [4]
    assert criteria.price_max == 1000
    assert criteria.min_stars == 0
