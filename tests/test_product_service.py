"""ProductService browse / featured / detail tests (catalog loading is monkeypatched)."""

from unittest.mock import MagicMock

import pytest

from marketplace.services import product_repository
from marketplace.services.api_client import MarketplaceApiError
from marketplace.services.browse_state import BrowseCriteria
from marketplace.services.product_repository import ProductRepository
from marketplace.services.product_service import ProductService


def _catalog(count=25):
    categories = ["Databases", "Search", "Dev Tools"]
    return [
        {
            "id": i,
            "name": f"Product {i:02d}",
            "category": categories[i % 3],
            "stars_numeric": i % 6,
            "tags": ["ai"] if i % 2 == 0 else ["cli"],
            "is_featured": i in (4, 9),
        }
        for i in range(1, count + 1)
    ]


@pytest.fixture(autouse=True)
def _reset_repository():
    ProductRepository.refresh_cache()
    ProductRepository.session.clear()
    yield
    ProductRepository.refresh_cache()
    ProductRepository.session.clear()


def test_browse_paginates_after_filtering(monkeypatch):
    monkeypatch.setattr(ProductService, "_load_products", lambda: _catalog())

    result = ProductService.browse(BrowseCriteria(sort="name_asc", page=3, limit=10))

    assert result["pagination"] == {"total": 25, "totalPages": 3, "currentPage": 3, "limit": 10}
    assert [p["id"] for p in result["products"]] == [21, 22, 23, 24, 25]


def test_browse_page_out_of_range_resets(monkeypatch):
    monkeypatch.setattr(ProductService, "_load_products", lambda: _catalog())

    result = ProductService.browse(BrowseCriteria(tags=["ai"], sort="name_asc", page=5, limit=10))

    assert result["pagination"]["total"] == 12
    assert result["pagination"]["currentPage"] == 1
    assert result["query"] == {"tags": "ai", "sort": "name_asc"}


def test_featured_pads_with_most_popular(monkeypatch):
    monkeypatch.setattr(ProductService, "_load_products", lambda: _catalog(12))

    featured = ProductService.get_featured(limit=4)

    assert [p["id"] for p in featured[:2]] == [4, 9]
    assert len(featured) == 4
    assert all(p["stars_numeric"] == 5 for p in featured[2:3])


def test_product_detail_uses_session_cache_and_related(monkeypatch):
    load = MagicMock(return_value=_catalog(9))
    monkeypatch.setattr(ProductService, "_load_products", load)

    first = ProductService.get_product_by_id("3")
    assert first["product"]["name"] == "Product 03"
    # nothing else cached yet, related products come from the catalog
    assert [p["id"] for p in first["related"]] == [6, 9]

    ProductService.get_product_by_id("6")
    calls = load.call_count
    again = ProductService.get_product_by_id("3")
    assert [p["id"] for p in again["related"]] == [6]
    assert load.call_count == calls

    assert ProductService.get_product_by_id("404") is None


def test_repository_failure_returns_empty_without_caching():
    client = MagicMock()
    client.get_products.side_effect = MarketplaceApiError("offline")
    ProductRepository.configure(client)

    assert ProductRepository.load_products() == []
    assert ProductRepository.last_error == "AWS Database connection required. Unable to fetch products."

    client.get_products.side_effect = None
    client.get_products.return_value = {"products": [{"id": 1, "name": "Back"}], "pagination": {"totalPages": 1}}
    assert [p["id"] for p in ProductRepository.load_products()] == [1]
    assert ProductRepository.last_error is None


def test_repository_pages_through_catalog():
    client = MagicMock()
    client.get_products.side_effect = [
        {"products": [{"id": 1}], "pagination": {"totalPages": 2}},
        {"products": [{"id": 2}], "pagination": {"totalPages": 2}},
    ]
    ProductRepository.configure(client)

    products = ProductRepository.load_products(language="pt")

    assert [p["id"] for p in products] == [1, 2]
    assert client.get_products.call_args.kwargs == {"page": 2, "limit": 100, "language": "pt"}
    # cached: no further upstream calls
    ProductRepository.load_products()
    assert client.get_products.call_count == 2


def test_refresh_cache_drops_stale_product_details(monkeypatch):
    catalog = [{"id": 1, "name": "Old name", "category": "Search"}]
    monkeypatch.setattr(ProductService, "_load_products", lambda: catalog)
    assert ProductService.get_product_by_id("1")["product"]["name"] == "Old name"

    catalog[0] = {"id": 1, "name": "New name", "category": "Search"}
    ProductService.refresh_cache()

    assert ProductService.get_product_by_id("1")["product"]["name"] == "New name"


def test_session_cache_expires_with_catalog_cache(monkeypatch):
    clock = [1000.0]
    monkeypatch.setattr(product_repository.time, "monotonic", lambda: clock[0])
    cache = product_repository.SessionCache(max_age=300)
    cache.set("product_1", {"id": 1})

    clock[0] += 299
    assert cache.get("product_1") == {"id": 1}
    clock[0] += 1
    assert cache.get("product_1") is None


def test_cached_product_list_is_capped():
    limit = product_repository.MAX_CACHED_PRODUCTS
    for pid in range(limit + 5):
        ProductRepository.remember_product({"id": pid, "category": "Search"})

    cached = ProductRepository.session.get(product_repository.CUSTOM_PRODUCTS_KEY)
    assert len(cached) == limit
    assert cached[0]["id"] == 5
    assert ProductRepository.get_cached_product(0) is None
    assert ProductRepository.get_cached_product(limit + 4)["id"] == limit + 4
