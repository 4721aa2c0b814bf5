"""Flask route tests with an injected upstream client (no network)."""

import io
from unittest.mock import MagicMock

import pytest

from config import Config
from marketplace import create_app
from marketplace.services.api_client import MarketplaceApiError
from marketplace.services.news_repository import NewsRepository
from marketplace.services.news_service import NewsService
from marketplace.services.product_repository import ProductRepository


def _catalog():
    return [
        {"id": i, "name": f"Product {i:02d}", "category": "Databases" if i % 2 else "Search",
         "product_type": "mcp_server" if i % 2 else "ai_agent", "stars_numeric": i % 5,
         "tags": ["ai"] if i % 3 == 0 else [], "is_featured": i == 1}
        for i in range(1, 26)
    ]


@pytest.fixture
def upstream(tmp_path, monkeypatch):
    monkeypatch.setattr(Config, "MONGO_URI", "")
    monkeypatch.setattr(NewsRepository, "cache_file", str(tmp_path / "news_data.json"))
    ProductRepository.session.clear()
    client = MagicMock()
    client.get_products.return_value = {"products": _catalog(), "pagination": {"totalPages": 1}}
    client.get_data_status.return_value = {"type": "success", "message": "Connected", "source": "database"}
    client.get_news.side_effect = MarketplaceApiError("offline")
    client.get_featured_products.return_value = {"products": []}
    return client


@pytest.fixture
def http(upstream):
    app = create_app(client=upstream)
    app.config["TESTING"] = True
    return app.test_client()


def test_browse_products_with_criteria(http):
    resp = http.get("/api/v1/products?types=AI%20Agents&sort=name_desc&limit=10")
    body = resp.get_json()

    assert resp.status_code == 200
    assert body["success"] is True
    assert body["pagination"] == {"total": 12, "totalPages": 2, "currentPage": 1, "limit": 10}
    assert body["data"][0]["name"] == "Product 24"
    assert body["data"][0]["type_badge"] == "ai-agent"
    assert body["query"] == {"types": "AI Agents", "sort": "name_desc"}
    assert body["activeFilters"] == 1
    assert body["dataStatus"] is None


def test_browse_third_page(http):
    body = http.get("/api/v1/products?sort=name_asc&page=3&limit=10").get_json()
    assert len(body["data"]) == 5
    assert body["pagination"]["totalPages"] == 3


def test_browse_reports_upstream_failure(upstream, http):
    upstream.get_products.return_value = None
    upstream.get_products.side_effect = MarketplaceApiError("offline")
    ProductRepository.refresh_cache()

    body = http.get("/api/v1/products").get_json()

    assert body["success"] is True
    assert body["data"] == []
    assert body["dataStatus"]["type"] == "error"
    assert body["dataStatus"]["message"] == "AWS Database connection required. Unable to fetch products."


def test_featured_rows_and_categories(http):
    featured = http.get("/api/v1/products/featured?limit=3").get_json()
    assert featured["data"][0]["id"] == 1
    assert len(featured["data"]) == 3

    rows = http.get("/api/v1/products/rows?sort=name_asc").get_json()["data"]
    assert set(rows) >= {"featured", "servers", "ai_agents", "Databases", "Search"}
    assert "clients" not in rows

    categories = http.get("/api/v1/products/categories").get_json()["data"]
    assert {c["slug"]: c["count"] for c in categories} == {"databases": 13, "search": 12}


def test_product_detail_and_not_found(http):
    body = http.get("/api/v1/products/3").get_json()
    assert body["data"]["name"] == "Product 03"
    assert all(p["category"] == "Databases" for p in body["related"])

    resp = http.get("/api/v1/products/999")
    assert resp.status_code == 404
    assert resp.get_json()["success"] is False


def test_data_status_checks_once_then_uses_state(upstream, http):
    body = http.get("/api/v1/data-status").get_json()
    assert body["data"]["type"] == "success"
    assert body["usingFallbackData"] is False

    http.get("/api/v1/data-status")
    assert upstream.get_data_status.call_count == 1


def test_news_falls_back_to_examples(http):
    body = http.get("/api/v1/news?category=Developer%20Tools").get_json()
    assert body["source"] == "examples"
    assert [a["id"] for a in body["data"]] == ["news-2", "news-3"]

    assert http.get("/api/v1/news/news-1").get_json()["data"]["id"] == "news-1"
    assert http.get("/api/v1/news/missing").status_code == 404


def test_news_categories(upstream, http):
    upstream.get_news_categories.return_value = {"categories": ["Business"]}
    assert http.get("/api/v1/news/categories").get_json()["data"] == ["Business"]


def test_admin_news_validation_error(upstream, http):
    resp = http.post("/api/v1/admin/news", json={"title": "x"})
    assert resp.status_code == 400
    assert "title" in resp.get_json()["errors"]
    upstream.post_json.assert_not_called()


def test_admin_news_multipart_with_image(upstream, http):
    upstream.upload_image.return_value = "https://cdn.test/cover.png"
    upstream.post_json.return_value = {"id": 11}

    resp = http.post(
        "/api/v1/admin/news",
        data={
            "title": "Registry live",
            "content": "The MCP registry is now live.",
            "category": "Developer Tools",
            "is_published": "true",
            "image": (io.BytesIO(b"png-bytes"), "cover.png"),
        },
        content_type="multipart/form-data",
    )

    assert resp.status_code == 201
    assert resp.get_json()["data"] == {"id": 11}
    payload = upstream.post_json.call_args.args[1]
    assert payload["featured_image"] == "https://cdn.test/cover.png"
    assert payload["is_published"] is True
    assert payload["published_at"]


def test_admin_course_upload_failure(upstream, http):
    upstream.upload_image.side_effect = MarketplaceApiError("HTTP error! Status: 500", status_code=500)

    resp = http.post(
        "/api/v1/admin/courses",
        data={
            "title": "Intro to MCP",
            "description": "Learn the Model Context Protocol.",
            "content": "Lesson one covers transports.",
            "instructor_name": "Ana Silva",
            "category_id": "2",
            "tags": "mcp,intro",
            "thumbnail": (io.BytesIO(b"img"), "thumb.png"),
        },
        content_type="multipart/form-data",
    )

    assert resp.status_code == 502
    assert resp.get_json()["errors"] == {"thumbnail": "Failed to upload image"}
    upstream.post_json.assert_not_called()


def test_rate_limit(upstream):
    class LimitedConfig(Config):
        RATE_LIMIT_PER_MINUTE = 2

    http = create_app(LimitedConfig, client=upstream).test_client()
    assert http.get("/api/v1/products/categories").status_code == 200
    assert http.get("/api/v1/products/categories").status_code == 200
    resp = http.get("/api/v1/products/categories")
    assert resp.status_code == 429
    assert resp.get_json()["error"] == "TOO_MANY_REQUESTS"


def test_featured_prefers_upstream_featured_endpoint(upstream, http):
    upstream.get_featured_products.return_value = {
        "products": [{"id": 7, "name": "Curated"}],
        "dataStatus": {"type": "success", "message": "Connected", "source": "database"},
    }

    body = http.get("/api/v1/products/featured?limit=3").get_json()

    upstream.get_featured_products.assert_called_once_with(limit=3)
    assert [p["id"] for p in body["data"]] == [7]
    assert body["dataStatus"]["type"] == "success"


def test_feed_dispatches_to_upstream_queries(upstream, http):
    upstream.get_products.return_value = {
        "products": [{"id": 1}],
        "pagination": {"total": 30, "totalPages": 3, "currentPage": 1, "limit": 10},
    }

    body = http.get("/api/v1/feed?page=1&limit=10&language=pt").get_json()
    assert body["success"] is True
    assert body["pagination"]["totalPages"] == 3
    assert upstream.get_products.call_args.kwargs == {"page": 1, "limit": 10, "language": "pt"}

    http.get("/api/v1/feed?q=postgres")
    assert upstream.get_products.call_args.kwargs == {"search": "postgres", "language": "en"}

    http.get("/api/v1/feed?type=mcp_server&page=2&limit=20")
    assert upstream.get_products.call_args.kwargs == {
        "product_type": "mcp_server", "page": 2, "limit": 20, "language": "en"}


def test_feed_change_page_and_limit(upstream, http):
    upstream.get_products.return_value = {
        "products": [{"id": 1}],
        "pagination": {"total": 30, "totalPages": 3, "currentPage": 1, "limit": 10},
    }
    http.get("/api/v1/feed?limit=10")

    assert http.post("/api/v1/feed/page", json={"page": 3}).status_code == 200
    assert upstream.get_products.call_args.kwargs["page"] == 3
    assert http.post("/api/v1/feed/page", json={"page": 4}).status_code == 400

    body = http.post("/api/v1/feed/limit", json={"limit": 20}).get_json()
    assert body["success"] is True
    assert upstream.get_products.call_args.kwargs == {"page": 1, "limit": 20, "language": "en"}


def test_feed_failure_reports_fixed_message(upstream, http):
    upstream.get_products.side_effect = MarketplaceApiError("offline")

    body = http.get("/api/v1/feed?category=databases").get_json()

    assert body["success"] is False
    assert body["error"] == "AWS Database connection required. Unable to filter products by category."
    assert body["dataStatus"]["type"] == "error"


def test_infinite_rating_is_ignored(http):
    resp = http.get("/api/v1/products?ratings=inf&priceMax=inf")
    assert resp.status_code == 200
    assert resp.get_json()["pagination"]["total"] == 25


def test_listed_news_without_id_can_be_opened(upstream, http):
    upstream.get_news.side_effect = None
    upstream.get_news.return_value = {"articles": [
        {"title": "Registry live", "date": "2024-05-02", "source_url": "https://news.test/registry"},
    ]}

    listed = http.get("/api/v1/news").get_json()["data"][0]["id"]
    resp = http.get(f"/api/v1/news/{listed}")

    assert resp.status_code == 200
    assert resp.get_json()["data"]["title"] == "Registry live"


def test_news_refresh_requires_admin_token(upstream, monkeypatch):
    class TokenConfig(Config):
        ADMIN_TOKEN = "s3cret"

    calls = []
    monkeypatch.setattr(NewsService, "refresh_from_feeds", lambda sources: calls.append(sources) or [{"id": "a"}])
    http = create_app(TokenConfig, client=upstream).test_client()

    assert http.post("/api/v1/admin/news/refresh", json={"sources": ["https://feed.test/rss"]}).status_code == 401

    resp = http.post("/api/v1/admin/news/refresh", json={"sources": ["https://feed.test/rss"]},
                     headers={"Authorization": "Bearer s3cret"})
    assert resp.status_code == 200
    assert resp.get_json()["data"] == {"count": 1}
    assert calls == [["https://feed.test/rss"]]


def test_news_refresh_without_sources(http):
    http.application.config.update(ADMIN_TOKEN="", NEWS_FEED_SOURCES=[])
    assert http.post("/api/v1/admin/news/refresh", json={}).status_code == 400
