"""Upstream API client tests (requests session is mocked, no network)."""

from unittest.mock import MagicMock

import pytest
import requests

from marketplace.services.api_client import MarketplaceApiClient, MarketplaceApiError


def _response(status=200, payload=None, json_error=False):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    if json_error:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = payload
    return response


def _client(session, token="secret"):
    return MarketplaceApiClient(base_url="http://api.test/api/", timeout=3, admin_token=token, session=session)


def test_get_products_drops_empty_params():
    session = MagicMock()
    session.get.return_value = _response(payload={"products": []})

    data = _client(session).get_products(page=1, limit=100, language="en")

    assert data == {"products": []}
    session.get.assert_called_once_with(
        "http://api.test/api/products",
        params={"page": 1, "limit": 100, "language": "en"},
        timeout=3,
    )


def test_http_error_raises_with_status():
    session = MagicMock()
    session.get.return_value = _response(status=503)

    with pytest.raises(MarketplaceApiError) as excinfo:
        _client(session).get_data_status()
    assert excinfo.value.status_code == 503


def test_network_error_and_bad_json_raise():
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("refused")
    with pytest.raises(MarketplaceApiError) as excinfo:
        _client(session).get_news()
    assert excinfo.value.status_code is None

    session = MagicMock()
    session.get.return_value = _response(json_error=True)
    with pytest.raises(MarketplaceApiError):
        _client(session).get_featured_products()


def test_upload_image_sends_multipart_with_bearer_token():
    session = MagicMock()
    session.post.return_value = _response(payload={"url": "https://cdn.test/a.png"})

    url = _client(session, token='"secret"').upload_image("a.png", b"data", "image/png")

    assert url == "https://cdn.test/a.png"
    args, kwargs = session.post.call_args
    assert args[0] == "http://api.test/api/admin/upload"
    assert kwargs["files"] == {"image": ("a.png", b"data", "image/png")}
    assert kwargs["headers"] == {"Authorization": "Bearer secret"}


def test_upload_without_url_fails():
    session = MagicMock()
    session.post.return_value = _response(payload={"ok": True})
    with pytest.raises(MarketplaceApiError):
        _client(session).upload_image("a.png", b"data")


def test_post_json_without_token_has_no_auth_header():
    session = MagicMock()
    session.post.return_value = _response(payload={"id": 1})

    _client(session, token="").post_json("/admin/news", {"title": "Hi"})

    assert session.post.call_args.kwargs["headers"] == {}
    assert session.post.call_args.kwargs["json"] == {"title": "Hi"}
