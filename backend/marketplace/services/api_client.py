"""
Marketplace upstream REST API client

Usage:
    from marketplace.services.api_client import MarketplaceApiClient

    client = MarketplaceApiClient(base_url="http://localhost:3001/api")
    data = client.get_products(page=1, limit=100, language="en")
    featured = client.get_featured_products(limit=6)
"""

from typing import Any, Dict, Optional

import requests

from config import Config
from marketplace.logger import get_logger
from .env_utils import sanitize_env_value

logger = get_logger(__name__)


class MarketplaceApiError(Exception):
    """Any failure talking to the upstream API (network, HTTP status, bad JSON)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MarketplaceApiClient:
    """
    上游 API 客户端

    支持：
    - 产品列表 / 搜索 / 分类 / 类型 / 精选
    - 数据状态
    - 新闻列表 / 新闻分类
    - 管理后台: 图片上传, 内容提交
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 admin_token: Optional[str] = None, session: Optional[requests.Session] = None):
        self.base_url = (base_url or Config.API_BASE_URL).rstrip('/')
        self.timeout = timeout or Config.REQUEST_TIMEOUT
        self.admin_token = sanitize_env_value(admin_token if admin_token is not None else Config.ADMIN_TOKEN)
        self._session = session or requests.Session()
        self._session.headers.update({'Accept': 'application/json'})

    # ========== 底层请求 ==========

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _handle(self, response: requests.Response, url: str) -> Any:
        if not response.ok:
            raise MarketplaceApiError(f"HTTP error! Status: {response.status_code} ({url})",
                                      status_code=response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise MarketplaceApiError(f"Malformed JSON from {url}: {e}",
                                      status_code=response.status_code) from e

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = self._url(path)
        clean = {k: v for k, v in (params or {}).items() if v is not None and v != ''}
        logger.debug("GET %s %s", url, clean)
        try:
            response = self._session.get(url, params=clean, timeout=self.timeout)
        except requests.RequestException as e:
            raise MarketplaceApiError(f"Request failed {url}: {e}") from e
        return self._handle(response, url)

    def post_json(self, path: str, payload: Dict[str, Any], auth: bool = True) -> Any:
        url = self._url(path)
        logger.debug("POST %s", url)
        try:
            response = self._session.post(url, json=payload, headers=self._auth_headers(auth),
                                          timeout=self.timeout)
        except requests.RequestException as e:
            raise MarketplaceApiError(f"Request failed {url}: {e}") from e
        return self._handle(response, url)

    def _auth_headers(self, auth: bool) -> Dict[str, str]:
        if auth and self.admin_token:
            return {'Authorization': f'Bearer {self.admin_token}'}
        return {}

    # ========== 产品 ==========

    def get_products(self, page: Optional[int] = None, limit: Optional[int] = None,
                     language: Optional[str] = None, search: Optional[str] = None,
                     category: Optional[str] = None, product_type: Optional[str] = None) -> Dict[str, Any]:
        """GET /products?page&limit&language&search&category&type"""
        data = self.get_json('/products', params={
            'page': page,
            'limit': limit,
            'language': language,
            'search': search,
            'category': category,
            'type': product_type,
        })
        if not isinstance(data, dict):
            raise MarketplaceApiError("Unexpected /products payload")
        return data

    def get_featured_products(self, limit: int = 6) -> Dict[str, Any]:
        """GET /products/featured?limit"""
        data = self.get_json('/products/featured', params={'limit': limit})
        if not isinstance(data, dict):
            raise MarketplaceApiError("Unexpected /products/featured payload")
        return data

    def get_data_status(self) -> Dict[str, Any]:
        """GET /data-status"""
        return self.get_json('/data-status')

    # ========== 新闻 ==========

    def get_news(self, language: Optional[str] = None) -> Any:
        """GET /news (list, or {'articles': [...]})"""
        return self.get_json('/news', params={'language': language})

    def get_news_categories(self) -> Any:
        """GET /news/categories"""
        return self.get_json('/news/categories')

    # ========== 管理后台 ==========

    def upload_image(self, filename: str, content: bytes, content_type: str = 'application/octet-stream',
                     endpoint: str = '/admin/upload') -> str:
        """POST multipart 'image' field, returns the hosted URL."""
        url = self._url(endpoint)
        files = {'image': (filename, content, content_type)}
        logger.debug("POST %s (upload %s)", url, filename)
        try:
            response = self._session.post(url, files=files, headers=self._auth_headers(True),
                                          timeout=self.timeout)
        except requests.RequestException as e:
            raise MarketplaceApiError(f"Upload failed {url}: {e}") from e
        data = self._handle(response, url)
        uploaded = data.get('url') if isinstance(data, dict) else None
        if not uploaded:
            raise MarketplaceApiError(f"Upload response from {url} has no url")
        return uploaded
