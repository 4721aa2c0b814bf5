"""
Product feed - 分页产品列表的有状态封装

Each fetch takes a generation token when it is issued. A response (or
failure) is applied only if no newer request was issued in the meantime,
so a slow page-1 response can never overwrite a later search result.
"""

import threading
from typing import Any, Callable, Dict, List, Optional

from marketplace.logger import get_logger
from .api_client import MarketplaceApiClient, MarketplaceApiError
from .app_state import AppState, DataStatus

logger = get_logger(__name__)

ERROR_MESSAGES = {
    'fetch': 'AWS Database connection required. Unable to fetch products.',
    'search': 'AWS Database connection required. Unable to search products.',
    'category': 'AWS Database connection required. Unable to filter products by category.',
    'type': 'AWS Database connection required. Unable to filter products by type.',
    'featured': 'AWS Database connection required. Unable to fetch featured products.',
}


def _empty_pagination(page: int, limit: int) -> Dict[str, int]:
    return {'total': 0, 'totalPages': 0, 'currentPage': page, 'limit': limit}


class ProductFeed:
    """产品列表状态: products / loading / error / pagination / data_status"""

    def __init__(self, client: MarketplaceApiClient, language: str = 'en',
                 initial_page: int = 1, initial_limit: int = 100,
                 app_state: Optional[AppState] = None):
        self.client = client
        self.language = language
        self.initial_page = initial_page
        self.initial_limit = initial_limit
        self.app_state = app_state

        self.products: List[Dict[str, Any]] = []
        self.loading = False
        self.error: Optional[str] = None
        self.data_status: Optional[DataStatus] = None
        self.pagination = _empty_pagination(initial_page, initial_limit)

        self._lock = threading.Lock()
        self._generation = 0

    @property
    def language_param(self) -> str:
        return 'pt' if self.language == 'pt' else 'en'

    # ========== 请求代数 ==========

    def _issue(self) -> int:
        with self._lock:
            self._generation += 1
            self.loading = True
            return self._generation

    def _is_current(self, token: int) -> bool:
        return token == self._generation

    def _run(self, kind: str, token: int, request: Callable[[], Dict[str, Any]],
             page: int, limit: int) -> Dict[str, Any]:
        try:
            data = request()
        except MarketplaceApiError as e:
            logger.error("Error during product %s request: %s", kind, e)
            empty = {'products': [], 'pagination': _empty_pagination(page, limit)}
            with self._lock:
                if not self._is_current(token):
                    logger.info("Dropping stale %s failure (request %d, latest %d)", kind, token, self._generation)
                    return empty
                self.products = []
                self.pagination = _empty_pagination(page, limit)
                self.error = ERROR_MESSAGES[kind]
                self.data_status = DataStatus.error(ERROR_MESSAGES[kind])
                self.loading = False
            self._publish_status()
            return empty

        with self._lock:
            if not self._is_current(token):
                logger.info("Dropping stale %s response (request %d, latest %d)", kind, token, self._generation)
                return data
            self.products = data.get('products') or []
            self.pagination = data.get('pagination') or _empty_pagination(page, limit)
            self.data_status = DataStatus.from_dict(data['dataStatus']) if data.get('dataStatus') else None
            self.error = None
            self.loading = False
        logger.debug("product %s: received %d products", kind, len(self.products))
        self._publish_status()
        return data

    def _publish_status(self) -> None:
        if self.app_state is not None and self.data_status is not None:
            self.app_state.set_data_status(self.data_status)

    # ========== 公开操作 ==========

    def fetch_products(self, page: Optional[int] = None, limit: Optional[int] = None) -> Dict[str, Any]:
        """GET /products?page&limit&language"""
        page = page or self.initial_page
        limit = limit or self.initial_limit
        token = self._issue()
        return self._run('fetch', token, lambda: self.client.get_products(
            page=page, limit=limit, language=self.language_param), page, limit)

    def search_products(self, query: Optional[str]) -> Dict[str, Any]:
        if not query or not query.strip() or query == 'all':
            return self.fetch_products()
        limit = self.pagination.get('limit') or self.initial_limit
        token = self._issue()
        return self._run('search', token, lambda: self.client.get_products(
            search=query, language=self.language_param), 1, limit)

    def filter_by_category(self, category: Optional[str]) -> Dict[str, Any]:
        if not category or category == 'all':
            return self.fetch_products()
        limit = self.pagination.get('limit') or self.initial_limit
        token = self._issue()
        return self._run('category', token, lambda: self.client.get_products(
            category=category, language=self.language_param), 1, limit)

    def filter_by_product_type(self, product_type: Optional[str], page: int = 1, limit: int = 100) -> Dict[str, Any]:
        if not product_type or product_type == 'all':
            return self.fetch_products(page, limit)
        token = self._issue()
        return self._run('type', token, lambda: self.client.get_products(
            product_type=product_type, page=page, limit=limit, language=self.language_param), page, limit)

    def fetch_featured_products(self, limit: int = 6) -> Dict[str, Any]:
        """精选产品: 不修改列表状态，失败时返回空列表 + 错误状态"""
        try:
            data = self.client.get_featured_products(limit=limit)
        except MarketplaceApiError as e:
            logger.error("Error fetching featured products: %s", e)
            return {
                'products': [],
                'dataStatus': DataStatus.error(ERROR_MESSAGES['featured']).to_dict(),
            }
        return {'products': data.get('products') or [], 'dataStatus': data.get('dataStatus')}

    def change_page(self, page: int) -> bool:
        """Only pages within 1..totalPages trigger a fetch."""
        total_pages = self.pagination.get('totalPages') or 0
        if 1 <= page <= total_pages:
            self.fetch_products(page, self.pagination.get('limit') or self.initial_limit)
            return True
        return False

    def change_limit(self, limit: int) -> None:
        """Changing the page size goes back to page 1."""
        self.fetch_products(1, limit)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'products': list(self.products),
                'loading': self.loading,
                'error': self.error,
                'pagination': dict(self.pagination),
                'dataStatus': self.data_status.to_dict() if self.data_status else None,
            }
