"""
产品数据仓库 - 负责从上游 API 加载目录、会话缓存
"""

import threading
import time
from datetime import datetime
from typing import List, Dict, Any, Optional

from config import Config
from marketplace.logger import get_logger
from .api_client import MarketplaceApiClient, MarketplaceApiError

logger = get_logger(__name__)

CATALOG_PAGE_SIZE = 100
MAX_CATALOG_PAGES = 20

CUSTOM_PRODUCTS_KEY = 'cached_custom_products'
MAX_CACHED_PRODUCTS = 50
SESSION_MAX_AGE = 300


def product_cache_key(product_id: Any) -> str:
    return f"product_{product_id}"


class SessionCache:
    """Key/value store standing in for the old per-tab sessionStorage.

    Entries expire together once the store is older than max_age seconds.
    """

    def __init__(self, max_age: float = SESSION_MAX_AGE):
        self.max_age = max_age
        self._lock = threading.Lock()
        self._items: Dict[str, Any] = {}
        self._started: Optional[float] = None

    def _expire(self) -> None:
        if self._started is not None and time.monotonic() - self._started >= self.max_age:
            self._items.clear()
            self._started = None

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            self._expire()
            return self._items.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._expire()
            if self._started is None:
                self._started = time.monotonic()
            self._items[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
            self._started = None


class ProductRepository:
    """产品数据仓库"""

    _client: Optional[MarketplaceApiClient] = None
    _cached_products: Optional[List[Dict]] = None
    _cache_time: Optional[datetime] = None
    _cache_duration = 300  # 5分钟缓存
    last_error: Optional[str] = None
    session = SessionCache(max_age=_cache_duration)

    @classmethod
    def configure(cls, client: MarketplaceApiClient) -> None:
        cls._client = client
        cls.refresh_cache()

    @classmethod
    def client(cls) -> MarketplaceApiClient:
        if cls._client is None:
            cls._client = MarketplaceApiClient()
        return cls._client

    @classmethod
    def refresh_cache(cls):
        """强制刷新缓存"""
        cls._cached_products = None
        cls._cache_time = None
        cls.session.clear()

    @classmethod
    def load_products(cls, filters_module=None, language: Optional[str] = None) -> List[Dict]:
        """加载完整目录（带缓存）。

        逐页拉取 /products 直到最后一页；任何失败返回空列表且不缓存，
        产品没有本地示例数据兜底。
        """
        now = datetime.now()

        # 检查缓存
        if cls._cached_products is not None and cls._cache_time:
            age = (now - cls._cache_time).total_seconds()
            if age < cls._cache_duration:
                return cls._cached_products

        language = language or Config.DEFAULT_LANGUAGE
        products: List[Dict] = []
        try:
            page = 1
            while page <= MAX_CATALOG_PAGES:
                data = cls.client().get_products(page=page, limit=CATALOG_PAGE_SIZE, language=language)
                batch = data.get('products') or []
                products.extend(batch)
                total_pages = (data.get('pagination') or {}).get('totalPages') or 1
                if page >= total_pages or not batch:
                    break
                page += 1
        except MarketplaceApiError as e:
            logger.error("Error fetching products from upstream: %s", e)
            cls.last_error = 'AWS Database connection required. Unable to fetch products.'
            return []

        cls.last_error = None
        if filters_module:
            products = filters_module.normalize_products(products)

        logger.info("Loaded %d products from upstream", len(products))
        cls._cached_products = products
        cls._cache_time = now
        return products

    # ========== 会话缓存 (product_{id} / cached_custom_products) ==========

    @classmethod
    def remember_product(cls, product: Dict[str, Any]) -> None:
        """Cache a product for fast repeat detail lookups."""
        if not product or product.get('id') is None:
            return
        cls.session.set(product_cache_key(product['id']), dict(product))

        cached = list(cls.session.get(CUSTOM_PRODUCTS_KEY) or [])
        for idx, existing in enumerate(cached):
            if str(existing.get('id')) == str(product['id']):
                cached[idx] = dict(product)
                break
        else:
            cached.append(dict(product))
        # 只保留最近的 MAX_CACHED_PRODUCTS 个
        for dropped in cached[:-MAX_CACHED_PRODUCTS]:
            cls.session.delete(product_cache_key(dropped.get('id')))
        cls.session.set(CUSTOM_PRODUCTS_KEY, cached[-MAX_CACHED_PRODUCTS:])

    @classmethod
    def get_cached_product(cls, product_id: Any) -> Optional[Dict[str, Any]]:
        cached = cls.session.get(product_cache_key(product_id))
        if cached:
            return cached
        for product in cls.session.get(CUSTOM_PRODUCTS_KEY) or []:
            if str(product.get('id')) == str(product_id):
                return product
        return None

    @classmethod
    def related_from_cache(cls, category: Optional[str], exclude_id: Any, limit: int = 4) -> List[Dict[str, Any]]:
        """同分类的其他已缓存产品"""
        if not category:
            return []
        related = [
            p for p in cls.session.get(CUSTOM_PRODUCTS_KEY) or []
            if p.get('category') == category and str(p.get('id')) != str(exclude_id)
        ]
        return related[:limit]
