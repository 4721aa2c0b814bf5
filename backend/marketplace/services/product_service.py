"""
产品服务 - 高级业务逻辑层

本模块只包含高级业务逻辑，底层实现委托给:
- product_repository: 目录加载、缓存
- product_filters: 过滤逻辑
- product_sorting: 排序与分组
- browse_state: 筛选条件与分页状态
"""

from typing import List, Dict, Any, Optional

from marketplace.logger import get_logger
from . import product_filters as filters
from . import product_sorting as sorting
from .browse_state import BrowseCriteria, PageState
from .product_repository import ProductRepository

logger = get_logger(__name__)


class ProductService:
    """产品服务类 - 高级业务逻辑"""

    # ========== 缓存管理 (委托给 Repository) ==========

    @classmethod
    def refresh_cache(cls):
        """强制刷新缓存"""
        ProductRepository.refresh_cache()

    @classmethod
    def _load_products(cls) -> List[Dict]:
        """加载产品数据（带缓存）"""
        return ProductRepository.load_products(filters_module=filters)

    @staticmethod
    def last_error() -> Optional[str]:
        return ProductRepository.last_error

    # ========== 统一过滤 + 排序 ==========

    @staticmethod
    def filter_and_sort(products: List[Dict], criteria: BrowseCriteria) -> List[Dict]:
        """唯一的过滤/排序入口，纯函数，不修改输入列表"""
        results = filters.apply_filters(products, criteria)
        return sorting.sort_products(results, criteria.sort)

    # ========== 业务逻辑方法 ==========

    @staticmethod
    def browse(criteria: BrowseCriteria) -> Dict[str, Any]:
        """
        目录浏览 (viewAll 模式)

        过滤 -> 排序 -> 分页。页码超出范围时回到第一页。
        """
        products = ProductService._load_products()
        results = ProductService.filter_and_sort(products, criteria)
        page_state = PageState.for_results(len(results), criteria.page, criteria.limit)

        return {
            'products': page_state.slice(results),
            'pagination': page_state.to_dict(),
            'activeFilters': criteria.active_filter_count(),
            'query': criteria.with_changes(page=page_state.current_page).to_query_args(),
        }

    @staticmethod
    def get_rows(criteria: BrowseCriteria) -> Dict[str, List[Dict]]:
        """categorized 模式: 过滤后按行分组"""
        products = ProductService._load_products()
        results = filters.apply_filters(products, criteria)
        return sorting.group_into_rows(results, sort_by=criteria.sort, catalog_size=len(products))

    @staticmethod
    def get_featured(limit: int = 6) -> List[Dict]:
        """精选产品，不足时用热度最高的补齐"""
        products = ProductService._load_products()
        featured = sorting.sort_by_popularity([p for p in products if p.get('is_featured')])
        if len(featured) < limit:
            featured_ids = {str(p.get('id')) for p in featured}
            rest = [p for p in sorting.sort_by_popularity(products) if str(p.get('id')) not in featured_ids]
            featured.extend(rest[:limit - len(featured)])
        return featured[:limit]

    @staticmethod
    def get_categories() -> List[Dict[str, Any]]:
        """分类及数量"""
        return filters.categories_with_counts(ProductService._load_products())

    @staticmethod
    def get_product_by_id(product_id: str, related_limit: int = 4) -> Optional[Dict[str, Any]]:
        """根据ID获取产品及相关产品

        先查会话缓存 (product_{id})，再查目录；找到后写回缓存。
        """
        product = ProductRepository.get_cached_product(product_id)
        if product is None:
            for candidate in ProductService._load_products():
                if str(candidate.get('id', '')) == str(product_id):
                    product = candidate
                    break
        if product is None:
            return None

        ProductRepository.remember_product(product)

        related = ProductRepository.related_from_cache(product.get('category'), product.get('id'), related_limit)
        if not related and product.get('category'):
            related = [
                p for p in ProductService._load_products()
                if p.get('category') == product.get('category') and str(p.get('id')) != str(product.get('id'))
            ][:related_limit]

        return {'product': product, 'related': related}
