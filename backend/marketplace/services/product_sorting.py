"""
产品排序工具 - 负责排序、分组和分页逻辑
"""

import re
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional

from .product_filters import get_stars

DEFAULT_SORT = 'popularity'

SORT_ALIASES = {
    'popularity': 'popularity',
    'popular': 'popularity',
    'stars': 'popularity',
    'rating_desc': 'popularity',
    'name': 'name_asc',
    'name_asc': 'name_asc',
    'name-asc': 'name_asc',
    'name_desc': 'name_desc',
    'name-desc': 'name_desc',
    'newest': 'newest',
    'latest': 'newest',
    'price_asc': 'price_asc',
    'price-asc': 'price_asc',
    'price_desc': 'price_desc',
    'price-desc': 'price_desc',
    'featured': 'featured',
}

_EPOCH = datetime(1970, 1, 1)


def resolve_sort(sort_by: Optional[str]) -> str:
    """Resolve sort option with aliases used by the different catalog pages."""
    normalized = (sort_by or DEFAULT_SORT).strip().lower()
    return SORT_ALIASES.get(normalized, DEFAULT_SORT)


def parse_date(value: Any) -> Optional[datetime]:
    """Parse ISO dates, YYYY-MM-DD strings or epoch millis safely."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str):
        return None
    try:
        if 'T' in value:
            return datetime.fromisoformat(value.replace('Z', '+00:00')).replace(tzinfo=None)
        return datetime.strptime(value[:10], '%Y-%m-%d')
    except ValueError:
        return None


def get_created_at(product: Dict[str, Any]) -> Optional[datetime]:
    """Pick the creation timestamp, whichever field the upstream used."""
    return parse_date(
        product.get('created_at') or product.get('createdAt') or product.get('addedAt')
    )


def _to_float(value: Any) -> float:
    """Safely coerce numeric-like values."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _name_key(product: Dict[str, Any]) -> str:
    return str(product.get('name') or '').casefold()


def _id_key(product: Dict[str, Any]) -> tuple:
    """Numeric ids compare numerically, everything else as strings."""
    raw = str(product.get('id', ''))
    if raw.isdigit():
        return (1, int(raw), raw)
    return (0, 0, raw)


def sort_by_popularity(products: List[Dict]) -> List[Dict]:
    """按 star 数排序"""
    return sorted(products, key=get_stars, reverse=True)


def sort_by_name(products: List[Dict], descending: bool = False) -> List[Dict]:
    """按名称排序 (大小写不敏感)"""
    return sorted(products, key=_name_key, reverse=descending)


def sort_by_price(products: List[Dict], descending: bool = False) -> List[Dict]:
    """按价格排序，缺失价格视为免费"""
    return sorted(products, key=lambda p: _to_float(p.get('price') or 0), reverse=descending)


def sort_by_featured(products: List[Dict]) -> List[Dict]:
    """精选在前，其余保持原顺序"""
    return sorted(products, key=lambda p: 1 if p.get('is_featured') else 0, reverse=True)


def sort_by_newest(products: List[Dict]) -> List[Dict]:
    """按创建时间排序

    带时间戳的产品按时间倒序排在前面；没有时间戳的产品排在之后，
    按 id 倒序 (数字 id 按数值比较)。
    """
    dated = [p for p in products if get_created_at(p)]
    undated = [p for p in products if not get_created_at(p)]
    dated.sort(key=lambda p: get_created_at(p) or _EPOCH, reverse=True)
    undated.sort(key=_id_key, reverse=True)
    return dated + undated


def sort_products(products: List[Dict], sort_by: str = DEFAULT_SORT) -> List[Dict]:
    """统一排序入口"""
    mode = resolve_sort(sort_by)
    if mode == 'name_asc':
        return sort_by_name(products)
    if mode == 'name_desc':
        return sort_by_name(products, descending=True)
    if mode == 'newest':
        return sort_by_newest(products)
    if mode == 'price_asc':
        return sort_by_price(products)
    if mode == 'price_desc':
        return sort_by_price(products, descending=True)
    if mode == 'featured':
        return sort_by_featured(products)
    return sort_by_popularity(products)


def _id_digits(product: Dict[str, Any]) -> int:
    digits = re.sub(r'\D', '', str(product.get('id', '')))
    return int(digits) if digits else 0


def group_into_rows(products: List[Dict], sort_by: str = 'featured',
                    catalog_size: Optional[int] = None) -> Dict[str, List[Dict]]:
    """按分类分组成多行 (精选 / 服务端 / 客户端 / 代理 / 热门 / 流行 / 最新 / 每个分类)

    - trending: stars > 4
    - popular: id 中的数字能被 5 整除 (稳定的伪随机 20%)
    - recent: 数字 id 大于目录规模的 70%
    空行不返回。
    """
    size = len(products) if catalog_size is None else catalog_size
    rows: Dict[str, List[Dict]] = {
        'featured': [],
        'servers': [],
        'clients': [],
        'ai_agents': [],
        'trending': [],
        'popular': [],
        'recent': [],
    }
    type_rows = {'mcp_server': 'servers', 'mcp_client': 'clients', 'ai_agent': 'ai_agents'}

    for product in products:
        if get_stars(product) > 4:
            rows['trending'].append(product)
        if product.get('is_featured'):
            rows['featured'].append(product)
        if _id_digits(product) % 5 == 0:
            rows['popular'].append(product)
        raw_id = str(product.get('id', ''))
        if raw_id.isdigit() and int(raw_id) > size * 0.7:
            rows['recent'].append(product)
        row = type_rows.get(product.get('product_type'))
        if row:
            rows[row].append(product)

        seen = set()
        for cat in [product.get('category')] + list(product.get('categories') or []):
            if not cat or cat in seen:
                continue
            seen.add(cat)
            rows.setdefault(cat, []).append(product)

    return {
        key: sort_products(items, sort_by)
        for key, items in rows.items()
        if items
    }
