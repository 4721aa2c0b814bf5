"""
产品过滤器 - 负责过滤和占位值补全逻辑

Every filter takes a list of product dicts and returns a new list. A product
missing the field a filter looks at simply fails that filter.
"""

import math
import re
from typing import List, Dict, Any, Iterable, Optional

from marketplace.logger import get_logger
from marketplace.models.product import Product

logger = get_logger(__name__)

DEFAULT_PRICE_MIN = 0
DEFAULT_PRICE_MAX = 1000


def category_slug(name: str) -> str:
    """'Data & Analytics' -> 'data-and-analytics'"""
    return re.sub(r'\s+', '-', (name or '').lower()).replace('&', 'and')


def get_stars(product: Dict[str, Any]) -> float:
    """Effective popularity: stars_numeric, then stars, then 0."""
    value = product.get('stars_numeric') or product.get('stars') or 0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _product_categories(product: Dict[str, Any]) -> List[str]:
    categories = []
    if product.get('category'):
        categories.append(product['category'])
    if isinstance(product.get('categories'), list):
        categories.extend(c for c in product['categories'] if isinstance(c, str))
    return categories


def _has_link(product: Dict[str, Any], keys: Iterable[str], domain: str) -> bool:
    if any(product.get(key) for key in keys):
        return True
    links = product.get('links')
    if not isinstance(links, list):
        return False
    return any(
        isinstance(link, dict) and domain in str(link.get('url') or '')
        for link in links
    )


def normalize_products(products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Fill fallbacks (name/description/image/price) while keeping upstream extras."""
    normalized = []
    for product in products:
        if not product:
            continue
        normalized.append({**product, **Product.from_dict(product).to_dict()})
    return normalized


def filter_by_active_category(products: List[Dict], category: Optional[str]) -> List[Dict]:
    """按当前分类页筛选 ('all' 不筛选, 'official' 仅官方)"""
    if not category or category.lower() == 'all':
        return products
    if category == 'official':
        return filter_official(products)
    target = category_slug(category)
    return [
        p for p in products
        if any(category_slug(cat) == target for cat in _product_categories(p))
    ]


def filter_by_types(products: List[Dict], types: List[str]) -> List[Dict]:
    """按产品类型筛选（支持多选，OR逻辑；接受显示名称或存储值）"""
    if not types:
        return products
    wanted = {Product.resolve_type(t) or t for t in types}
    return [p for p in products if p.get('product_type') in wanted]


def filter_by_categories(products: List[Dict], categories: List[str]) -> List[Dict]:
    """按分类筛选（支持多选，OR逻辑）"""
    if not categories:
        return products
    wanted = set(categories)
    return [
        p for p in products
        if any(cat in wanted for cat in _product_categories(p))
    ]


def filter_official(products: List[Dict]) -> List[Dict]:
    return [p for p in products if p.get('official') is True]


def filter_has_github(products: List[Dict]) -> List[Dict]:
    return [p for p in products if _has_link(p, ('githubUrl', 'github_url'), 'github.com')]


def filter_has_npm(products: List[Dict]) -> List[Dict]:
    return [p for p in products if _has_link(p, ('npmUrl', 'npm_url'), 'npmjs.com')]


def filter_by_min_stars(products: List[Dict], min_stars: float) -> List[Dict]:
    """按最低 star 数筛选 (>=)"""
    if not min_stars or min_stars <= 0:
        return products
    return [p for p in products if get_stars(p) >= min_stars]


def filter_by_ratings(products: List[Dict], ratings: List[int]) -> List[Dict]:
    """按评分档位筛选: floor(stars) 必须在所选档位内"""
    if not ratings:
        return products
    wanted = set(ratings)
    return [p for p in products if math.floor(get_stars(p)) in wanted]


def filter_by_price_range(products: List[Dict], price_min: float = DEFAULT_PRICE_MIN,
                          price_max: float = DEFAULT_PRICE_MAX) -> List[Dict]:
    """按价格区间筛选，免费产品 (price 为 0/缺失) 不参与区间判断"""
    filtered = []
    for p in products:
        if p.get('price'):
            try:
                price = float(p['price'])
            except (TypeError, ValueError):
                continue
            if price < price_min or price > price_max:
                continue
        filtered.append(p)
    return filtered


def filter_by_tags(products: List[Dict], tags: List[str]) -> List[Dict]:
    """按标签筛选（任一标签命中即可，OR逻辑）"""
    if not tags:
        return products
    return [
        p for p in products
        if isinstance(p.get('tags'), list) and any(tag in p['tags'] for tag in tags)
    ]


def filter_by_keyword(products: List[Dict], keyword: str) -> List[Dict]:
    """按关键词筛选 (name / description / keywords / category / tags)"""
    keyword = (keyword or '').strip()
    if not keyword:
        return products
    keyword_lower = keyword.lower()

    def _matches(p: Dict[str, Any]) -> bool:
        if keyword_lower in str(p.get('name') or '').lower():
            return True
        if keyword_lower in str(p.get('description') or '').lower():
            return True
        keywords = p.get('keywords')
        if isinstance(keywords, list) and keyword_lower in ' '.join(map(str, keywords)).lower():
            return True
        if keyword_lower in str(p.get('category') or '').lower():
            return True
        tags = p.get('tags')
        if isinstance(tags, list) and any(keyword_lower in str(tag).lower() for tag in tags):
            return True
        return False

    return [p for p in products if _matches(p)]


def apply_filters(products: List[Dict], criteria) -> List[Dict]:
    """Run every filter of a BrowseCriteria in a fixed order."""
    steps = [
        ('category', lambda items: filter_by_active_category(items, criteria.category)),
        ('types', lambda items: filter_by_types(items, criteria.types)),
        ('categories', lambda items: filter_by_categories(items, criteria.categories)),
        ('official', lambda items: filter_official(items) if criteria.official_only else items),
        ('github', lambda items: filter_has_github(items) if criteria.has_github else items),
        ('npm', lambda items: filter_has_npm(items) if criteria.has_npm else items),
        ('min_stars', lambda items: filter_by_min_stars(items, criteria.min_stars)),
        ('ratings', lambda items: filter_by_ratings(items, criteria.ratings)),
        ('price', lambda items: (filter_by_price_range(items, criteria.price_min, criteria.price_max)
                                if criteria.has_price_filter else items)),
        ('tags', lambda items: filter_by_tags(items, criteria.tags)),
        ('search', lambda items: filter_by_keyword(items, criteria.query)),
    ]
    results = list(products)
    for name, step in steps:
        before = len(results)
        results = step(results)
        if len(results) != before:
            logger.debug("filter %s: %d -> %d products", name, before, len(results))
    return results


def categories_with_counts(products: List[Dict]) -> List[Dict[str, Any]]:
    """统计每个分类的产品数 (按数量降序)"""
    counts: Dict[str, Dict[str, Any]] = {}
    for p in products:
        name = p.get('category') or 'Uncategorized'
        slug = category_slug(name)
        if slug in counts:
            counts[slug]['count'] += 1
        else:
            counts[slug] = {'name': name, 'slug': slug, 'count': 1}
    return sorted(counts.values(), key=lambda c: c['count'], reverse=True)
