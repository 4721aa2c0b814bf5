"""
Browse state - 目录页的筛选条件与分页状态

BrowseCriteria 是 URL 查询参数的唯一 schema: 读取 (from_query_args) 和
写回 (to_query_args) 共用同一份字段表，只写出与默认值不同的参数。
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional

from config import Config
from .env_utils import parse_bool
from .product_filters import DEFAULT_PRICE_MAX, DEFAULT_PRICE_MIN
from .product_sorting import DEFAULT_SORT, resolve_sort

DEFAULT_VIEW = 'categorized'
VIEW_MODES = ('categorized', 'viewAll')

DEFAULT_ITEMS_PER_PAGE = Config.DEFAULT_ITEMS_PER_PAGE
ITEMS_PER_PAGE_OPTIONS = tuple(Config.ITEMS_PER_PAGE_OPTIONS)


def _split_csv(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [part.strip() for part in str(raw).split(',') if part.strip()]


def _parse_number(raw: Optional[str], default: float) -> float:
    if raw is None or str(raw).strip() == '':
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(value):
        return default
    return int(value) if value.is_integer() else value


def _parse_int(raw: Optional[str], default: int, minimum: int = 1, maximum: int = 10_000) -> int:
    """Parse int query params with guard rails."""
    try:
        parsed = int(raw)
    except (TypeError, ValueError):
        return default
    return max(minimum, min(maximum, parsed))


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


@dataclass
class BrowseCriteria:
    """One criteria object for filter_and_sort + pagination."""
    query: str = ''
    category: str = 'all'
    sort: str = DEFAULT_SORT
    view: str = DEFAULT_VIEW
    types: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    ratings: List[int] = field(default_factory=list)
    min_stars: float = 0
    price_min: float = DEFAULT_PRICE_MIN
    price_max: float = DEFAULT_PRICE_MAX
    official_only: bool = False
    has_github: bool = False
    has_npm: bool = False
    page: int = 1
    limit: int = DEFAULT_ITEMS_PER_PAGE

    @classmethod
    def from_query_args(cls, args: Mapping[str, Any]) -> 'BrowseCriteria':
        ratings = []
        for raw in _split_csv(args.get('ratings')):
            try:
                ratings.append(int(float(raw)))
            except (ValueError, OverflowError):
                continue

        view = args.get('view') or DEFAULT_VIEW
        if view not in VIEW_MODES:
            view = DEFAULT_VIEW

        return cls(
            query=(args.get('q') or '').strip(),
            category=(args.get('category') or 'all').strip() or 'all',
            sort=resolve_sort(args.get('sort')),
            view=view,
            types=_split_csv(args.get('types')),
            categories=_split_csv(args.get('categories')),
            tags=_split_csv(args.get('tags')),
            ratings=ratings,
            min_stars=_parse_number(args.get('minStars'), 0),
            price_min=_parse_number(args.get('priceMin'), DEFAULT_PRICE_MIN),
            price_max=_parse_number(args.get('priceMax'), DEFAULT_PRICE_MAX),
            official_only=parse_bool(args.get('official')),
            has_github=parse_bool(args.get('github')),
            has_npm=parse_bool(args.get('npm')),
            page=_parse_int(args.get('page'), default=1),
            limit=normalize_items_per_page(_parse_int(args.get('limit'), default=DEFAULT_ITEMS_PER_PAGE)),
        )

    def to_query_args(self) -> Dict[str, str]:
        """Serialize only the values that differ from the defaults."""
        params: Dict[str, str] = {}
        if self.query:
            params['q'] = self.query
        if self.category != 'all':
            params['category'] = self.category
        if self.sort != DEFAULT_SORT:
            params['sort'] = self.sort
        if self.view != DEFAULT_VIEW:
            params['view'] = self.view
        if self.types:
            params['types'] = ','.join(self.types)
        if self.categories:
            params['categories'] = ','.join(self.categories)
        if self.tags:
            params['tags'] = ','.join(self.tags)
        if self.ratings:
            params['ratings'] = ','.join(str(r) for r in self.ratings)
        if self.min_stars > 0:
            params['minStars'] = _format_number(self.min_stars)
        if self.price_min > DEFAULT_PRICE_MIN:
            params['priceMin'] = _format_number(self.price_min)
        if self.price_max < DEFAULT_PRICE_MAX:
            params['priceMax'] = _format_number(self.price_max)
        if self.official_only:
            params['official'] = 'true'
        if self.has_github:
            params['github'] = 'true'
        if self.has_npm:
            params['npm'] = 'true'
        if self.page != 1:
            params['page'] = str(self.page)
        if self.limit != DEFAULT_ITEMS_PER_PAGE:
            params['limit'] = str(self.limit)
        return params

    @property
    def has_price_filter(self) -> bool:
        """默认区间 (0-1000) 视为未筛选价格"""
        return self.price_min > DEFAULT_PRICE_MIN or self.price_max < DEFAULT_PRICE_MAX

    def with_changes(self, **changes) -> 'BrowseCriteria':
        return replace(self, **changes)

    def active_filter_count(self) -> int:
        """Badge count shown next to the filter toggle."""
        return (
            (1 if self.official_only else 0)
            + (1 if self.has_github else 0)
            + (1 if self.has_npm else 0)
            + (1 if self.min_stars > 0 else 0)
            + len(self.tags)
            + len(self.types)
            + len(self.categories)
            + len(self.ratings)
        )


def normalize_items_per_page(value: int) -> int:
    """Unexpected page sizes fall back to the default."""
    return value if value in ITEMS_PER_PAGE_OPTIONS else DEFAULT_ITEMS_PER_PAGE


class PageState:
    """分页状态 (当前页 / 每页数量)，分页在过滤之后进行"""

    def __init__(self, items_per_page: int = DEFAULT_ITEMS_PER_PAGE, current_page: int = 1):
        self.items_per_page = normalize_items_per_page(items_per_page)
        self.current_page = max(1, current_page)
        self.total_items = 0

    @classmethod
    def for_results(cls, total_items: int, current_page: int = 1,
                    items_per_page: int = DEFAULT_ITEMS_PER_PAGE) -> 'PageState':
        state = cls(items_per_page, current_page)
        state.total_items = total_items
        state.clamp()
        return state

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_items / self.items_per_page)

    def clamp(self) -> None:
        # 当前页超出总页数时回到第一页
        if self.current_page > self.total_pages > 0:
            self.current_page = 1

    def set_total(self, total_items: int) -> None:
        """Result count changed after a filter change: go back to page 1."""
        if total_items != self.total_items:
            self.current_page = 1
        self.total_items = total_items
        self.clamp()

    def change_page(self, page: int) -> bool:
        if 1 <= page <= self.total_pages:
            self.current_page = page
            return True
        return False

    def change_items_per_page(self, items_per_page: int) -> None:
        self.items_per_page = normalize_items_per_page(items_per_page)
        self.current_page = 1

    def slice(self, items: List[Any]) -> List[Any]:
        start = (self.current_page - 1) * self.items_per_page
        return items[start:start + self.items_per_page]

    def to_dict(self) -> Dict[str, int]:
        return {
            'total': self.total_items,
            'totalPages': self.total_pages,
            'currentPage': self.current_page,
            'limit': self.items_per_page,
        }
