# Services package
#
# This package provides the catalog, news and admin services for the
# marketplace backend.
#
# Module structure:
# - api_client.py: Upstream REST API client (requests)
# - app_state.py: Shared data status + polling monitor
# - product_feed.py: Paginated product feed with stale-response protection
# - product_service.py: High-level business logic (main API)
# - product_repository.py: Catalog loading, caching, session cache
# - product_filters.py: Filtering logic
# - product_sorting.py: Sorting and row grouping
# - browse_state.py: Browse criteria (query params) and page state
# - news_utils.py / news_service.py / news_repository.py: News articles
# - admin_forms.py: Admin news/course forms and submission
#
# Import ProductService from this package:
#   from marketplace.services import ProductService

from .product_service import ProductService
from .product_repository import ProductRepository
from .news_service import NewsService
from . import product_filters
from . import product_sorting

__all__ = [
    'ProductService',
    'ProductRepository',
    'NewsService',
    'product_filters',
    'product_sorting',
]
