from flask import Flask, request, jsonify
from flask_cors import CORS
from config import Config
from collections import defaultdict
import threading
import time

from marketplace.logger import setup_logging, get_logger

logger = get_logger(__name__)


# Simple in-memory rate limiter
class RateLimiter:
    """Simple in-memory rate limiter (N requests per minute per IP)"""
    def __init__(self, requests_per_minute=100):
        self.requests_per_minute = requests_per_minute
        self.requests = defaultdict(list)
        self._lock = threading.Lock()

    def is_allowed(self, key):
        now = time.time()
        minute_ago = now - 60

        with self._lock:
            # Clean old entries
            self.requests[key] = [t for t in self.requests[key] if t > minute_ago]

            # Check if allowed
            if len(self.requests[key]) >= self.requests_per_minute:
                return False

            # Record this request
            self.requests[key].append(now)
            return True


def create_app(config_object=Config, client=None):
    """创建 Flask 应用

    client: 可注入的上游 API 客户端 (测试时传入 mock)
    """
    setup_logging(config_object)

    app = Flask(__name__)
    app.config.from_object(config_object)

    # CORS: use explicit allowlist in production when provided.
    cors_origins = app.config.get('CORS_ALLOWED_ORIGINS', [])
    if cors_origins:
        CORS(app, resources={r"/api/*": {"origins": cors_origins}})
    else:
        CORS(app, resources={r"/api/*": {"origins": "*"}})

    # 上游客户端与共享状态
    from marketplace.services.api_client import MarketplaceApiClient
    from marketplace.services.app_state import AppState, DataStatusMonitor
    from marketplace.services.product_repository import ProductRepository
    from marketplace.services.news_service import NewsService
    from marketplace.services.product_feed import ProductFeed

    if client is None:
        client = MarketplaceApiClient(
            base_url=app.config['API_BASE_URL'],
            timeout=app.config['REQUEST_TIMEOUT'],
            admin_token=app.config['ADMIN_TOKEN'],
        )
    ProductRepository.configure(client)
    NewsService.configure(client)

    state = AppState()
    app.extensions['marketplace'] = {
        'client': client,
        'state': state,
        'monitor': DataStatusMonitor(client, state, interval=app.config['DATA_STATUS_POLL_SECONDS']),
        'feeds': {language: ProductFeed(client, language=language, app_state=state) for language in ('en', 'pt')},
    }

    rate_limiter = RateLimiter(requests_per_minute=app.config.get('RATE_LIMIT_PER_MINUTE', 100))

    # Rate limiting middleware
    @app.before_request
    def check_rate_limit():
        if request.path.startswith('/api/'):
            client_ip = request.headers.get('X-Forwarded-For', request.remote_addr)
            if client_ip:
                client_ip = client_ip.split(',')[0].strip()
            if not rate_limiter.is_allowed(client_ip):
                logger.warning("Rate limit exceeded for %s", client_ip)
                return jsonify({
                    'success': False,
                    'message': 'Rate limit exceeded. Please wait a moment.',
                    'error': 'TOO_MANY_REQUESTS'
                }), 429

    # 注册蓝图
    from marketplace.routes.products import products_bp, status_bp
    from marketplace.routes.news import news_bp
    from marketplace.routes.admin import admin_bp
    from marketplace.routes.feed import feed_bp

    prefix = app.config.get('API_PREFIX', '/api/v1')
    app.register_blueprint(products_bp, url_prefix=f'{prefix}/products')
    app.register_blueprint(status_bp, url_prefix=prefix)
    app.register_blueprint(news_bp, url_prefix=f'{prefix}/news')
    app.register_blueprint(feed_bp, url_prefix=f'{prefix}/feed')
    app.register_blueprint(admin_bp, url_prefix=f'{prefix}/admin')

    return app
