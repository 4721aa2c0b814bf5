import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# 项目根目录
PROJECT_ROOT = Path(__file__).parent.parent


class Config:
    """应用配置"""
    SECRET_KEY = os.getenv('SECRET_KEY', 'mcp-marketplace-secret-key')

    # 上游 REST API (原前端的 VITE_API_BASE_URL / 硬编码 localhost:3001 统一为一个配置)
    API_BASE_URL = os.getenv('MARKETPLACE_API_BASE_URL', 'http://localhost:3001/api').rstrip('/')
    REQUEST_TIMEOUT = float(os.getenv('REQUEST_TIMEOUT', '10'))

    # 内容语言: en / pt
    DEFAULT_LANGUAGE = os.getenv('DEFAULT_LANGUAGE', 'en')

    # 管理后台上传使用的 Bearer token
    ADMIN_TOKEN = os.getenv('ADMIN_TOKEN', '')

    # 数据状态轮询间隔 (秒)
    DATA_STATUS_POLL_SECONDS = int(os.getenv('DATA_STATUS_POLL_SECONDS', '30'))

    # 新闻缓存 (news_data):
    # 1) 设置 MONGO_URI 时写入 MongoDB
    # 2) 否则写入本地 JSON 文件
    NEWS_CACHE_FILE = os.getenv('NEWS_CACHE_FILE', str(PROJECT_ROOT / 'data' / 'news_data.json'))
    MONGO_URI = os.getenv('MONGO_URI', '')

    # RSS/Atom 新闻源 (逗号分隔)，供 refresh_news.py 与 /admin/news/refresh 使用
    NEWS_FEED_SOURCES = [
        url.strip()
        for url in os.getenv('NEWS_FEED_SOURCES', '').split(',')
        if url.strip()
    ]

    # API 配置
    API_PREFIX = '/api/v1'

    # CORS allowlist (comma-separated origins)
    # Example:
    # CORS_ALLOWED_ORIGINS=https://marketplace.example.com,https://www.marketplace.example.com
    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.getenv('CORS_ALLOWED_ORIGINS', '').split(',')
        if origin.strip()
    ]

    # 分页
    DEFAULT_ITEMS_PER_PAGE = 10
    ITEMS_PER_PAGE_OPTIONS = (10, 20, 30)

    RATE_LIMIT_PER_MINUTE = int(os.getenv('RATE_LIMIT_PER_MINUTE', '100'))

    # 日志
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
    LOG_FILE = os.getenv('LOG_FILE', '')
    LOG_MAX_BYTES = int(os.getenv('LOG_MAX_BYTES', str(2 * 1024 * 1024)))
    LOG_BACKUPS = int(os.getenv('LOG_BACKUPS', '3'))
    LOG_TO_STDOUT = os.getenv('LOG_TO_STDOUT', 'true').lower() == 'true'

    # Flask 环境
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
