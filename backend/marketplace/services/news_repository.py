"""
新闻缓存仓库 - news_data 缓存 (JSON 文件，配置 MONGO_URI 时使用 MongoDB)
"""

import json
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from config import Config
from marketplace.logger import get_logger

logger = get_logger(__name__)

NEWS_CACHE_KEY = 'news_data'

# MongoDB connection
_mongo_client = None
_mongo_db = None


def _mongo_uri_configured() -> bool:
    """Whether MONGO_URI is explicitly configured."""
    return bool(Config.MONGO_URI)


def get_mongo_db():
    """Get MongoDB connection (lazy initialization)."""
    global _mongo_client, _mongo_db
    if not _mongo_uri_configured():
        return None
    if _mongo_db is not None:
        return _mongo_db
    try:
        _mongo_client = MongoClient(Config.MONGO_URI, serverSelectionTimeoutMS=3000)
        _mongo_client.admin.command('ping')
        _mongo_db = _mongo_client.get_database()
        logger.info("Connected to MongoDB for the news cache")
        return _mongo_db
    except PyMongoError as e:
        logger.warning("MongoDB connection failed: %s, using JSON cache file", e)
        return None


class NewsRepository:
    """新闻缓存读写"""

    cache_file = Config.NEWS_CACHE_FILE

    @classmethod
    def load_cached(cls) -> Optional[List[Dict[str, Any]]]:
        """读取缓存的文章列表，没有缓存时返回 None"""
        db = get_mongo_db()
        if db is not None:
            try:
                doc = db.cache.find_one({'_id': NEWS_CACHE_KEY})
            except PyMongoError as e:
                logger.warning("MongoDB news cache read failed: %s", e)
                doc = None
            if doc and isinstance(doc.get('value'), list):
                return doc['value']
            return None

        if not os.path.exists(cls.cache_file):
            return None
        try:
            with open(cls.cache_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Failed to read news cache %s: %s", cls.cache_file, e)
            return None

        articles = data.get(NEWS_CACHE_KEY) if isinstance(data, dict) else None
        return articles if isinstance(articles, list) else None

    @classmethod
    def save_cached(cls, articles: List[Dict[str, Any]]) -> bool:
        """写入缓存，失败只记录日志"""
        updated_at = datetime.now().isoformat()

        db = get_mongo_db()
        if db is not None:
            try:
                db.cache.update_one(
                    {'_id': NEWS_CACHE_KEY},
                    {'$set': {'value': articles, 'updated_at': updated_at}},
                    upsert=True,
                )
                return True
            except PyMongoError as e:
                logger.warning("MongoDB news cache write failed: %s", e)
                return False

        try:
            os.makedirs(os.path.dirname(cls.cache_file) or '.', exist_ok=True)
            with open(cls.cache_file, 'w', encoding='utf-8') as f:
                json.dump({NEWS_CACHE_KEY: articles, 'updated_at': updated_at}, f,
                          ensure_ascii=False, indent=2)
            return True
        except (OSError, TypeError) as e:
            logger.warning("Failed to write news cache %s: %s", cls.cache_file, e)
            return False
