"""
新闻服务

获取顺序: 上游 API -> news_data 缓存 -> 内置示例文章。
update_news 从 RSS/Atom 源合并新文章。
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import feedparser
from bs4 import BeautifulSoup

from marketplace.logger import get_logger
from .api_client import MarketplaceApiClient, MarketplaceApiError
from .news_repository import NewsRepository
from .news_utils import get_example_articles, stable_article_id, validate_article

logger = get_logger(__name__)

MAX_ENTRIES_PER_FEED = 50


def _extract_articles(payload: Any) -> Optional[List[Dict[str, Any]]]:
    """上游返回 list 或 {'articles': [...]} / {'news': [...]} / {'data': [...]}"""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ('articles', 'news', 'data'):
            if isinstance(payload.get(key), list):
                return payload[key]
    return None


def _with_ids(articles: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """没有 id 的文章用 title/date/link 生成固定 id，列表与详情查询一致"""
    keyed = []
    for article in articles:
        if isinstance(article, dict) and article and not article.get('id'):
            article = {**article, 'id': stable_article_id(article)}
        keyed.append(article)
    return keyed


def _validate_all(articles: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [a for a in (validate_article(article) for article in _with_ids(articles)) if a]


class NewsService:
    """新闻服务类"""

    _client: Optional[MarketplaceApiClient] = None

    @classmethod
    def configure(cls, client: MarketplaceApiClient) -> None:
        cls._client = client

    @classmethod
    def client(cls) -> MarketplaceApiClient:
        if cls._client is None:
            cls._client = MarketplaceApiClient()
        return cls._client

    # ========== 获取 ==========

    @classmethod
    def fetch_articles(cls, language: Optional[str] = None) -> Dict[str, Any]:
        """返回 {'articles': [...], 'source': 'api' | 'cache' | 'examples'}"""
        try:
            articles = _extract_articles(cls.client().get_news(language=language))
            if articles is None:
                raise MarketplaceApiError("Unexpected /news payload")
        except MarketplaceApiError as e:
            logger.warning("Error fetching news, falling back: %s", e)
        else:
            validated = _validate_all(articles)
            NewsRepository.save_cached(validated)
            return {'articles': validated, 'source': 'api'}

        cached = NewsRepository.load_cached()
        if cached:
            logger.info("Using %d cached news articles", len(cached))
            return {'articles': _validate_all(cached), 'source': 'cache'}

        logger.info("Using example news articles")
        return {'articles': _validate_all(get_example_articles()), 'source': 'examples'}

    @classmethod
    def get_articles(cls, category: Optional[str] = None, tag: Optional[str] = None,
                     search: Optional[str] = None, language: Optional[str] = None) -> Dict[str, Any]:
        """
        获取新闻列表

        参数:
        - category: 分类 ('all' 或空表示不过滤)
        - tag: 标签 (不区分大小写)
        - search: 标题/摘要/正文关键词
        """
        result = cls.fetch_articles(language=language)
        articles = result['articles']

        if category and category != 'all':
            articles = [a for a in articles if a.get('category') == category]

        if tag:
            tag_lower = tag.lower()
            articles = [a for a in articles if tag_lower in [str(t).lower() for t in a.get('tags') or []]]

        if search and search.strip():
            needle = search.strip().lower()
            articles = [
                a for a in articles
                if any(needle in str(a.get(field) or '').lower() for field in ('title', 'summary', 'content'))
            ]

        return {'articles': articles, 'source': result['source']}

    @classmethod
    def get_article(cls, article_id: str, language: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """按 id 或 slug 查找文章"""
        for article in cls.fetch_articles(language=language)['articles']:
            if str(article.get('id')) == article_id or article.get('slug') == article_id:
                return article
        return None

    @classmethod
    def get_categories(cls) -> List[str]:
        """新闻分类，上游不可用时从文章中统计"""
        try:
            payload = cls.client().get_news_categories()
        except MarketplaceApiError as e:
            logger.warning("Error fetching news categories: %s", e)
            payload = None

        if isinstance(payload, dict):
            payload = payload.get('categories')
        if isinstance(payload, list):
            return [c.get('name') if isinstance(c, dict) else str(c) for c in payload]

        seen: List[str] = []
        for article in cls.fetch_articles()['articles']:
            category = article.get('category')
            if category and category not in seen:
                seen.append(category)
        return seen

    # ========== RSS 更新 ==========

    @classmethod
    def refresh_from_feeds(cls, sources: List[Any]) -> List[Dict[str, Any]]:
        """合并 RSS 新文章到缓存"""
        existing = NewsRepository.load_cached() or []
        articles = update_news(sources, existing)
        NewsRepository.save_cached(articles)
        return articles


def _entry_date(entry: Dict[str, Any]) -> Optional[str]:
    parsed = entry.get('published_parsed') or entry.get('updated_parsed')
    if not parsed:
        return None
    return datetime(*parsed[:6]).date().isoformat()


def _entry_to_article(entry: Dict[str, Any], source: Dict[str, Any], feed_title: str) -> Dict[str, Any]:
    summary = entry.get('summary', '') or entry.get('description', '')
    if summary:
        summary = BeautifulSoup(summary, 'html.parser').get_text().strip()

    article = {
        'id': entry.get('id') or entry.get('link') or None,
        'title': (entry.get('title') or '').strip(),
        'summary': summary,
        'date': _entry_date(entry),
        'source': source.get('name') or feed_title,
        'source_url': entry.get('link'),
        'category': source.get('category'),
    }
    terms = [t.get('term') for t in entry.get('tags') or [] if t.get('term')]
    if terms:
        article['tags'] = terms
    return article


def update_news(sources: Any, existing: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
    """
    从 RSS/Atom 源拉取文章并与已有文章合并

    sources: URL 字符串或 {'url', 'name', 'category'} 字典列表。
    已存在 id 的文章被跳过，新文章在前，按日期倒序，全部经过 validate_article。
    sources 无效时原样返回 existing。
    """
    existing = list(existing or [])
    if not sources or not isinstance(sources, list):
        logger.error("Invalid sources provided to update_news")
        return existing

    fetched: List[Dict[str, Any]] = []
    for raw in sources:
        source = raw if isinstance(raw, dict) else {'url': raw}
        url = source.get('url')
        if not url:
            continue
        feed = feedparser.parse(url)
        if feed.get('bozo') and not feed.entries:
            logger.warning("Failed to parse feed %s: %s", url, feed.get('bozo_exception'))
            continue
        feed_title = (feed.get('feed') or {}).get('title', '')
        for entry in feed.entries[:MAX_ENTRIES_PER_FEED]:
            fetched.append(_entry_to_article(entry, source, feed_title))

    fetched = _with_ids(fetched)
    existing_ids = {a.get('id') for a in existing}
    new_articles = []
    for article in fetched:
        if article.get('id') in existing_ids:
            continue
        existing_ids.add(article.get('id'))
        new_articles.append(article)
    logger.info("update_news: %d new articles from %d sources", len(new_articles), len(sources))

    merged = _validate_all(new_articles + existing)
    merged.sort(key=lambda a: str(a.get('date') or ''), reverse=True)
    return merged
