#!/usr/bin/env python3
"""
从 RSS/Atom 源刷新新闻缓存 (news_data)

使用:
    python refresh_news.py                                   # 使用 NEWS_FEED_SOURCES
    python refresh_news.py --source https://example.com/rss  # 指定源 (可重复)
    python refresh_news.py --category "Open Source" --source https://example.com/rss
"""

import argparse
import sys

from config import Config
from marketplace.logger import get_logger
from marketplace.services.news_service import NewsService

logger = get_logger(__name__)


def build_sources(urls, category=None):
    if not category:
        return list(urls)
    return [{'url': url, 'category': category} for url in urls]


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="刷新新闻缓存")
    parser.add_argument("--source", action="append", default=[], help="RSS/Atom 地址，可重复")
    parser.add_argument("--category", default=None, help="为新文章指定分类")
    args = parser.parse_args(argv)

    urls = args.source or Config.NEWS_FEED_SOURCES
    if not urls:
        logger.error("No feed sources: pass --source or set NEWS_FEED_SOURCES")
        return 1

    articles = NewsService.refresh_from_feeds(build_sources(urls, args.category))
    logger.info("News cache now holds %d articles", len(articles))
    return 0


if __name__ == "__main__":
    sys.exit(main())
