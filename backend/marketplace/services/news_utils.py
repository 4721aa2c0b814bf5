"""
新闻工具函数 - 文章校验、图片兜底、示例文章
"""

import copy
import hashlib
import random
import re
import string
import time
from datetime import date, datetime
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit, urlunsplit

from bs4 import BeautifulSoup

from marketplace.logger import get_logger

logger = get_logger(__name__)

FALLBACK_IMAGE = '/assets/news-images/fallback.jpg'

CATEGORY_IMAGES = {
    'Model Releases': '/assets/news-images/claude3.jpg',
    'Research Papers': '/assets/news-images/anthropic.jpg',
    'Business': '/assets/news-images/anthropic.jpg',
    'Ethics & Safety': '/assets/news-images/anthropic.jpg',
    'Applications': '/assets/news-images/fallback.jpg',
    'Generative AI': '/assets/news-images/sora.jpg',
    'Open Source': '/assets/news-images/llama3.jpg',
    'Developer Tools': '/assets/news-images/fallback.jpg',
}

SUMMARY_PREVIEW_LENGTH = 150
SUMMARY_MAX_LENGTH = 250

_MARKDOWN_HEADER = re.compile(r'^#+ .+$', re.MULTILINE)
_ID_ALPHABET = string.ascii_lowercase + string.digits


def validate_url(url: Optional[str]) -> Optional[str]:
    """Absolute URLs are forced to https, site paths pass through, the rest is rejected."""
    if not url:
        return None
    parts = urlsplit(str(url).strip())
    if parts.scheme and parts.netloc:
        if parts.scheme == 'http':
            parts = parts._replace(scheme='https')
        return urlunsplit(parts)
    if str(url).startswith('/'):
        return url
    logger.warning("Invalid URL: %s", url)
    return None


def get_fallback_url(category: Optional[str]) -> str:
    """按分类返回兜底图片"""
    return CATEGORY_IMAGES.get(category or '', FALLBACK_IMAGE)


def _generate_article_id() -> str:
    suffix = ''.join(random.choice(_ID_ALPHABET) for _ in range(9))
    return f"article-{int(time.time() * 1000)}-{suffix}"


def _summary_from_content(content: str) -> str:
    # 去掉 HTML 和 markdown 标题，取第一段
    text = BeautifulSoup(content, 'html.parser').get_text()
    text = _MARKDOWN_HEADER.sub('', text).strip()
    first_paragraph = text.split('\n\n')[0].strip()
    if len(first_paragraph) > SUMMARY_PREVIEW_LENGTH:
        return first_paragraph[:SUMMARY_PREVIEW_LENGTH] + '...'
    return first_paragraph


def _normalize_date(value: Any) -> Optional[str]:
    """ISO 8601 原样保留，RFC 2822 (RSS pubDate) 转成 ISO；无法解析返回 None"""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    text = str(value).strip()
    if not text:
        return None
    try:
        datetime.fromisoformat(text.replace('Z', '+00:00'))
        return text
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(text).isoformat()
    except (TypeError, ValueError, IndexError):
        return None


def stable_article_id(article: Dict[str, Any]) -> str:
    """Same title/date/link always gives the same id."""
    key = '|'.join(str(article.get(field) or '') for field in ('title', 'date', 'source_url', 'url'))
    return 'article-' + hashlib.sha1(key.encode('utf-8')).hexdigest()[:16]


def validate_article(article: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    校验并补全文章字段，返回副本，不修改输入。

    缺失字段的兜底值:
    - id: article-<毫秒时间戳>-<9位随机串>
    - title: "Untitled Article"
    - summary: 正文第一段 (最多150字符)，无正文则固定文案；超过250字符截断
    - image_path: 没有任何图片时按分类兜底
    - date: 今天 (缺失或无法解析)
    - category / tags / author / source
    """
    if not article:
        return None

    validated = copy.deepcopy(article)
    if validated.get('category') and not isinstance(validated['category'], str):
        validated['category'] = str(validated['category'])

    if not validated.get('id'):
        validated['id'] = _generate_article_id()

    if not validated.get('title'):
        validated['title'] = 'Untitled Article'

    if not validated.get('summary'):
        content = validated.get('content')
        if content:
            validated['summary'] = _summary_from_content(str(content))
        else:
            validated['summary'] = 'No summary available for this article.'

    summary = validated.get('summary')
    if summary and not isinstance(summary, str):
        summary = validated['summary'] = str(summary)
    if summary and len(summary) > SUMMARY_MAX_LENGTH:
        validated['summary'] = summary[:SUMMARY_MAX_LENGTH] + '...'

    if validated.get('image_url'):
        validated['image_url'] = validate_url(validated['image_url'])

    if not validated.get('image_url') and not validated.get('image_path'):
        validated['image_path'] = get_fallback_url(validated.get('category'))

    normalized_date = _normalize_date(validated['date']) if validated.get('date') else None
    validated['date'] = normalized_date or date.today().isoformat()

    if not validated.get('category'):
        validated['category'] = 'AI News'

    if not isinstance(validated.get('tags'), list):
        validated['tags'] = [validated['category'].lower()]

    if not validated.get('author'):
        validated['author'] = 'AI News Team'

    if not validated.get('source'):
        validated['source'] = 'Internal'

    return validated


# 示例文章（API 与缓存都不可用时使用）
EXAMPLE_ARTICLES = [
    {
        'id': 'news-1',
        'title': 'Claude 3 Released with Enhanced MCP Support',
        'summary': (
            'Anthropic announces Claude 3 with improved Model Context Protocol capabilities, '
            'featuring better integration with external tools and more efficient processing '
            'of diverse data types.'
        ),
        'content': (
            '# Claude 3 Released with Enhanced MCP Support\n\n'
            'Anthropic has announced Claude 3, featuring major improvements to MCP support. '
            'The new model allows for more seamless interaction with tools and better contextual '
            'understanding when working with various data sources.\n\n'
            'Key improvements include:\n\n'
            '- Enhanced reasoning capabilities when working with multiple tools\n'
            '- Better recognition of data formats\n'
            '- Reduced hallucination when processing complex inputs\n'
            '- Improved recall of information from lengthy contexts'
        ),
        'image_path': '/assets/news-images/claude3.jpg',
        'author': 'Anthropic Team',
        'date': '2024-03-04',
        'category': 'Model Releases',
        'source': 'Anthropic',
        'tags': ['claude', 'announcement', 'release', 'mcp'],
    },
    {
        'id': 'news-2',
        'title': 'New MCP Servers Available in Marketplace',
        'summary': (
            'Several new MCP servers have been added to the marketplace, expanding the range '
            'of tools available for AI assistants to use.'
        ),
        'content': (
            '# New MCP Servers Available\n\n'
            'The MCP ecosystem continues to grow with several new servers added this month. '
            'These include specialized tools for database access, API integration, and more '
            'advanced computer vision capabilities.\n\n'
            '- **PostgreSQL Server**: Direct database querying and management\n'
            '- **GitHub Integration**: Repository management and issue tracking\n'
            '- **Image Analysis**: Advanced computer vision for detailed image understanding\n'
            '- **PDF Processing**: Extract and manipulate content from PDF documents'
        ),
        'image_path': '/assets/news-images/anthropic.jpg',
        'author': 'MCP Team',
        'date': '2024-04-15',
        'category': 'Developer Tools',
        'source': 'MCP Marketplace',
        'tags': ['marketplace', 'servers', 'updates', 'tools'],
    },
    {
        'id': 'news-3',
        'title': 'Building Custom MCP Servers: Best Practices',
        'summary': (
            'Learn how to create effective custom MCP servers that follow best practices for '
            'security, performance, and usability.'
        ),
        'content': (
            '# Building Custom MCP Servers: Best Practices\n\n'
            'As the MCP ecosystem grows, more developers are creating custom servers to extend '
            'the capabilities of AI assistants.\n\n'
            '## Security Considerations\n\n'
            'Always validate inputs, use proper authentication, and avoid exposing sensitive '
            'information.\n\n'
            '## Performance Optimization\n\n'
            'Implement caching strategies, use efficient data structures, and consider '
            'scalability from the start.'
        ),
        'image_path': '/assets/news-images/fallback.jpg',
        'author': 'Developer Relations',
        'date': '2024-05-01',
        'category': 'Developer Tools',
        'source': 'MCP Documentation',
        'tags': ['development', 'best practices', 'security', 'tutorials'],
    },
]


def get_example_articles() -> List[Dict[str, Any]]:
    return copy.deepcopy(EXAMPLE_ARTICLES)
