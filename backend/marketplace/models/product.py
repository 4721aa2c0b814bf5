from datetime import datetime


FALLBACK_IMAGE = '/assets/news-images/fallback.jpg'
FALLBACK_DESCRIPTION = 'No description available.'
FALLBACK_NAME = 'Unnamed Product'


class Product:
    """Marketplace catalog product"""

    PRODUCT_TYPES = [
        'mcp_server',    # MCP 服务端连接器
        'mcp_client',    # MCP 客户端
        'ai_agent',      # AI 代理
        'ready_to_use',  # 开箱即用套件
    ]

    # 筛选面板里的显示名称 -> 存储值
    TYPE_LABELS = {
        'MCP Servers': 'mcp_server',
        'MCP Clients': 'mcp_client',
        'AI Agents': 'ai_agent',
        'Ready to Use': 'ready_to_use',
    }

    # 卡片角标上的简写
    TYPE_BADGES = {
        'mcp_server': 'server',
        'mcp_client': 'client',
        'ai_agent': 'ai-agent',
        'ready_to_use': 'ready-to-use',
    }

    def __init__(self, id, name, description=None, category=None, categories=None,
                 product_type=None, stars_numeric=None, price=0, official=False,
                 is_featured=False, tags=None, image_url=None, created_at=None):
        self.id = id
        self.name = name
        self.description = description
        self.category = category
        self.categories = categories  # 列表，支持多分类
        self.product_type = product_type
        self.stars_numeric = stars_numeric
        self.price = price
        self.official = official
        self.is_featured = is_featured
        self.tags = tags or []
        self.image_url = image_url
        self.created_at = created_at

    @property
    def badge(self):
        """Friendly type label shown on product cards."""
        return self.TYPE_BADGES.get(self.product_type, self.product_type or 'server')

    def to_dict(self):
        """转换为字典"""
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'category': self.category,
            'categories': self.categories,
            'product_type': self.product_type,
            'type_badge': self.badge,
            'stars_numeric': self.stars_numeric,
            'price': self.price,
            'official': self.official,
            'is_featured': self.is_featured,
            'tags': self.tags,
            'image_url': self.image_url,
            'created_at': self.created_at,
        }

    @staticmethod
    def from_dict(data):
        """从字典创建产品，缺失字段使用占位值"""
        categories = data.get('categories')
        if not isinstance(categories, list) or not categories:
            categories = [data['category']] if data.get('category') else None
        created_at = data.get('created_at') or data.get('createdAt') or data.get('addedAt')
        if isinstance(created_at, datetime):
            created_at = created_at.isoformat()
        return Product(
            id=data.get('id'),
            name=data.get('name') or FALLBACK_NAME,
            description=data.get('description') or FALLBACK_DESCRIPTION,
            category=data.get('category'),
            categories=categories,
            product_type=data.get('product_type'),
            stars_numeric=data['stars_numeric'] if data.get('stars_numeric') is not None else data.get('stars'),
            price=data.get('price') or 0,
            official=data.get('official') is True,
            is_featured=bool(data.get('is_featured')),
            tags=data.get('tags') if isinstance(data.get('tags'), list) else [],
            image_url=data.get('image_url') or FALLBACK_IMAGE,
            created_at=created_at,
        )

    @classmethod
    def resolve_type(cls, value):
        """Map a display label ('AI Agents') or raw value ('ai_agent') to the stored value."""
        if not value:
            return None
        if value in cls.TYPE_LABELS:
            return cls.TYPE_LABELS[value]
        normalized = str(value).strip().lower().replace('-', '_')
        if normalized in cls.PRODUCT_TYPES:
            return normalized
        for product_type, badge in cls.TYPE_BADGES.items():
            if badge == str(value).strip().lower():
                return product_type
        return None
