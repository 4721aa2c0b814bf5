"""
管理后台表单 - 新闻 / 课程

校验 (pydantic) -> 先上传图片 -> 用返回的 url 替换字段 -> POST 内容。
任何一张图片上传失败都不会发出最终的 POST。
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Mapping, Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from marketplace.logger import get_logger
from .api_client import MarketplaceApiClient, MarketplaceApiError

logger = get_logger(__name__)

NEWS_ENDPOINT = '/admin/news'
COURSES_ENDPOINT = '/admin/courses'
UPLOAD_ENDPOINT = '/admin/upload'

_NON_SLUG_CHARS = re.compile(r'[^a-z0-9]+')


class FormValidationError(Exception):
    """表单校验失败，errors: 字段 -> 错误信息"""

    def __init__(self, errors: Dict[str, str]):
        super().__init__('Form validation failed')
        self.errors = errors


class ImageUploadError(Exception):
    """Image upload failed; the content was not submitted."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class SubmissionError(Exception):
    """Final POST failed (uploaded images, if any, are left in place)."""


def slugify(title: str) -> str:
    return _NON_SLUG_CHARS.sub('-', (title or '').lower()).strip('-')


def _is_url(value: str) -> bool:
    parts = urlsplit(value)
    return parts.scheme in ('http', 'https') and bool(parts.netloc)


# 与表单上显示的提示一致
FIELD_MESSAGES = {
    'title': 'Title must be at least 2 characters',
    'content': 'Content must be at least 10 characters',
    'summary': 'Summary must be less than 500 characters',
    'author': 'Author name is required',
    'category': 'Category is required',
    'description': 'Description must be at least 10 characters',
    'thumbnail': 'Please enter a valid URL',
    'instructor_name': 'Instructor name is required',
    'instructor_photo': 'Please enter a valid URL',
    'featured_image': 'Please enter a valid URL',
    'price': 'Price must be 0 or greater',
    'currency': 'Currency must be 3 characters (e.g., USD)',
    'duration_hours': 'Duration must be at least 0.5 hours',
    'category_id': 'Please select a category',
}


class NewsForm(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=2)
    slug: Optional[str] = None
    content: str = Field(min_length=10)
    summary: Optional[str] = Field(default=None, max_length=500)
    author: str = Field(default='ACHAI Team', min_length=2)
    category: str = Field(min_length=2)
    is_published: bool = False
    featured_image: Optional[str] = None

    @field_validator('featured_image')
    @classmethod
    def _check_image(cls, value: Optional[str]) -> Optional[str]:
        if value and not _is_url(value):
            raise ValueError('invalid url')
        return value or None


class CourseForm(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=2)
    slug: Optional[str] = None
    description: str = Field(min_length=10)
    content: str = Field(min_length=10)
    thumbnail: str = ''
    instructor_name: str = Field(min_length=2)
    instructor_bio: Optional[str] = None
    instructor_photo: str = ''
    price: float = Field(default=0, ge=0)
    currency: str = Field(default='USD', min_length=3, max_length=3)
    duration_hours: float = Field(default=1, ge=0.5)
    difficulty_level: Literal['beginner', 'intermediate', 'advanced'] = 'beginner'
    category_id: int = Field(gt=0)
    tags: List[str] = Field(default_factory=list)
    status: Literal['draft', 'published', 'archived'] = 'draft'
    enrollment_limit: Optional[int] = None
    prerequisites: List[str] = Field(default_factory=list)
    learning_objectives: List[str] = Field(default_factory=list)

    @field_validator('thumbnail', 'instructor_photo')
    @classmethod
    def _check_url_or_empty(cls, value: str) -> str:
        if value and not _is_url(value):
            raise ValueError('invalid url')
        return value

    @field_validator('enrollment_limit', mode='before')
    @classmethod
    def _blank_limit(cls, value: Any) -> Any:
        return None if value in ('', None) else value


def _flatten_errors(error: ValidationError) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for item in error.errors():
        field = '.'.join(str(part) for part in item.get('loc', ())) or '__root__'
        errors.setdefault(field, FIELD_MESSAGES.get(field, item.get('msg', 'Invalid value')))
    return errors


def validate_form(form_cls, data: Mapping[str, Any]):
    try:
        return form_cls.model_validate(dict(data))
    except ValidationError as e:
        raise FormValidationError(_flatten_errors(e)) from e


@dataclass
class ImageFile:
    """An image waiting to be uploaded."""
    filename: str
    content: bytes
    content_type: str = 'application/octet-stream'


class AdminSubmitter:
    """新闻/课程提交"""

    def __init__(self, client: MarketplaceApiClient):
        self.client = client

    def _upload(self, field: str, image: ImageFile) -> str:
        try:
            url = self.client.upload_image(image.filename, image.content, image.content_type,
                                           endpoint=UPLOAD_ENDPOINT)
        except MarketplaceApiError as e:
            logger.error("Error uploading image for %s: %s", field, e)
            raise ImageUploadError(field, 'Failed to upload image') from e
        logger.info("Uploaded %s -> %s", image.filename, url)
        return url

    def _post(self, endpoint: str, payload: Dict[str, Any], uploaded: List[str]) -> Dict[str, Any]:
        try:
            result = self.client.post_json(endpoint, payload)
        except MarketplaceApiError as e:
            if uploaded:
                logger.warning("Submission to %s failed, uploaded images left orphaned: %s", endpoint, uploaded)
            logger.error("Error submitting %s: %s", endpoint, e)
            raise SubmissionError(str(e)) from e
        return result if isinstance(result, dict) else {'data': result}

    def submit_news(self, data: Mapping[str, Any], image: Optional[ImageFile] = None) -> Dict[str, Any]:
        form = validate_form(NewsForm, data)

        uploaded: List[str] = []
        payload = form.model_dump()
        if image is not None:
            payload['featured_image'] = self._upload('featured_image', image)
            uploaded.append(payload['featured_image'])

        if not payload.get('slug'):
            payload['slug'] = slugify(payload['title'])
        if payload.get('is_published') and not data.get('published_at'):
            payload['published_at'] = datetime.now(timezone.utc).isoformat()
        elif data.get('published_at'):
            payload['published_at'] = data['published_at']

        return self._post(NEWS_ENDPOINT, payload, uploaded)

    def submit_course(self, data: Mapping[str, Any], thumbnail: Optional[ImageFile] = None,
                      instructor_photo: Optional[ImageFile] = None) -> Dict[str, Any]:
        form = validate_form(CourseForm, data)

        uploaded: List[str] = []
        payload = form.model_dump()
        for field, image in (('thumbnail', thumbnail), ('instructor_photo', instructor_photo)):
            if image is None:
                continue
            payload[field] = self._upload(field, image)
            uploaded.append(payload[field])

        if not payload.get('slug'):
            payload['slug'] = slugify(payload['title'])

        return self._post(COURSES_ENDPOINT, payload, uploaded)
