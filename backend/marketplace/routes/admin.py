import hmac

from flask import Blueprint, current_app, jsonify, request
from marketplace.logger import get_logger
from marketplace.services.admin_forms import (
    AdminSubmitter,
    FormValidationError,
    ImageFile,
    ImageUploadError,
    SubmissionError,
)
from marketplace.services.env_utils import sanitize_env_value
from marketplace.services.news_service import NewsService

logger = get_logger(__name__)

admin_bp = Blueprint('admin', __name__)

LIST_FIELDS = ('tags', 'prerequisites', 'learning_objectives')


def _submitter():
    return AdminSubmitter(current_app.extensions['marketplace']['client'])


def _form_data():
    """JSON body 或 multipart 表单 (列表字段可重复或逗号分隔)"""
    if request.is_json:
        return request.get_json(silent=True) or {}
    data = request.form.to_dict()
    for field in LIST_FIELDS:
        values = request.form.getlist(field)
        if len(values) == 1 and ',' in values[0]:
            values = [v.strip() for v in values[0].split(',') if v.strip()]
        if values:
            data[field] = values
    return data


def _image(*names):
    for name in names:
        storage = request.files.get(name)
        if storage and storage.filename:
            return ImageFile(
                filename=storage.filename,
                content=storage.read(),
                content_type=storage.mimetype or 'application/octet-stream',
            )
    return None


def _submit(action):
    try:
        result = action()
        return jsonify({
            'success': True,
            'data': result,
            'message': 'Saved successfully'
        }), 201
    except FormValidationError as e:
        return jsonify({
            'success': False,
            'errors': e.errors,
            'message': 'Validation failed'
        }), 400
    except ImageUploadError as e:
        return jsonify({
            'success': False,
            'errors': {e.field: str(e)},
            'message': str(e)
        }), 502
    except SubmissionError as e:
        return jsonify({
            'success': False,
            'message': str(e)
        }), 502
    except Exception as e:
        logger.exception("admin submission failed")
        return jsonify({
            'success': False,
            'message': str(e)
        }), 500


@admin_bp.route('/news', methods=['POST'])
def create_news():
    """提交新闻 (可附带 image / featured_image 文件)"""
    return _submit(lambda: _submitter().submit_news(
        _form_data(), image=_image('image', 'featured_image')))


@admin_bp.route('/courses', methods=['POST'])
def create_course():
    """提交课程 (可附带 thumbnail / instructor_photo 文件)"""
    return _submit(lambda: _submitter().submit_course(
        _form_data(),
        thumbnail=_image('thumbnail'),
        instructor_photo=_image('instructor_photo'),
    ))


def _authorized():
    """配置了 ADMIN_TOKEN 时要求 Authorization: Bearer <token>"""
    token = sanitize_env_value(current_app.config.get('ADMIN_TOKEN'))
    if not token:
        return True
    header = request.headers.get('Authorization', '')
    return hmac.compare_digest(header, f'Bearer {token}')


@admin_bp.route('/news/refresh', methods=['POST'])
def refresh_news():
    """从 RSS/Atom 源合并新文章到新闻缓存

    Body (可选): {"sources": ["https://...", {"url": "...", "category": "..."}]}
    默认使用 NEWS_FEED_SOURCES。
    """
    if not _authorized():
        return jsonify({
            'success': False,
            'message': 'Unauthorized'
        }), 401
    try:
        body = request.get_json(silent=True) or {}
        sources = body.get('sources') or current_app.config.get('NEWS_FEED_SOURCES') or []
        if not isinstance(sources, list) or not sources:
            return jsonify({
                'success': False,
                'message': 'No feed sources configured'
            }), 400
        articles = NewsService.refresh_from_feeds(sources)
        return jsonify({
            'success': True,
            'data': {'count': len(articles)},
            'message': 'News cache refreshed'
        })
    except Exception as e:
        logger.exception("refresh_news failed")
        return jsonify({
            'success': False,
            'message': str(e)
        }), 500
