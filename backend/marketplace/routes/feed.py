from flask import Blueprint, current_app, jsonify, request
from marketplace.logger import get_logger

logger = get_logger(__name__)

feed_bp = Blueprint('feed', __name__)


def _feed():
    """按语言取共享的 ProductFeed (en / pt)"""
    feeds = current_app.extensions['marketplace']['feeds']
    return feeds['pt'] if request.args.get('language') == 'pt' else feeds['en']


def _parse_int(value, default):
    try:
        return max(1, int(value))
    except (TypeError, ValueError):
        return default


def _feed_response(feed, message):
    state = feed.snapshot()
    return jsonify({
        'success': state['error'] is None,
        'data': state['products'],
        'pagination': state['pagination'],
        'dataStatus': state['dataStatus'],
        'error': state['error'],
        'message': message
    })


@feed_bp.route('', methods=['GET'])
def get_feed():
    """
    上游分页列表 (不做本地过滤)

    Query:
    - q: 搜索
    - category: 分类
    - type: 产品类型 (可配合 page / limit)
    - page, limit: 分页
    - language: en / pt
    """
    try:
        feed = _feed()
        page = _parse_int(request.args.get('page'), feed.initial_page)
        limit = _parse_int(request.args.get('limit'), feed.initial_limit)

        if request.args.get('q'):
            feed.search_products(request.args['q'])
        elif request.args.get('category'):
            feed.filter_by_category(request.args['category'])
        elif request.args.get('type'):
            feed.filter_by_product_type(request.args['type'], page=page, limit=limit)
        else:
            feed.fetch_products(page, limit)
        return _feed_response(feed, '获取产品列表成功')
    except Exception as e:
        logger.exception("get_feed failed")
        return jsonify({
            'success': False,
            'data': [],
            'message': str(e)
        }), 500


@feed_bp.route('/page', methods=['POST'])
def change_feed_page():
    """翻页: 只接受 1..totalPages"""
    try:
        feed = _feed()
        body = request.get_json(silent=True) or {}
        try:
            page = int(body.get('page'))
        except (TypeError, ValueError):
            page = 0
        if not feed.change_page(page):
            return jsonify({
                'success': False,
                'data': None,
                'message': 'Page out of range'
            }), 400
        return _feed_response(feed, '翻页成功')
    except Exception as e:
        logger.exception("change_feed_page failed")
        return jsonify({
            'success': False,
            'data': None,
            'message': str(e)
        }), 500


@feed_bp.route('/limit', methods=['POST'])
def change_feed_limit():
    """修改每页数量，回到第一页"""
    try:
        feed = _feed()
        body = request.get_json(silent=True) or {}
        feed.change_limit(_parse_int(body.get('limit'), feed.initial_limit))
        return _feed_response(feed, '修改每页数量成功')
    except Exception as e:
        logger.exception("change_feed_limit failed")
        return jsonify({
            'success': False,
            'data': None,
            'message': str(e)
        }), 500
