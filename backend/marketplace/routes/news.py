from flask import Blueprint, jsonify, request
from marketplace.logger import get_logger
from marketplace.services.news_service import NewsService

logger = get_logger(__name__)

news_bp = Blueprint('news', __name__)


@news_bp.route('', methods=['GET'])
def get_news():
    """获取新闻列表 (?category=&tag=&q=&language=)"""
    try:
        result = NewsService.get_articles(
            category=request.args.get('category'),
            tag=request.args.get('tag'),
            search=request.args.get('q'),
            language=request.args.get('language'),
        )
        return jsonify({
            'success': True,
            'data': result['articles'],
            'source': result['source'],
            'message': '获取新闻成功'
        })
    except Exception as e:
        logger.exception("get_news failed")
        return jsonify({
            'success': False,
            'data': [],
            'message': str(e)
        }), 500


@news_bp.route('/categories', methods=['GET'])
def get_news_categories():
    """获取新闻分类"""
    try:
        return jsonify({
            'success': True,
            'data': NewsService.get_categories(),
            'message': '获取新闻分类成功'
        })
    except Exception as e:
        logger.exception("get_news_categories failed")
        return jsonify({
            'success': False,
            'data': [],
            'message': str(e)
        }), 500


@news_bp.route('/<article_id>', methods=['GET'])
def get_news_detail(article_id):
    """获取新闻详情"""
    try:
        article = NewsService.get_article(article_id, language=request.args.get('language'))
        if article:
            return jsonify({
                'success': True,
                'data': article,
                'message': '获取新闻详情成功'
            })
        return jsonify({
            'success': False,
            'data': None,
            'message': 'Article not found'
        }), 404
    except Exception as e:
        logger.exception("get_news_detail failed")
        return jsonify({
            'success': False,
            'data': None,
            'message': str(e)
        }), 500
