from flask import Blueprint, current_app, jsonify, request
from marketplace.logger import get_logger
from marketplace.services.app_state import DataStatus
from marketplace.services.browse_state import BrowseCriteria
from marketplace.services.product_service import ProductService

logger = get_logger(__name__)

products_bp = Blueprint('products', __name__)
status_bp = Blueprint('status', __name__)


def _state():
    return current_app.extensions['marketplace']['state']


def _catalog_status():
    """目录加载失败时返回错误状态并同步到 AppState"""
    error = ProductService.last_error()
    if not error:
        return None
    status = DataStatus.error(error)
    _state().set_data_status(status)
    return status.to_dict()


@products_bp.route('', methods=['GET'])
def browse_products():
    """目录浏览: 过滤 + 排序 + 分页 (查询参数见 BrowseCriteria)"""
    try:
        criteria = BrowseCriteria.from_query_args(request.args)
        result = ProductService.browse(criteria)
        return jsonify({
            'success': True,
            'data': result['products'],
            'pagination': result['pagination'],
            'activeFilters': result['activeFilters'],
            'query': result['query'],
            'dataStatus': _catalog_status(),
            'message': '获取产品列表成功'
        })
    except Exception as e:
        logger.exception("browse_products failed")
        return jsonify({
            'success': False,
            'data': [],
            'message': str(e)
        }), 500


@products_bp.route('/featured', methods=['GET'])
def get_featured_products():
    """获取精选产品

    先取上游 /products/featured；上游没有返回任何产品时从完整目录推导。
    """
    try:
        limit = max(1, request.args.get('limit', 6, type=int))
        language = 'pt' if request.args.get('language') == 'pt' else 'en'
        featured = current_app.extensions['marketplace']['feeds'][language].fetch_featured_products(limit=limit)
        products = featured['products'][:limit]
        data_status = featured['dataStatus']
        if not products:
            products = ProductService.get_featured(limit=limit)
            data_status = _catalog_status() or (None if products else data_status)
        return jsonify({
            'success': True,
            'data': products,
            'dataStatus': data_status,
            'message': '获取精选产品成功'
        })
    except Exception as e:
        logger.exception("get_featured_products failed")
        return jsonify({
            'success': False,
            'data': [],
            'message': str(e)
        }), 500


@products_bp.route('/rows', methods=['GET'])
def get_product_rows():
    """按行分组 (categorized 视图)"""
    try:
        criteria = BrowseCriteria.from_query_args(request.args)
        rows = ProductService.get_rows(criteria)
        return jsonify({
            'success': True,
            'data': rows,
            'dataStatus': _catalog_status(),
            'message': '获取产品分组成功'
        })
    except Exception as e:
        logger.exception("get_product_rows failed")
        return jsonify({
            'success': False,
            'data': {},
            'message': str(e)
        }), 500


@products_bp.route('/categories', methods=['GET'])
def get_categories():
    """获取所有分类及数量"""
    try:
        return jsonify({
            'success': True,
            'data': ProductService.get_categories(),
            'message': '获取分类成功'
        })
    except Exception as e:
        logger.exception("get_categories failed")
        return jsonify({
            'success': False,
            'data': [],
            'message': str(e)
        }), 500


@products_bp.route('/<product_id>', methods=['GET'])
def get_product_detail(product_id):
    """获取产品详情 + 相关产品"""
    try:
        result = ProductService.get_product_by_id(product_id)
        if result:
            return jsonify({
                'success': True,
                'data': result['product'],
                'related': result['related'],
                'message': '获取产品详情成功'
            })
        return jsonify({
            'success': False,
            'data': None,
            'message': 'Product not found'
        }), 404
    except Exception as e:
        logger.exception("get_product_detail failed")
        return jsonify({
            'success': False,
            'data': None,
            'message': str(e)
        }), 500


@status_bp.route('/data-status', methods=['GET'])
def get_data_status():
    """数据源状态，尚未检查过时立即检查一次"""
    try:
        ext = current_app.extensions['marketplace']
        status = ext['state'].data_status
        if status.type == 'unknown':
            status = ext['monitor'].check()
        return jsonify({
            'success': True,
            'data': status.to_dict(),
            'usingFallbackData': ext['state'].using_fallback_data,
            'message': status.message
        })
    except Exception as e:
        logger.exception("get_data_status failed")
        return jsonify({
            'success': False,
            'data': None,
            'message': str(e)
        }), 500
