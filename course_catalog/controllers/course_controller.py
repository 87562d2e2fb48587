"""
Course Controller Module
Handles course-related HTTP requests and responses
"""
from flask import Blueprint, request, jsonify, current_app
import logging

from course_catalog import cache
from course_catalog.errors import NotFound
from course_catalog.models.filters import (
    DEFAULT_MAX_PRICE,
    DEFAULT_MIN_PRICE,
    PRICE_FIELDS,
    TEXT_FIELDS,
    CourseFilters,
)
from course_catalog.models.user import Role
from course_catalog.utils.guards import get_context, role_required

logger = logging.getLogger(__name__)
course_bp = Blueprint('course', __name__)

CATEGORIES_CACHE_KEY = 'course_categories'


def _serialize(courses):
    return [course.to_dict() for course in courses]


def _limit(default):
    try:
        return max(1, int(request.args.get('limit', default)))
    except ValueError:
        return default


@course_bp.route('', methods=['GET'])
def list_courses():
    """
    List published courses
    @query: search, category, level, instructor, min_price, max_price
    @query: include_unpublished - admins only, also list unpublished courses
    @returns: JSON response with matching courses
    """
    try:
        filters = CourseFilters.from_mapping(request.args)
    except ValueError as e:
        return jsonify({
            'error': 'Invalid filter',
            'details': str(e)
        }), 400

    include_unpublished = request.args.get('include_unpublished', '').lower() in ('1', 'true', 'yes')
    courses = get_context().catalog.get_all_courses(filters, include_unpublished=include_unpublished)
    return jsonify({
        'data': _serialize(courses),
        'filters': filters.to_dict()
    }), 200


@course_bp.route('/view', methods=['GET'])
def get_course_view():
    """
    Current filtered view of the catalog for this session
    @query: refresh - reload the catalog before answering
    """
    context = get_context(create=True)
    if request.args.get('refresh') or not context.catalog.loaded:
        context.catalog.refresh()
    view = context.course_list
    return jsonify({
        'data': _serialize(view.results),
        'criteria': view.criteria.to_dict(),
        'pending': view.pending,
        'price_range': {'min': DEFAULT_MIN_PRICE, 'max': DEFAULT_MAX_PRICE}
    }), 200


@course_bp.route('/view', methods=['PATCH'])
def update_course_view():
    """
    Change view criteria; search text is debounced
    @body: any of search, category, level, instructor, min_price, max_price
    """
    data = request.get_json(silent=True) or {}
    try:
        parsed = CourseFilters.from_mapping(data)
    except ValueError as e:
        return jsonify({
            'error': 'Invalid filter',
            'details': str(e)
        }), 400

    changes = {name: getattr(parsed, name) for name in data if name in TEXT_FIELDS + PRICE_FIELDS}
    view = get_context(create=True).course_list
    view.update_criteria(**changes)
    return jsonify({
        'criteria': view.criteria.to_dict(),
        'pending': view.pending
    }), 202 if view.pending else 200


@course_bp.route('/view/filters', methods=['DELETE'])
def clear_course_view():
    view = get_context(create=True).course_list
    view.clear_filters()
    return jsonify({
        'data': _serialize(view.results),
        'criteria': view.criteria.to_dict()
    }), 200


@course_bp.route('/<course_id>', methods=['GET'])
def get_course(course_id):
    course = get_context().catalog.get_course_by_id(course_id)
    if course is None:
        raise NotFound(f"Course {course_id} not found")
    return jsonify({'data': course.to_dict()}), 200


@course_bp.route('', methods=['POST'])
@role_required(Role.ADMIN)
def create_course():
    """
    Create a new course
    @param request: Flask request object containing course data
    @returns: JSON response with created course data or error
    """
    try:
        data = request.get_json(silent=True) or {}

        required_fields = ['title', 'instructor', 'category', 'level']
        for field in required_fields:
            if not data.get(field):
                return jsonify({
                    'error': f'Missing required field: {field}'
                }), 400

        course = get_context().catalog.create_course(data)
        return jsonify({
            'message': 'Course created successfully',
            'data': course.to_dict()
        }), 201

    except ValueError as e:
        return jsonify({
            'error': 'Invalid course data',
            'details': str(e)
        }), 400


@course_bp.route('/<course_id>', methods=['PATCH', 'PUT'])
@role_required(Role.ADMIN)
def update_course(course_id):
    try:
        course = get_context().catalog.update_course(course_id, request.get_json(silent=True) or {})
        return jsonify({
            'message': 'Course updated successfully',
            'data': course.to_dict()
        }), 200

    except ValueError as e:
        return jsonify({
            'error': 'Invalid course data',
            'details': str(e)
        }), 400


@course_bp.route('/<course_id>', methods=['DELETE'])
@role_required(Role.ADMIN)
def delete_course(course_id):
    get_context().catalog.delete_course(course_id)
    return jsonify({'message': 'Course deleted successfully'}), 200


@course_bp.route('/categories', methods=['GET'])
def list_categories():
    categories = cache.get(CATEGORIES_CACHE_KEY)
    if categories is None:
        categories = get_context().catalog.get_categories()
        if categories:
            cache.set(CATEGORIES_CACHE_KEY, categories, timeout=current_app.config['CACHE_DEFAULT_TIMEOUT'])
    return jsonify({'data': categories}), 200


@course_bp.route('/instructors', methods=['GET'])
def list_instructors():
    return jsonify({'data': get_context().catalog.get_instructors()}), 200


@course_bp.route('/featured', methods=['GET'])
def featured_courses():
    return jsonify({'data': _serialize(get_context().catalog.get_featured_courses(_limit(3)))}), 200


@course_bp.route('/popular', methods=['GET'])
def popular_courses():
    return jsonify({'data': _serialize(get_context().catalog.get_popular_courses(_limit(6)))}), 200


@course_bp.route('/stats', methods=['GET'])
def course_stats():
    return jsonify({'data': get_context().catalog.get_course_stats()}), 200
