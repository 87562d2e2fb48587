from flask import Blueprint, jsonify
import logging

from course_catalog.models.user import Role
from course_catalog.utils.guards import get_context, login_required, role_required

logger = logging.getLogger(__name__)
enrollment_bp = Blueprint('enrollment', __name__)


@enrollment_bp.route('', methods=['GET'])
@login_required
def list_enrollments():
    """
    Course ids the current user is enrolled in
    @returns: JSON response with sorted course ids
    """
    enrolled = get_context().enrollments.get_enrolled_courses()
    return jsonify({'data': sorted(enrolled)}), 200


@enrollment_bp.route('/courses', methods=['GET'])
@login_required
def list_enrolled_courses():
    courses = get_context().enrollments.get_enrolled_course_details()
    return jsonify({'data': [course.to_dict() for course in courses]}), 200


@enrollment_bp.route('/<course_id>', methods=['GET'])
@login_required
def enrollment_status(course_id):
    enrolled = get_context().enrollments.is_enrolled_in_course(course_id)
    return jsonify({'data': {'course_id': course_id, 'enrolled': enrolled}}), 200


@enrollment_bp.route('/<course_id>', methods=['POST'])
@role_required(Role.STUDENT)
def enroll(course_id):
    get_context().enrollments.enroll(course_id)
    return jsonify({
        'message': 'Successfully enrolled in course',
        'data': {'course_id': course_id, 'enrolled': True}
    }), 201


@enrollment_bp.route('/<course_id>', methods=['DELETE'])
@role_required(Role.STUDENT)
def unenroll(course_id):
    removed = get_context().enrollments.unenroll(course_id)
    return jsonify({
        'message': 'Successfully unenrolled from course' if removed else 'Not enrolled in this course',
        'data': {'course_id': course_id, 'enrolled': False}
    }), 200
