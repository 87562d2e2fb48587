"""Dashboard Controller Module"""

from flask import Blueprint, jsonify
import logging

from course_catalog.models.user import Role
from course_catalog.utils.guards import get_context, role_required

logger = logging.getLogger(__name__)
dashboard_bp = Blueprint('dashboard', __name__)


def _with_courses(dashboard, *keys):
    for key in keys:
        dashboard[key] = [course.to_dict() for course in dashboard[key]]
    return dashboard


@dashboard_bp.route('/student', methods=['GET'])
@role_required(Role.STUDENT)
def student_dashboard():
    dashboard = get_context().dashboards.student_dashboard()
    return jsonify({'data': _with_courses(dashboard, 'enrolled_courses', 'recommended_courses')}), 200


@dashboard_bp.route('/admin', methods=['GET'])
@role_required(Role.ADMIN)
def admin_dashboard():
    dashboard = get_context().dashboards.admin_dashboard()
    return jsonify({'data': _with_courses(dashboard, 'recent_courses')}), 200
