"""
Dashboard Service Module
Composes the student and admin dashboards from independently fetched sources
"""
import logging
import re
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Dict, List

from course_catalog.errors import Unauthorized
from course_catalog.models.course import Course
from course_catalog.services.catalog_cache import CatalogCache
from course_catalog.services.enrollment_service import EnrollmentLedger
from course_catalog.services.session_store import SessionStore

logger = logging.getLogger(__name__)

HOURS_PER_WEEK = 4
RECENT_COURSES = 5
RECOMMENDED_COURSES = 6


def duration_weeks(duration: str) -> int:
    match = re.match(r'\s*(\d+)', duration or '')
    return int(match.group(1)) if match else 0


def learning_stats(enrolled: List[Course]) -> Dict[str, int]:
    return {
        'total_enrolled': len(enrolled),
        'total_hours': sum(duration_weeks(course.duration) * HOURS_PER_WEEK for course in enrolled),
    }


class DashboardService:
    """
    Fetches each dashboard's sources concurrently and joins them before
    deriving anything, so no derived value depends on completion order.
    """

    def __init__(self, session: SessionStore, catalog: CatalogCache, enrollments: EnrollmentLedger,
                 max_workers: int = 3):
        self._session = session
        self._catalog = catalog
        self._enrollments = enrollments
        self.max_workers = max_workers

    def student_dashboard(self) -> Dict[str, Any]:
        user = self._session.get_current_user()
        if user is None or not user.is_student:
            raise Unauthorized('Only students have a learning dashboard', status=401 if user is None else None)

        token = self._session.token
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            enrolled_future = pool.submit(self._enrollments.get_enrolled_courses)
            courses_future = pool.submit(self._catalog.get_all_courses)
            popular_future = pool.submit(self._catalog.get_popular_courses, RECOMMENDED_COURSES)
            wait([enrolled_future, courses_future, popular_future])
        token.raise_if_cancelled()

        enrolled_ids = enrolled_future.result()
        enrolled = [course for course in courses_future.result() if course.id in enrolled_ids]
        recommended = [course for course in popular_future.result() if course.id not in enrolled_ids]
        return {
            'enrolled_courses': enrolled,
            'recommended_courses': recommended,
            'learning_stats': learning_stats(enrolled),
        }

    def admin_dashboard(self) -> Dict[str, Any]:
        user = self._session.get_current_user()
        if user is None or not user.is_admin:
            raise Unauthorized('Only admins can view catalog statistics', status=401 if user is None else None)

        token = self._session.token
        with ThreadPoolExecutor(max_workers=2) as pool:
            courses_future = pool.submit(self._catalog.get_all_courses, include_unpublished=True)
            categories_future = pool.submit(self._catalog.get_categories)
            wait([courses_future, categories_future])
        token.raise_if_cancelled()

        courses = courses_future.result()
        categories = categories_future.result()
        average = sum(course.rating for course in courses) / len(courses) if courses else 0
        recent = sorted(
            courses,
            key=lambda course: course.updated_at.timestamp() if course.updated_at else 0,
            reverse=True
        )[:RECENT_COURSES]
        return {
            'total_courses': len(courses),
            'published_courses': sum(1 for course in courses if course.is_published),
            'total_students': sum(course.students_enrolled for course in courses),
            'total_categories': len(categories),
            'average_rating': round(average, 1),
            'recent_courses': recent,
        }
