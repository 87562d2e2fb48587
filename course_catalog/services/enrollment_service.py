"""
Enrollment Service Module
Tracks which courses the current user is enrolled in and mutates that relation
"""
import logging
import threading
from typing import FrozenSet, List

from supabase import Client

from course_catalog.errors import (
    AlreadyEnrolled,
    EnrollmentFailed,
    Unauthorized,
    UnenrollmentFailed,
    gateway_details,
    is_unique_violation,
)
from course_catalog.models.course import Course
from course_catalog.models.enrollment import Enrollment
from course_catalog.models.user import User
from course_catalog.services.catalog_cache import CatalogCache
from course_catalog.services.session_store import SessionStore
from course_catalog.utils.logger import custom_logger

logger = logging.getLogger(__name__)


class EnrollmentLedger:
    """
    Enrollment view for the current user of one session context.
    The local id set is only replaced after the gateway confirms a change,
    and is cleared whenever the identity changes.
    """

    def __init__(self, client: Client, session: SessionStore, catalog: CatalogCache):
        self._client = client
        self._session = session
        self._catalog = catalog
        self._lock = threading.Lock()
        self._enrolled: FrozenSet[str] = frozenset()
        session.subscribe(self._on_identity_change)

    @property
    def enrolled_ids(self) -> FrozenSet[str]:
        return self._enrolled

    def _on_identity_change(self, user) -> None:
        with self._lock:
            self._enrolled = frozenset()

    def _require_student(self, action: str) -> User:
        user = self._session.get_current_user()
        if user is None:
            raise Unauthorized(f"Log in as a student to {action}", status=401)
        if not user.is_student:
            raise Unauthorized(f"Only students can {action}")
        return user

    def _store(self, token, enrolled: FrozenSet[str]) -> None:
        with self._lock:
            if token.is_cancelled:
                logger.info(f"Dropping enrollment state for superseded session {token.label}")
                return
            self._enrolled = enrolled

    def get_enrolled_courses(self) -> FrozenSet[str]:
        """
        Course ids linked to the current user
        @returns: frozenset - Empty when nobody is logged in or the read fails
        """
        user = self._session.get_current_user()
        if user is None:
            logger.info("No user logged in for enrollments")
            return frozenset()

        token = self._session.token
        try:
            response = self._client.table('enrollments').select('course_id').eq('user_id', user.id).execute()
        except Exception as e:
            logger.error(f"Error fetching enrolled courses: {str(e)}")
            return frozenset()

        enrolled = frozenset(str(row['course_id']) for row in response.data or [])
        self._store(token, enrolled)
        return enrolled

    def is_enrolled_in_course(self, course_id: str) -> bool:
        return course_id in self.get_enrolled_courses()

    def get_enrolled_course_details(self) -> List[Course]:
        return self._catalog.get_courses_by_ids(sorted(self.get_enrolled_courses()))

    @custom_logger.log_function_call
    def enroll(self, course_id: str) -> bool:
        """
        Enroll the current student and increment the course counter.
        A counter failure leaves the enrollment in place and is reported as EnrollmentFailed.
        @raises: Unauthorized, AlreadyEnrolled, EnrollmentFailed
        """
        user = self._require_student('enroll in courses')
        token = self._session.token
        logger.info(f"Enrolling {user.id} in course {course_id}")

        try:
            self._client.table('enrollments').insert(Enrollment(user.id, course_id).to_row()).execute()
        except Exception as e:
            if is_unique_violation(e):
                raise AlreadyEnrolled('Already enrolled in this course', details={'course_id': course_id}) from e
            logger.error(f"Enrollment error: {str(e)}")
            raise EnrollmentFailed('Failed to enroll in course', details=gateway_details(e)) from e

        self._store(token, self._enrolled | {course_id})

        try:
            self._client.rpc('increment_students_enrolled', {'course_id': course_id}).execute()
        except Exception as e:
            logger.error(f"Enrollment recorded but counter increment failed for {course_id}: {str(e)}")
            details = gateway_details(e)
            details['enrollment_created'] = True
            raise EnrollmentFailed('Enrolled, but the course counter could not be updated', details=details) from e

        logger.info(f"Successfully enrolled in course {course_id}")
        return True

    @custom_logger.log_function_call
    def unenroll(self, course_id: str) -> bool:
        """
        Remove the current student's enrollment and decrement the course counter
        @returns: bool - False when there was nothing to remove
        @raises: Unauthorized, UnenrollmentFailed
        """
        user = self._require_student('unenroll from courses')
        token = self._session.token
        logger.info(f"Unenrolling {user.id} from course {course_id}")

        try:
            response = self._client.table('enrollments')\
                .delete()\
                .eq('user_id', user.id)\
                .eq('course_id', course_id)\
                .execute()
        except Exception as e:
            logger.error(f"Unenrollment error: {str(e)}")
            raise UnenrollmentFailed('Failed to unenroll from course', details=gateway_details(e)) from e

        self._store(token, self._enrolled - {course_id})
        if not response.data:
            logger.info(f"{user.id} was not enrolled in {course_id}")
            return False

        try:
            self._client.rpc('decrement_students_enrolled', {'course_id': course_id}).execute()
        except Exception as e:
            logger.error(f"Enrollment removed but counter decrement failed for {course_id}: {str(e)}")
            details = gateway_details(e)
            details['enrollment_removed'] = True
            raise UnenrollmentFailed('Unenrolled, but the course counter could not be updated', details=details) from e

        logger.info(f"Successfully unenrolled from course {course_id}")
        return True
