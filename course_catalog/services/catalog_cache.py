"""
Catalog Cache Module
Fetches and holds the published course set and performs admin mutations
"""
import logging
import threading
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional

from supabase import Client

from course_catalog.errors import NotFound, Unauthorized, service_error
from course_catalog.models.course import Course, clean_course_updates, utcnow
from course_catalog.models.filters import CourseFilters
from course_catalog.services.filter_engine import filter_courses
from course_catalog.services.session_store import SessionStore
from course_catalog.utils.logger import custom_logger

logger = logging.getLogger(__name__)

EMPTY_STATS = {
    'total_courses': 0,
    'total_students': 0,
    'average_rating': 0.0,
    'categories_count': 0,
}


def rows_to_courses(rows: Optional[Iterable[Dict[str, Any]]]) -> List[Course]:
    """Map gateway rows to courses, skipping rows that violate a course invariant."""
    courses = []
    for row in rows or []:
        try:
            courses.append(Course.from_row(row))
        except (KeyError, ValueError) as e:
            logger.warning(f"Skipping malformed course row {row.get('id')}: {str(e)}")
    return courses


def course_stats(courses: List[Course]) -> Dict[str, Any]:
    if not courses:
        return dict(EMPTY_STATS)
    return {
        'total_courses': len(courses),
        'total_students': sum(course.students_enrolled for course in courses),
        'average_rating': round(sum(course.rating for course in courses) / len(courses), 1),
        'categories_count': len({course.category for course in courses}),
    }


class CatalogCache:
    """
    Service class holding the published catalog for one session context
    """

    def __init__(self, client: Client, session: SessionStore):
        self._client = client
        self._session = session
        self._lock = threading.Lock()
        self._courses: List[Course] = []
        self._loaded = False
        self._subscribers: List[Callable[[List[Course]], None]] = []
        session.subscribe(self._on_identity_change)

    # Cached list

    @property
    def courses(self) -> List[Course]:
        return list(self._courses)

    @property
    def loaded(self) -> bool:
        return self._loaded

    def subscribe(self, callback: Callable[[List[Course]], None]) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[List[Course]], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def refresh(self) -> List[Course]:
        """
        Refetch the published list and replace the cached copy.
        The result is discarded if the session changed while the fetch was in flight.
        @returns: list - The cached courses after the refresh
        """
        token = self._session.token
        courses = self.get_all_courses()
        if token.is_cancelled:
            logger.info(f"Discarding course list fetched for superseded session {token.label}")
            return self.courses
        self._replace(courses)
        return courses

    def _replace(self, courses: List[Course]) -> None:
        with self._lock:
            self._courses = list(courses)
            self._loaded = True
        for callback in list(self._subscribers):
            callback(list(courses))

    def _store_local(self, course: Course) -> None:
        """Reflect a created or updated course in the cached list, if one is loaded."""
        with self._lock:
            if not self._loaded:
                return
            courses = list(self._courses)
        ids = [cached.id for cached in courses]
        if course.id in ids:
            index = ids.index(course.id)
            if course.is_published:
                courses[index] = course
            else:
                del courses[index]
        elif course.is_published:
            courses.insert(0, course)
        else:
            return
        self._replace(courses)

    def _on_identity_change(self, user) -> None:
        with self._lock:
            had_courses = self._loaded
            self._courses = []
            self._loaded = False
        if had_courses:
            for callback in list(self._subscribers):
                callback([])

    # Reads: degrade to empty and log

    def _published_query(self, columns: str = '*'):
        return self._client.table('courses').select(columns).eq('is_published', True)

    def _fetch_courses(self, filters: Optional[CourseFilters] = None,
                       include_unpublished: bool = False) -> List[Course]:
        if include_unpublished:
            query = self._client.table('courses').select('*')
        else:
            query = self._published_query()
        if filters is not None:
            if filters.category:
                query = query.eq('category', filters.category)
            if filters.level:
                query = query.eq('level', filters.level)
            if filters.min_price is not None:
                query = query.gte('price', filters.min_price)
            if filters.max_price is not None:
                query = query.lte('price', filters.max_price)
        response = query.order('created_at', desc=True).execute()
        return rows_to_courses(response.data)

    @custom_logger.log_function_call
    def get_all_courses(self, filters: Optional[CourseFilters] = None,
                        include_unpublished: bool = False) -> List[Course]:
        """
        Published courses, newest first, optionally narrowed by criteria
        @param filters: CourseFilters - Optional criteria
        @param include_unpublished: bool - Admins only, also list unpublished courses
        @returns: list - Matching courses, empty on gateway error
        @raises: Unauthorized if include_unpublished is requested by a non-admin
        """
        if include_unpublished:
            self._require_admin('view unpublished courses')
        try:
            courses = self._fetch_courses(filters, include_unpublished)
        except Exception as e:
            logger.error(f"Error fetching courses: {str(e)}")
            return []
        return filter_courses(courses, filters)

    def get_course_by_id(self, course_id: str) -> Optional[Course]:
        try:
            response = self._client.table('courses').select('*').eq('id', course_id).limit(1).execute()
        except Exception as e:
            logger.error(f"Error fetching course {course_id}: {str(e)}")
            return None
        courses = rows_to_courses(response.data)
        return courses[0] if courses else None

    def get_courses_by_ids(self, course_ids: Iterable[str]) -> List[Course]:
        ids = list(course_ids)
        if not ids:
            return []
        try:
            response = self._published_query().in_('id', ids).order('created_at', desc=True).execute()
        except Exception as e:
            logger.error(f"Error fetching courses by id: {str(e)}")
            return []
        return rows_to_courses(response.data)

    def search_courses(self, query: str) -> List[Course]:
        return self.get_all_courses(CourseFilters(search=query))

    def get_categories(self) -> List[str]:
        try:
            response = self._client.table('categories').select('name').order('name').execute()
        except Exception as e:
            logger.error(f"Error fetching categories: {str(e)}")
            return []
        return sorted({row['name'] for row in response.data or [] if row.get('name')})

    def get_instructors(self) -> List[str]:
        try:
            response = self._published_query('instructor').execute()
        except Exception as e:
            logger.error(f"Error fetching instructors: {str(e)}")
            return []
        return sorted({row['instructor'] for row in response.data or [] if row.get('instructor')})

    def get_featured_courses(self, limit: int = 3) -> List[Course]:
        return self._top_courses('rating', limit)

    def get_popular_courses(self, limit: int = 6) -> List[Course]:
        return self._top_courses('students_enrolled', limit)

    def _top_courses(self, column: str, limit: int) -> List[Course]:
        try:
            response = self._published_query().order(column, desc=True).limit(limit).execute()
        except Exception as e:
            logger.error(f"Error fetching courses ordered by {column}: {str(e)}")
            return []
        return rows_to_courses(response.data)

    def get_course_stats(self) -> Dict[str, Any]:
        """
        Aggregate catalog statistics
        @returns: dict - total_courses, total_students, average_rating, categories_count; zeros on failure
        """
        try:
            courses = self._fetch_courses()
        except Exception as e:
            logger.error(f"Error computing course stats: {str(e)}")
            return dict(EMPTY_STATS)
        return course_stats(courses)

    # Writes: admin only, propagate typed errors

    def _require_admin(self, action: str) -> None:
        user = self._session.get_current_user()
        if user is None:
            raise Unauthorized(f"Log in as an admin to {action}", status=401)
        if not user.is_admin:
            raise Unauthorized(f"Only admins can {action}")

    @custom_logger.log_function_call
    def create_course(self, data: Dict[str, Any]) -> Course:
        """
        Create a course; new courses are published unless the payload says otherwise
        @param data: dict - Course fields; title is required
        @returns: Course - The stored course
        @raises: Unauthorized, ValueError, NetworkOrServiceError
        """
        self._require_admin('create courses')
        fields = clean_course_updates(data)
        if not fields.get('title'):
            raise ValueError("title is required")

        now = utcnow()
        fields.setdefault('is_published', True)
        course = Course(
            id=str(uuid.uuid4()),
            rating=0,
            students_enrolled=0,
            created_at=now,
            updated_at=now,
            **fields
        )
        try:
            response = self._client.table('courses').insert(course.to_row()).execute()
        except Exception as e:
            logger.error(f"Error creating course: {str(e)}")
            raise service_error(e, 'Failed to create course') from e

        created = rows_to_courses(response.data)
        course = created[0] if created else course
        self._store_local(course)
        logger.info(f"Course created: {course.id}")
        return course

    @custom_logger.log_function_call
    def update_course(self, course_id: str, updates: Dict[str, Any]) -> Course:
        """
        Merge the provided fields into a course and refresh updated_at
        @raises: Unauthorized, NotFound, ValueError, NetworkOrServiceError
        """
        self._require_admin('edit courses')
        fields = clean_course_updates(updates)
        fields['updated_at'] = utcnow().isoformat()
        try:
            response = self._client.table('courses').update(fields).eq('id', course_id).execute()
        except Exception as e:
            logger.error(f"Error updating course {course_id}: {str(e)}")
            raise service_error(e, 'Failed to update course') from e

        updated = rows_to_courses(response.data)
        if not updated:
            raise NotFound(f"Course {course_id} not found")
        self._store_local(updated[0])
        return updated[0]

    @custom_logger.log_function_call
    def delete_course(self, course_id: str) -> bool:
        """
        Hard delete a course
        @raises: Unauthorized, NotFound, NetworkOrServiceError
        """
        self._require_admin('delete courses')
        try:
            response = self._client.table('courses').delete().eq('id', course_id).execute()
        except Exception as e:
            logger.error(f"Error deleting course {course_id}: {str(e)}")
            raise service_error(e, 'Failed to delete course') from e

        if not response.data:
            raise NotFound(f"Course {course_id} not found")
        with self._lock:
            remaining = [course for course in self._courses if course.id != course_id]
            changed = len(remaining) != len(self._courses)
        if changed:
            self._replace(remaining)
        logger.info(f"Course deleted: {course_id}")
        return True
