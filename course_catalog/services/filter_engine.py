"""
Filter Engine Module
Pure narrowing of an in-memory course list plus the debounced view that
recomputes it when the source list or the criteria change
"""
import logging
import threading
from dataclasses import replace
from typing import Callable, List, Optional, Sequence

from course_catalog.models.course import Course
from course_catalog.models.filters import CourseFilters

logger = logging.getLogger(__name__)

SEARCH_SEPARATOR = '\n'


def search_haystack(course: Course) -> str:
    parts = [course.title, course.description, course.instructor, course.category]
    parts.extend(course.tags)
    return SEARCH_SEPARATOR.join(parts).lower()


def matches(course: Course, criteria: CourseFilters) -> bool:
    """
    Check a single course against every criterion that is present
    @param course: Course - Candidate course
    @param criteria: CourseFilters - Active criteria
    @returns: bool - True when all present criteria hold
    """
    if criteria.search and criteria.search.lower() not in search_haystack(course):
        return False
    if criteria.category and course.category != criteria.category:
        return False
    if criteria.level and course.level.value != criteria.level:
        return False
    if criteria.instructor and course.instructor != criteria.instructor:
        return False
    if criteria.min_price is not None and course.price < criteria.min_price:
        return False
    if criteria.max_price is not None and course.price > criteria.max_price:
        return False
    return True


def filter_courses(courses: Sequence[Course], criteria: Optional[CourseFilters] = None) -> List[Course]:
    """
    Narrow a course list, preserving the original relative order
    @param courses: sequence - Source list
    @param criteria: CourseFilters - Criteria, None or empty for the identity filter
    @returns: list - Courses satisfying the conjunction of present criteria
    """
    if criteria is None or criteria.is_empty():
        return list(courses)
    return [course for course in courses if matches(course, criteria)]


class FilteredCourseList:
    """
    Course list view that re-runs the filter when its inputs change.

    Search text changes are debounced so a burst of keystrokes produces one
    recomputation per quiet period. Other criteria and source changes
    recompute immediately using the latest criteria.
    """

    def __init__(self, debounce_seconds: float = 0.3):
        self.debounce_seconds = debounce_seconds
        self._lock = threading.Lock()
        self._source: List[Course] = []
        self._criteria = CourseFilters()
        self._results: List[Course] = []
        self._timer: Optional[threading.Timer] = None
        self._sequence = 0
        self._delivered = 0
        self._delivery_lock = threading.RLock()
        self._subscribers: List[Callable[[List[Course]], None]] = []

    @property
    def criteria(self) -> CourseFilters:
        return self._criteria

    @property
    def results(self) -> List[Course]:
        return list(self._results)

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def subscribe(self, callback: Callable[[List[Course]], None]) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[List[Course]], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def set_source(self, courses: Sequence[Course]) -> None:
        with self._lock:
            self._source = list(courses)
            self._cancel_timer()
        self._recompute()

    def update_criteria(self, **changes) -> None:
        """
        Apply criteria changes, debouncing search text
        @param changes: keyword criteria, e.g. search='py', level='Beginner'
        """
        with self._lock:
            previous = self._criteria
            self._criteria = replace(previous, **changes)
            text_changed = 'search' in changes and changes['search'] != previous.search
            other_changed = any(
                getattr(self._criteria, name) != getattr(previous, name)
                for name in changes if name != 'search'
            )
            if other_changed or not text_changed or self.debounce_seconds <= 0:
                self._cancel_timer()
                immediate = True
            else:
                self._schedule()
                immediate = False
        if immediate:
            self._recompute()

    def set_criteria(self, criteria: CourseFilters) -> None:
        self.update_criteria(**criteria.to_dict())

    def clear_filters(self) -> None:
        with self._lock:
            self._criteria = CourseFilters()
            self._cancel_timer()
        self._recompute()

    def flush(self) -> None:
        """Run a pending debounced recomputation now."""
        with self._lock:
            if self._timer is None:
                return
            self._cancel_timer()
        self._recompute()

    def close(self) -> None:
        with self._lock:
            self._cancel_timer()
        self._subscribers.clear()

    def _schedule(self) -> None:
        self._cancel_timer()
        timer = threading.Timer(self.debounce_seconds, self._on_quiet)
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_quiet(self) -> None:
        with self._lock:
            if self._timer is None or self._timer is not threading.current_thread():
                return
            self._timer = None
        self._recompute()

    def _recompute(self) -> None:
        with self._lock:
            self._sequence += 1
            sequence = self._sequence
            results = filter_courses(self._source, self._criteria)
            self._results = results
            source_size = len(self._source)
        logger.debug(f"Filtered {source_size} courses down to {len(results)}")
        self._deliver(sequence, results)

    def _deliver(self, sequence: int, results: List[Course]) -> None:
        # Timer and request threads race here; never hand out an older result after a newer one
        with self._delivery_lock:
            if sequence <= self._delivered:
                logger.debug(f"Dropping stale filter result {sequence}")
                return
            self._delivered = sequence
            for callback in list(self._subscribers):
                callback(list(results))
