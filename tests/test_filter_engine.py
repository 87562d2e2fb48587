import threading

import pytest

from course_catalog.models.course import Course
from course_catalog.models.filters import CourseFilters
from course_catalog.services.filter_engine import (
    FilteredCourseList,
    filter_courses,
    matches,
    search_haystack,
)
from tests.conftest import SEED_COURSES


@pytest.fixture
def courses():
    return [Course.from_row(row) for row in SEED_COURSES]


def ids(courses):
    return [course.id for course in courses]


class TestFilterCourses:
    """Pure narrowing of a course list"""

    def test_empty_criteria_is_identity(self, courses):
        assert filter_courses(courses, CourseFilters()) == courses
        assert filter_courses(courses) == courses

    def test_filtering_is_idempotent(self, courses):
        criteria = CourseFilters(category='Web Development', max_price=350)
        once = filter_courses(courses, criteria)
        assert filter_courses(once, criteria) == once

    def test_criteria_combine_as_conjunction(self, courses):
        by_category = CourseFilters(category='Web Development')
        by_level = CourseFilters(level='Advanced')
        both = CourseFilters(category='Web Development', level='Advanced')

        expected = [c for c in filter_courses(courses, by_category) if c in filter_courses(courses, by_level)]
        assert filter_courses(courses, both) == expected
        assert ids(expected) == ['course-3']

    def test_preserves_relative_order(self, courses):
        reordered = list(reversed(courses))
        result = filter_courses(reordered, CourseFilters(category='Web Development'))
        assert ids(result) == ['course-3', 'course-1']

    def test_full_price_range_keeps_every_course(self, courses):
        result = filter_courses(courses, CourseFilters(min_price=0, max_price=500))
        assert len(result) == 6

    def test_zero_price_range_keeps_only_free_courses(self, courses):
        result = filter_courses(courses, CourseFilters(min_price=0, max_price=0))
        assert ids(result) == ['course-6']

    def test_price_bounds_are_inclusive(self, courses):
        result = filter_courses(courses, CourseFilters(min_price=249, max_price=299))
        assert sorted(ids(result)) == ['course-1', 'course-2']

    def test_search_matches_title_and_tags(self, courses):
        result = filter_courses(courses, CourseFilters(search='python'))
        assert ids(result) == ['course-2']

    def test_search_is_case_insensitive(self, courses):
        assert ids(filter_courses(courses, CourseFilters(search='FIGMA'))) == ['course-6']

    def test_search_covers_instructor_and_category(self, courses):
        assert ids(filter_courses(courses, CourseFilters(search='robert kim'))) == ['course-5']
        assert ids(filter_courses(courses, CourseFilters(search='mobile dev'))) == ['course-4']

    def test_search_does_not_span_field_boundaries(self, courses):
        course = courses[0]
        joined = course.title.lower()[-3:] + course.description.lower()[:3]
        assert joined not in search_haystack(course)
        assert not matches(course, CourseFilters(search=joined))

    def test_instructor_is_exact_match(self, courses):
        assert ids(filter_courses(courses, CourseFilters(instructor='Emma Thompson'))) == ['course-4']
        assert filter_courses(courses, CourseFilters(instructor='Emma')) == []

    def test_unknown_category_yields_empty(self, courses):
        assert filter_courses(courses, CourseFilters(category='Cooking')) == []


class TestFilteredCourseList:
    """Recomputing view with debounced search"""

    def test_set_source_recomputes_immediately(self, courses):
        view = FilteredCourseList(debounce_seconds=10)
        view.set_source(courses)
        assert view.results == courses

    def test_non_search_change_is_immediate(self, courses):
        view = FilteredCourseList(debounce_seconds=10)
        view.set_source(courses)
        view.update_criteria(level='Beginner')
        assert not view.pending
        assert ids(view.results) == ['course-2', 'course-6']

    def test_search_change_is_debounced(self, courses):
        view = FilteredCourseList(debounce_seconds=10)
        view.set_source(courses)
        view.update_criteria(search='react')
        assert view.pending
        assert view.results == courses
        view.flush()
        assert not view.pending
        assert ids(view.results) == ['course-3']
        view.close()

    def test_burst_of_keystrokes_recomputes_once(self, courses):
        view = FilteredCourseList(debounce_seconds=0.2)
        done = threading.Event()
        calls = []

        def on_results(results):
            calls.append(ids(results))
            done.set()

        view.set_source(courses)
        view.subscribe(on_results)
        for text in ('p', 'py', 'pyt', 'pyth', 'python'):
            view.update_criteria(search=text)

        assert done.wait(2)
        assert calls == [['course-2']]
        assert not view.pending
        view.close()

    def test_source_change_uses_latest_criteria(self, courses):
        view = FilteredCourseList(debounce_seconds=10)
        view.set_source(courses[:2])
        view.update_criteria(category='Design')
        assert view.results == []
        view.set_source(courses)
        assert ids(view.results) == ['course-6']

    def test_source_change_applies_pending_search(self, courses):
        view = FilteredCourseList(debounce_seconds=10)
        view.set_source(courses[:1])
        view.update_criteria(search='python')
        view.set_source(courses)
        assert not view.pending
        assert ids(view.results) == ['course-2']

    def test_clear_filters_restores_full_list(self, courses):
        view = FilteredCourseList(debounce_seconds=10)
        view.set_source(courses)
        view.update_criteria(category='DevOps', max_price=100)
        assert view.results == []
        view.clear_filters()
        assert view.criteria.is_empty()
        assert view.results == courses

    def test_zero_debounce_is_synchronous(self, courses):
        view = FilteredCourseList(debounce_seconds=0)
        view.set_source(courses)
        view.update_criteria(search='flutter')
        assert not view.pending
        assert ids(view.results) == ['course-4']

    def test_unsubscribed_callbacks_are_not_called(self, courses):
        view = FilteredCourseList(debounce_seconds=0)
        seen = []
        view.subscribe(seen.append)
        view.unsubscribe(seen.append)
        view.set_source(courses)
        assert seen == []

    def test_older_result_never_follows_a_newer_one(self, courses):
        view = FilteredCourseList(debounce_seconds=0)
        view.set_source(courses)
        seen = []
        view.subscribe(lambda results: seen.append(ids(results)))

        deliver = view._deliver
        paused, resume = threading.Event(), threading.Event()

        def slow_deliver(sequence, results):
            paused.set()
            resume.wait(2)
            deliver(sequence, results)

        view._deliver = slow_deliver
        older = threading.Thread(target=view.update_criteria, kwargs={'category': 'DevOps'})
        older.start()
        assert paused.wait(2)

        view._deliver = deliver
        view.update_criteria(category='Design')
        resume.set()
        older.join(2)

        assert seen == [['course-6']]
        assert ids(view.results) == ['course-6']
