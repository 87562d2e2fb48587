from tests.conftest import ADMIN_EMAIL, ADMIN_PASSWORD, STUDENT_EMAIL, STUDENT_PASSWORD

NEW_COURSE = {
    'title': 'Kotlin for Android',
    'description': 'Modern Android apps with Kotlin and Jetpack.',
    'instructor': 'Emma Thompson',
    'duration': '7 weeks',
    'category': 'Mobile Development',
    'level': 'Beginner',
    'price': 149,
}


def course_ids(response):
    return [course['id'] for course in response.get_json()['data']]


class TestHealth:
    def test_health(self, http):
        assert http.get('/health').get_json() == {'status': 'healthy'}

    def test_database_health(self, http):
        response = http.get('/health/database')
        assert response.status_code == 200
        assert response.get_json()['data']['courses']['success']

    def test_database_health_degraded(self, http, db):
        db.fail('courses', 'select')
        response = http.get('/health/database')
        assert response.status_code == 503
        assert response.get_json()['status'] == 'degraded'

    def test_cors_allows_frontend_origin(self, http):
        response = http.get('/api/courses', headers={'Origin': 'http://localhost:4200'})
        assert response.headers['Access-Control-Allow-Origin'] == 'http://localhost:4200'


class TestAuthRoutes:
    def test_login_and_me(self, http, login_as):
        user = login_as(STUDENT_EMAIL, STUDENT_PASSWORD)
        assert user['role'] == 'student'
        assert http.get('/api/auth/me').get_json()['data']['email'] == STUDENT_EMAIL

    def test_bad_credentials(self, http):
        response = http.post('/api/auth/login', json={'email': STUDENT_EMAIL, 'password': 'nope'})
        assert response.status_code == 401
        body = response.get_json()
        assert body['code'] == 'INVALID_CREDENTIALS'
        assert body['error'] == 'Invalid email or password.'

    def test_register(self, http):
        response = http.post('/api/auth/register', json={
            'name': 'Frank', 'email': 'frank@example.com', 'password': 'pw'
        })
        assert response.status_code == 201
        assert response.get_json()['data']['role'] == 'student'

    def test_register_rejects_unknown_role(self, http):
        response = http.post('/api/auth/register', json={
            'name': 'Frank', 'email': 'frank@example.com', 'password': 'pw', 'role': 'owner'
        })
        assert response.status_code == 400

    def test_logout_drops_session_context(self, http, app, login_as):
        login_as(STUDENT_EMAIL, STUDENT_PASSWORD)
        registry = app.extensions['catalog_contexts']
        assert len(registry) == 1

        assert http.post('/api/auth/logout').status_code == 200
        assert len(registry) == 0
        assert http.get('/api/auth/me').get_json()['data'] is None

    def test_update_profile(self, http, login_as):
        login_as(STUDENT_EMAIL, STUDENT_PASSWORD)
        response = http.patch('/api/auth/profile', json={'name': 'Alice B.'})
        assert response.status_code == 200
        assert response.get_json()['data']['name'] == 'Alice B.'

    def test_update_profile_requires_login(self, http):
        assert http.patch('/api/auth/profile', json={'name': 'x'}).status_code == 401

    def test_browser_sessions_are_isolated(self, app, login_as, http):
        login_as(ADMIN_EMAIL, ADMIN_PASSWORD)
        other = app.test_client()
        assert other.get('/api/auth/me').get_json()['data'] is None
        assert http.get('/api/auth/me').get_json()['data']['role'] == 'admin'

    def test_anonymous_reads_do_not_create_sessions(self, app):
        registry = app.extensions['catalog_contexts']
        for _ in range(50):
            response = app.test_client().get('/api/courses')
            assert response.status_code == 200
        app.test_client().get('/api/auth/me')
        app.test_client().get('/health/database')
        assert len(registry) == 0

    def test_course_view_starts_a_session(self, app, http):
        registry = app.extensions['catalog_contexts']
        http.get('/api/courses/view')
        http.patch('/api/courses/view', json={'level': 'Beginner'})
        assert len(registry) == 1
        assert app.test_client().get('/api/courses/view').get_json()['criteria']['level'] == ''


class TestCourseRoutes:
    def test_list_courses(self, http):
        response = http.get('/api/courses')
        assert response.status_code == 200
        assert len(response.get_json()['data']) == 6

    def test_list_with_filters(self, http):
        assert course_ids(http.get('/api/courses?min_price=0&max_price=0')) == ['course-6']
        assert course_ids(http.get('/api/courses?search=python')) == ['course-2']
        assert course_ids(http.get('/api/courses?category=DevOps&level=Advanced')) == ['course-5']

    def test_invalid_filter(self, http):
        response = http.get('/api/courses?max_price=cheap')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid filter'

    def test_get_course(self, http):
        assert http.get('/api/courses/course-3').get_json()['data']['title'] == 'Advanced React Development'

    def test_missing_course(self, http):
        response = http.get('/api/courses/missing')
        assert response.status_code == 404
        assert response.get_json()['code'] == 'NOT_FOUND'

    def test_categories_are_cached(self, http, db):
        first = http.get('/api/courses/categories').get_json()['data']
        db.tables['categories'].append({'id': '42', 'name': 'Security'})
        second = http.get('/api/courses/categories').get_json()['data']
        assert first == second
        assert 'Security' not in second

    def test_featured_popular_and_stats(self, http):
        assert course_ids(http.get('/api/courses/featured')) == ['course-2', 'course-1', 'course-5']
        assert len(http.get('/api/courses/popular?limit=2').get_json()['data']) == 2
        assert http.get('/api/courses/stats').get_json()['data']['total_courses'] == 6
        assert len(http.get('/api/courses/instructors').get_json()['data']) == 6

    def test_create_requires_login(self, http):
        assert http.post('/api/courses', json=NEW_COURSE).status_code == 401

    def test_create_requires_admin(self, http, login_as):
        login_as(STUDENT_EMAIL, STUDENT_PASSWORD)
        response = http.post('/api/courses', json=NEW_COURSE)
        assert response.status_code == 403
        assert response.get_json()['error'] == 'Access denied. Insufficient permissions.'

    def test_admin_course_lifecycle(self, http, login_as):
        login_as(ADMIN_EMAIL, ADMIN_PASSWORD)

        created = http.post('/api/courses', json=NEW_COURSE)
        assert created.status_code == 201
        course_id = created.get_json()['data']['id']

        updated = http.patch(f'/api/courses/{course_id}', json={'price': 99})
        assert updated.get_json()['data']['price'] == 99

        assert http.delete(f'/api/courses/{course_id}').status_code == 200
        assert http.get(f'/api/courses/{course_id}').status_code == 404
        assert course_id not in course_ids(http.get('/api/courses'))

    def test_unpublished_course_stays_visible_to_admins(self, http, login_as):
        login_as(ADMIN_EMAIL, ADMIN_PASSWORD)
        http.patch('/api/courses/course-1', json={'is_published': False})

        assert 'course-1' not in course_ids(http.get('/api/courses'))
        assert 'course-1' in course_ids(http.get('/api/courses?include_unpublished=true'))
        data = http.get('/api/dashboard/admin').get_json()['data']
        assert (data['total_courses'], data['published_courses']) == (6, 5)

    def test_unpublished_listing_is_admin_only(self, http, login_as):
        assert http.get('/api/courses?include_unpublished=1').status_code == 401
        login_as(STUDENT_EMAIL, STUDENT_PASSWORD)
        assert http.get('/api/courses?include_unpublished=1').status_code == 403

    def test_non_finite_price_is_rejected(self, http):
        assert http.get('/api/courses?min_price=nan').status_code == 400

    def test_create_validation(self, http, login_as):
        login_as(ADMIN_EMAIL, ADMIN_PASSWORD)
        missing = http.post('/api/courses', json={'title': 'Only a title'})
        assert missing.status_code == 400
        bad_level = http.post('/api/courses', json=dict(NEW_COURSE, level='Expert'))
        assert bad_level.status_code == 400


class TestCourseView:
    def test_view_loads_catalog(self, http):
        body = http.get('/api/courses/view').get_json()
        assert len(body['data']) == 6
        assert body['price_range'] == {'min': 0.0, 'max': 500.0}
        assert not body['pending']

    def test_update_and_clear_criteria(self, http):
        http.get('/api/courses/view')

        response = http.patch('/api/courses/view', json={'search': 'flutter'})
        assert response.status_code == 200
        assert response.get_json()['criteria']['search'] == 'flutter'
        assert course_ids(http.get('/api/courses/view')) == ['course-4']

        cleared = http.delete('/api/courses/view/filters').get_json()
        assert len(cleared['data']) == 6
        assert cleared['criteria']['search'] == ''

    def test_unknown_criteria_are_ignored(self, http):
        http.get('/api/courses/view')
        response = http.patch('/api/courses/view', json={'to_dict': 'x', 'level': 'Advanced'})
        assert response.get_json()['criteria']['level'] == 'Advanced'
        assert sorted(course_ids(http.get('/api/courses/view'))) == ['course-3', 'course-5']


class TestEnrollmentRoutes:
    def test_enroll_flow(self, http, login_as, db):
        login_as(STUDENT_EMAIL, STUDENT_PASSWORD)
        before = db.course('course-1')['students_enrolled']

        assert http.post('/api/enrollments/course-1').status_code == 201
        assert http.get('/api/enrollments').get_json()['data'] == ['course-1']
        assert http.get('/api/enrollments/course-1').get_json()['data']['enrolled'] is True
        assert db.course('course-1')['students_enrolled'] == before + 1

        duplicate = http.post('/api/enrollments/course-1')
        assert duplicate.status_code == 409
        assert duplicate.get_json()['code'] == 'ALREADY_ENROLLED'

        courses = http.get('/api/enrollments/courses').get_json()['data']
        assert [course['id'] for course in courses] == ['course-1']

        assert http.delete('/api/enrollments/course-1').status_code == 200
        assert http.get('/api/enrollments').get_json()['data'] == []
        assert db.course('course-1')['students_enrolled'] == before

    def test_enroll_requires_login(self, http):
        assert http.post('/api/enrollments/course-1').status_code == 401
        assert http.get('/api/enrollments').status_code == 401

    def test_admin_cannot_enroll(self, http, login_as):
        login_as(ADMIN_EMAIL, ADMIN_PASSWORD)
        assert http.post('/api/enrollments/course-1').status_code == 403


class TestDashboardRoutes:
    def test_student_dashboard(self, http, login_as):
        login_as(STUDENT_EMAIL, STUDENT_PASSWORD)
        http.post('/api/enrollments/course-2')

        data = http.get('/api/dashboard/student').get_json()['data']
        assert [course['id'] for course in data['enrolled_courses']] == ['course-2']
        assert data['learning_stats'] == {'total_enrolled': 1, 'total_hours': 40}

    def test_admin_dashboard(self, http, login_as):
        login_as(ADMIN_EMAIL, ADMIN_PASSWORD)
        data = http.get('/api/dashboard/admin').get_json()['data']
        assert data['total_courses'] == 6
        assert len(data['recent_courses']) == 5

    def test_dashboards_are_role_gated(self, http, login_as):
        assert http.get('/api/dashboard/student').status_code == 401
        login_as(STUDENT_EMAIL, STUDENT_PASSWORD)
        assert http.get('/api/dashboard/admin').status_code == 403
