import pytest

from course_catalog import create_app
from course_catalog.config import Config
from course_catalog.services.catalog_cache import CatalogCache
from course_catalog.services.dashboard_service import DashboardService
from course_catalog.services.enrollment_service import EnrollmentLedger
from course_catalog.services.session_store import SessionStore
from tests.fake_supabase import FakeDatabase, FakeSupabase

STUDENT_EMAIL = 'alice@example.com'
STUDENT_PASSWORD = 'student-pass'
ADMIN_EMAIL = 'admin@example.com'
ADMIN_PASSWORD = 'admin-pass'

SEED_COURSES = [
    {
        'id': 'course-1',
        'title': 'Complete Angular Development',
        'description': 'Build single page applications with components, services and routing.',
        'instructor': 'Dr. Sarah Johnson',
        'duration': '12 weeks',
        'category': 'Web Development',
        'level': 'Intermediate',
        'price': 299,
        'rating': 4.8,
        'students_enrolled': 1247,
        'tags': ['angular', 'typescript', 'web-development', 'frontend'],
        'created_at': '2024-01-15T10:00:00+00:00',
        'updated_at': '2024-01-20T10:00:00+00:00',
    },
    {
        'id': 'course-2',
        'title': 'Python for Data Science',
        'description': 'Analyze data with pandas, numpy and matplotlib.',
        'instructor': 'Prof. Michael Chen',
        'duration': '10 weeks',
        'category': 'Data Science',
        'level': 'Beginner',
        'price': 249,
        'rating': 4.9,
        'students_enrolled': 2156,
        'tags': ['python', 'data-science', 'machine-learning', 'analytics'],
        'created_at': '2024-01-10T10:00:00+00:00',
        'updated_at': '2024-01-25T10:00:00+00:00',
    },
    {
        'id': 'course-3',
        'title': 'Advanced React Development',
        'description': 'Hooks, state management and performance for large front ends.',
        'instructor': 'Alex Rodriguez',
        'duration': '8 weeks',
        'category': 'Web Development',
        'level': 'Advanced',
        'price': 399,
        'rating': 4.7,
        'students_enrolled': 856,
        'tags': ['react', 'redux', 'typescript', 'frontend', 'advanced'],
        'created_at': '2024-01-05T10:00:00+00:00',
        'updated_at': '2024-01-12T10:00:00+00:00',
    },
    {
        'id': 'course-4',
        'title': 'Mobile App Development with Flutter',
        'description': 'Ship cross-platform mobile apps from a single Dart codebase.',
        'instructor': 'Emma Thompson',
        'duration': '14 weeks',
        'category': 'Mobile Development',
        'level': 'Intermediate',
        'price': 349,
        'rating': 4.6,
        'students_enrolled': 967,
        'tags': ['flutter', 'dart', 'mobile', 'ios', 'android'],
        'created_at': '2024-01-01T10:00:00+00:00',
        'updated_at': '2024-01-08T10:00:00+00:00',
    },
    {
        'id': 'course-5',
        'title': 'DevOps and Cloud Computing',
        'description': 'Containers, orchestration and continuous delivery on the cloud.',
        'instructor': 'Robert Kim',
        'duration': '16 weeks',
        'category': 'DevOps',
        'level': 'Advanced',
        'price': 449,
        'rating': 4.8,
        'students_enrolled': 743,
        'tags': ['devops', 'docker', 'kubernetes', 'cloud', 'aws'],
        'created_at': '2023-12-20T10:00:00+00:00',
        'updated_at': '2024-01-02T10:00:00+00:00',
    },
    {
        'id': 'course-6',
        'title': 'UI/UX Design Fundamentals',
        'description': 'User research, wireframes and prototyping in Figma.',
        'instructor': 'Jessica Liu',
        'duration': '6 weeks',
        'category': 'Design',
        'level': 'Beginner',
        'price': 0,
        'rating': 4.7,
        'students_enrolled': 1532,
        'tags': ['ui', 'ux', 'design', 'figma', 'prototyping'],
        'created_at': '2023-12-15T10:00:00+00:00',
        'updated_at': '2023-12-30T10:00:00+00:00',
    },
]

SEED_CATEGORIES = ['Web Development', 'Data Science', 'Mobile Development', 'DevOps', 'Design']


class CatalogTestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    CORS_ORIGINS = ['http://localhost:4200']
    FILTER_DEBOUNCE_SECONDS = 0
    PROFILE_FETCH_ATTEMPTS = 3
    PROFILE_FETCH_DELAY = 0


def seed(db):
    for row in SEED_COURSES:
        course = dict(row, image='', syllabus=[], prerequisites=[], is_published=True)
        db.tables['courses'].append(course)
    db.tables['categories'].extend({'id': str(i), 'name': name} for i, name in enumerate(SEED_CATEGORIES, 1))
    db.add_account(STUDENT_EMAIL, STUDENT_PASSWORD, name='Alice Student', role='student')
    db.add_account(ADMIN_EMAIL, ADMIN_PASSWORD, name='Ada Admin', role='admin')
    return db


@pytest.fixture
def db():
    return seed(FakeDatabase())


@pytest.fixture
def client(db):
    return FakeSupabase(db)


@pytest.fixture
def session(client):
    store = SessionStore(client, profile_fetch_attempts=3, profile_fetch_delay=0)
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def catalog(client, session):
    return CatalogCache(client, session)


@pytest.fixture
def ledger(client, session, catalog):
    return EnrollmentLedger(client, session, catalog)


@pytest.fixture
def dashboards(session, catalog, ledger):
    return DashboardService(session, catalog, ledger)


@pytest.fixture
def student(session):
    return session.login(STUDENT_EMAIL, STUDENT_PASSWORD)


@pytest.fixture
def admin(session):
    return session.login(ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def app(db):
    app = create_app(CatalogTestConfig, client_factory=lambda: FakeSupabase(db))
    yield app
    app.extensions['catalog_contexts'].close_all()


@pytest.fixture
def http(app):
    return app.test_client()


@pytest.fixture
def login_as(http):
    def _login(email, password):
        response = http.post('/api/auth/login', json={'email': email, 'password': password})
        assert response.status_code == 200, response.get_json()
        return response.get_json()['data']
    return _login
