"""
Request helpers: resolve the caller's session context and guard routes by role
"""
import functools
import uuid
from flask import current_app, session

from course_catalog.errors import Unauthorized
from course_catalog.models.user import Role

SESSION_KEY = 'catalog_sid'
REGISTRY_KEY = 'catalog_contexts'


def get_registry():
    return current_app.extensions[REGISTRY_KEY]


def session_id(create=True):
    sid = session.get(SESSION_KEY)
    if sid is None and create:
        sid = uuid.uuid4().hex
        session[SESSION_KEY] = sid
    return sid


def get_context(create=False):
    """
    Context of the browser session making the current request.
    Requests without a live session share the anonymous context unless
    create is set, which starts a session on first use.
    @param create: bool - Start a session for this browser if it has none
    @returns: CatalogContext - Session or shared anonymous context
    """
    registry = get_registry()
    sid = session_id(create=create)
    if sid is not None and (create or sid in registry):
        return registry.get(sid)
    return registry.anonymous()


def login_required(view):
    """Reject the request with 401 unless someone is logged in."""
    @functools.wraps(view)
    def wrapper(*args, **kwargs):
        if not get_context().session.is_logged_in():
            raise Unauthorized('Please log in to access this page', status=401)
        return view(*args, **kwargs)
    return wrapper


def role_required(role):
    """Reject the request with 401 when logged out and 403 for any other role."""
    role = Role(role)

    def decorator(view):
        @functools.wraps(view)
        def wrapper(*args, **kwargs):
            user = get_context().session.get_current_user()
            if user is None:
                raise Unauthorized('Please log in to access this page', status=401)
            if user.role is not role:
                raise Unauthorized(f"This page requires the {role.value} role")
            return view(*args, **kwargs)
        return wrapper
    return decorator
