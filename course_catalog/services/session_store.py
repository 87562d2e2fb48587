"""
Session Store Module
Single source of truth for who is logged in within one session context
"""
import itertools
import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, List, Optional

from supabase import AuthApiError, AuthError, Client

from course_catalog.errors import (
    InvalidCredentials,
    NetworkOrServiceError,
    OperationCancelled,
    ProfileCreationFailed,
    ProfileUpdateFailed,
    Unauthorized,
    UserNotFound,
    is_no_rows,
    service_error,
)
from course_catalog.models.user import Role, User, avatar_for
from course_catalog.utils.cancellation import CancellationToken
from course_catalog.utils.logger import custom_logger

logger = logging.getLogger(__name__)

USER_NOT_FOUND_CODES = {'user_not_found'}

Subscriber = Callable[[Optional[User]], None]


def auth_failure(error: Exception, fallback: str):
    """
    Map an auth API exception to the catalog taxonomy
    @param error: Exception - Error raised by the auth client
    @param fallback: str - Message used when the error carries none
    @returns: CatalogError - Typed error to raise
    """
    message = getattr(error, 'message', None) or str(error) or fallback
    code = getattr(error, 'code', None)
    status = getattr(error, 'status', None)

    if code in USER_NOT_FOUND_CODES or 'user not found' in message.lower():
        return UserNotFound(message, details={'code': code})
    if isinstance(error, AuthApiError) and status is not None and status < 500:
        return InvalidCredentials(message, details={'code': code})
    return NetworkOrServiceError(message, details={'code': code, 'status': status})


class SessionStore:
    """
    Holds the current identity and notifies observers when it changes.
    New observers are called immediately with the latest value.
    """

    def __init__(self, client: Client, profile_fetch_attempts: int = 3, profile_fetch_delay: float = 0.5):
        self._client = client
        self.profile_fetch_attempts = max(1, profile_fetch_attempts)
        self.profile_fetch_delay = profile_fetch_delay

        self._lock = threading.RLock()
        self._current_user: Optional[User] = None
        self._token = CancellationToken('anonymous')
        self._attempts = itertools.count(1)
        self._attempt = 0
        self._subscribers: List[Subscriber] = []
        self._home_listeners: List[Callable[[], None]] = []
        self._auth_subscription = None
        self._operations = 0

    # Observation

    def subscribe(self, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(callback)
            current = self._current_user
        callback(current)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def on_navigate_home(self, callback: Callable[[], None]) -> None:
        self._home_listeners.append(callback)

    @property
    def token(self) -> CancellationToken:
        """Cancellation token of the currently published identity."""
        return self._token

    # Synchronous reads

    def get_current_user(self) -> Optional[User]:
        return self._current_user

    def is_logged_in(self) -> bool:
        return self._current_user is not None

    def is_admin(self) -> bool:
        user = self._current_user
        return user is not None and user.is_admin

    def is_student(self) -> bool:
        user = self._current_user
        return user is not None and user.is_student

    # Lifecycle

    def initialize(self) -> Optional[User]:
        """
        Restore identity from the client's persisted session and listen for auth events
        @returns: User | None - Restored identity
        """
        attempt = self._begin_attempt()
        user = None
        try:
            session = self._client.auth.get_session()
            if session is not None and getattr(session, 'user', None) is not None:
                user = self._resolve_user(session.user)
                self._publish(user, attempt)
        except Exception as e:
            logger.error(f"Auth init error: {str(e)}")

        if self._auth_subscription is None:
            self._auth_subscription = self._client.auth.on_auth_state_change(self._on_auth_event)
        return user

    def close(self) -> None:
        subscription, self._auth_subscription = self._auth_subscription, None
        if subscription is not None:
            try:
                subscription.unsubscribe()
            except Exception as e:
                logger.warning(f"Failed to detach auth listener: {str(e)}")
        self._token.cancel()

    def _on_auth_event(self, event: Any, session: Any) -> None:
        event_name = getattr(event, 'value', event)
        if event_name == 'SIGNED_IN' and session is not None and getattr(session, 'user', None):
            if self._operations:
                # login/register publish their own result
                return
            current = self._current_user
            if current is not None and current.id == str(session.user.id):
                return
            # Joins the attempt in progress, so a logout started meanwhile wins
            attempt = self._attempt
            self._publish(self._resolve_user(session.user), attempt)
        elif event_name == 'SIGNED_OUT':
            self._begin_attempt()
            self._publish(None)

    # Operations

    @custom_logger.log_function_call(log_params=False)
    def login(self, email: str, password: str) -> User:
        """
        Authenticate with email and password and publish the resulting identity
        @param email: str - Account email
        @param password: str - Account password
        @returns: User - The logged in user
        @raises: InvalidCredentials, UserNotFound, NetworkOrServiceError, OperationCancelled
        """
        if not email or not password:
            raise InvalidCredentials("Email and password are required")

        attempt = self._begin_attempt()
        logger.info(f"Logging in: {email}")
        try:
            with self._operation():
                response = self._client.auth.sign_in_with_password({'email': email, 'password': password})
        except AuthError as e:
            logger.error(f"Login error: {str(e)}")
            raise auth_failure(e, 'Login failed') from e
        except Exception as e:
            logger.error(f"Login error: {str(e)}")
            raise service_error(e, 'Login failed') from e

        if response is None or response.user is None:
            raise UserNotFound('Login failed')

        user = self._resolve_user(response.user)
        if not self._publish(user, attempt):
            raise OperationCancelled('Login was superseded by a newer sign-in or logout')
        logger.info(f"User logged in: {user.id}")
        return user

    @custom_logger.log_function_call(log_params=False)
    def register(self, name: str, email: str, password: str, role: Role = Role.STUDENT) -> User:
        """
        Create an auth identity and its profile row, then publish it.
        The profile row may be created asynchronously by a database trigger,
        so it is polled before being created manually.
        @returns: User - The registered user
        @raises: InvalidCredentials, ProfileCreationFailed, NetworkOrServiceError, OperationCancelled
        """
        if not name or not email or not password:
            raise InvalidCredentials("Name, email and password are required")
        role = Role(role)

        attempt = self._begin_attempt()
        logger.info(f"Registering: {email}")
        try:
            with self._operation():
                response = self._client.auth.sign_up({
                    'email': email,
                    'password': password,
                    'options': {'data': {'name': name, 'role': role.value}},
                })
        except AuthError as e:
            logger.error(f"Registration error: {str(e)}")
            raise auth_failure(e, 'Registration failed') from e
        except Exception as e:
            logger.error(f"Registration error: {str(e)}")
            raise service_error(e, 'Registration failed') from e

        if response is None or response.user is None:
            raise ProfileCreationFailed('Registration failed')

        auth_user = response.user
        row = None
        for number in range(1, self.profile_fetch_attempts + 1):
            row = self._fetch_profile(str(auth_user.id))
            if row is not None:
                break
            logger.info(f"Profile for {auth_user.id} not ready (attempt {number}/{self.profile_fetch_attempts})")
            if number < self.profile_fetch_attempts:
                time.sleep(self.profile_fetch_delay)

        if row is not None:
            user = User.from_row(row)
        else:
            user = User(
                id=str(auth_user.id),
                email=getattr(auth_user, 'email', None) or email,
                name=name,
                role=role,
                avatar=avatar_for(name),
            )
            try:
                self._client.table('profiles').upsert(user.to_row()).execute()
            except Exception as e:
                logger.error(f"Profile creation failed for {user.id}: {str(e)}")
                raise ProfileCreationFailed(
                    'Failed to create user profile',
                    details={'user_id': user.id, 'reason': str(e)}
                ) from e

        if not self._publish(user, attempt):
            raise OperationCancelled('Registration was superseded by a newer sign-in or logout')
        logger.info(f"User registered: {user.id}")
        return user

    def logout(self) -> None:
        """Clear the identity, sign out remotely if possible, then navigate home. Never raises."""
        self._begin_attempt()
        self._publish(None)
        try:
            self._client.auth.sign_out()
        except Exception as e:
            logger.error(f"Logout error: {str(e)}")

        for listener in list(self._home_listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"Navigate-home listener failed: {str(e)}")

    def update_profile(self, name: Optional[str] = None, avatar: Optional[str] = None) -> User:
        """
        Update the owning user's name and avatar; role is never editable here
        @returns: User - The updated identity
        @raises: Unauthorized, ProfileUpdateFailed
        """
        user = self._current_user
        if user is None:
            raise Unauthorized('No user logged in', status=401)

        updates = {}
        if name is not None:
            updates['name'] = name
        if avatar is not None:
            updates['avatar'] = avatar
        if not updates:
            return user

        try:
            response = self._client.table('profiles').update(updates).eq('id', user.id).execute()
        except Exception as e:
            logger.error(f"Profile update failed for {user.id}: {str(e)}")
            raise ProfileUpdateFailed('Failed to update profile', details={'reason': str(e)}) from e
        if not response.data:
            raise ProfileUpdateFailed('Failed to update profile', details={'reason': 'profile row missing'})

        row = response.data[0]
        updated = User(
            id=user.id,
            email=user.email,
            name=row.get('name') or user.name,
            role=user.role,
            avatar=row.get('avatar') or None,
            created_at=user.created_at,
        )
        with self._lock:
            if self._current_user is None or self._current_user.id != user.id:
                return updated
            self._current_user = updated
        self._notify(updated)
        return updated

    # Internals

    @contextmanager
    def _operation(self):
        with self._lock:
            self._operations += 1
        try:
            yield
        finally:
            with self._lock:
                self._operations -= 1

    def _begin_attempt(self) -> int:
        with self._lock:
            self._attempt = next(self._attempts)
            return self._attempt

    def _fetch_profile(self, user_id: str) -> Optional[dict]:
        try:
            response = self._client.table('profiles').select('*').eq('id', user_id).single().execute()
        except Exception as e:
            if not is_no_rows(e):
                logger.error(f"Error fetching profile {user_id}: {str(e)}")
            return None
        return response.data or None

    def _resolve_user(self, auth_user: Any) -> User:
        row = self._fetch_profile(str(auth_user.id))
        if row is not None:
            return User.from_row(row)

        logger.info(f"Profile not found, creating from auth user: {auth_user.id}")
        user = User.from_auth_user(auth_user)
        try:
            self._client.table('profiles').upsert(user.to_row()).execute()
        except Exception as e:
            logger.warning(f"Profile creation failed, but continuing: {str(e)}")
        return user

    def _publish(self, user: Optional[User], attempt: Optional[int] = None) -> bool:
        """
        Replace the identity unless a newer attempt has started since `attempt`
        @returns: bool - False when the identity was dropped as superseded
        """
        with self._lock:
            if attempt is not None and attempt != self._attempt:
                logger.info(f"Dropping identity from superseded attempt {attempt}")
                return False
            previous = self._current_user
            if previous == user:
                return True
            self._token.cancel()
            self._token = CancellationToken(user.id if user else 'anonymous')
            self._current_user = user
        self._notify(user)
        return True

    def _notify(self, user: Optional[User]) -> None:
        for callback in list(self._subscribers):
            try:
                callback(user)
            except Exception as e:
                logger.error(f"Session subscriber failed: {str(e)}")
