"""
Session Context Module
Owns one browser session's collaborators and the registry that hands them out
"""
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from supabase import Client

from course_catalog.services.catalog_cache import CatalogCache
from course_catalog.services.dashboard_service import DashboardService
from course_catalog.services.enrollment_service import EnrollmentLedger
from course_catalog.services.filter_engine import FilteredCourseList
from course_catalog.services.session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class CatalogContext:
    client: Client
    session: SessionStore
    catalog: CatalogCache
    enrollments: EnrollmentLedger
    dashboards: DashboardService
    course_list: FilteredCourseList

    @classmethod
    def build(cls, client: Client, config) -> 'CatalogContext':
        """
        Wire the collaborators of one session around a dedicated client
        @param client: Client - Supabase client owned by this context
        @param config: object - Application config mapping
        @returns: CatalogContext - Initialized context
        """
        session = SessionStore(
            client,
            profile_fetch_attempts=config.get('PROFILE_FETCH_ATTEMPTS', 3),
            profile_fetch_delay=config.get('PROFILE_FETCH_DELAY', 0.5),
        )
        catalog = CatalogCache(client, session)
        enrollments = EnrollmentLedger(client, session, catalog)
        course_list = FilteredCourseList(config.get('FILTER_DEBOUNCE_SECONDS', 0.3))
        catalog.subscribe(course_list.set_source)
        context = cls(
            client=client,
            session=session,
            catalog=catalog,
            enrollments=enrollments,
            dashboards=DashboardService(session, catalog, enrollments),
            course_list=course_list,
        )
        session.initialize()
        return context

    def close(self) -> None:
        self.course_list.close()
        self.session.close()


class ContextRegistry:
    """
    Maps session ids to lazily built contexts.

    Contexts idle for longer than CONTEXT_IDLE_TIMEOUT seconds are closed, and
    the least recently used one is closed once more than MAX_CONTEXTS are held.
    Requests without a session share a single anonymous context.
    """

    def __init__(self, client_factory: Callable[[], Client], config,
                 clock: Callable[[], float] = time.monotonic):
        self._client_factory = client_factory
        self._config = config
        self.idle_timeout = config.get('CONTEXT_IDLE_TIMEOUT', 1800)
        self.max_contexts = max(1, config.get('MAX_CONTEXTS', 1000))
        self._clock = clock
        self._lock = threading.Lock()
        self._contexts: 'OrderedDict[str, CatalogContext]' = OrderedDict()
        self._last_used: Dict[str, float] = {}
        self._anonymous: Optional[CatalogContext] = None

    def __len__(self):
        return len(self._contexts)

    def __contains__(self, session_id):
        return session_id in self._contexts

    def get(self, session_id: str) -> CatalogContext:
        """
        Context for a session, built on first use
        @param session_id: str - Browser session id
        @returns: CatalogContext - Live context for the session
        """
        with self._lock:
            evicted = []
            context = self._contexts.get(session_id)
            if context is not None:
                self._touch(session_id)
                evicted = self._collect_evictions()
        if context is not None:
            self._close(evicted)
            return context

        # initialize() talks to the auth gateway, so build without holding the lock
        logger.info(f"Creating catalog context for session {session_id}")
        built = CatalogContext.build(self._client_factory(), self._config)
        with self._lock:
            context = self._contexts.get(session_id)
            if context is None:
                context, built = built, None
                self._contexts[session_id] = context
            self._touch(session_id)
            evicted = self._collect_evictions()
        if built is not None:
            built.close()
        self._close(evicted)
        return context

    def anonymous(self) -> CatalogContext:
        """Shared context for requests that carry no session. It never holds an identity."""
        context = self._anonymous
        if context is not None:
            return context

        logger.info("Creating shared anonymous catalog context")
        built = CatalogContext.build(self._client_factory(), self._config)
        with self._lock:
            if self._anonymous is None:
                self._anonymous, built = built, None
            context = self._anonymous
        if built is not None:
            built.close()
        return context

    def discard(self, session_id: str) -> None:
        with self._lock:
            context = self._contexts.pop(session_id, None)
            self._last_used.pop(session_id, None)
        if context is not None:
            context.close()
            logger.info(f"Dropped catalog context for session {session_id}")

    def close_all(self) -> None:
        with self._lock:
            contexts, self._contexts = list(self._contexts.values()), OrderedDict()
            self._last_used = {}
            if self._anonymous is not None:
                contexts.append(self._anonymous)
                self._anonymous = None
        for context in contexts:
            context.close()

    def _touch(self, session_id: str) -> None:
        self._contexts.move_to_end(session_id)
        self._last_used[session_id] = self._clock()

    def _collect_evictions(self) -> List[Tuple[str, CatalogContext]]:
        """Unlink expired and surplus contexts; caller holds the lock and closes them."""
        now = self._clock()
        evicted = []
        # Ordered by last use, oldest first
        for session_id in list(self._contexts):
            if now - self._last_used[session_id] <= self.idle_timeout:
                break
            evicted.append((session_id, self._contexts.pop(session_id)))
            del self._last_used[session_id]
        while len(self._contexts) > self.max_contexts:
            session_id, context = self._contexts.popitem(last=False)
            del self._last_used[session_id]
            evicted.append((session_id, context))
        return evicted

    def _close(self, evicted: List[Tuple[str, CatalogContext]]) -> None:
        for session_id, context in evicted:
            context.close()
            logger.info(f"Evicted idle catalog context for session {session_id}")
