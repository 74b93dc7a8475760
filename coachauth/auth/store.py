"""
Session store for coachauth.

Single source of truth for who is logged in. Keeps the current identity and
the cached profile consistent with Supabase auth by draining identity-change
notifications through one queue, in delivery order.

Wraps: supabase_auth._async.gotrue_client.AsyncGoTrueClient.on_auth_state_change
Source: venv/lib/python3.14/site-packages/supabase_auth/_async/gotrue_client.py
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Callable, List, Optional

from ..errors import error_message
from .models import AuthState, Identity, Profile, TokenBundle

if TYPE_CHECKING:
    from ..client import CoachAuth

logger = logging.getLogger(__name__)

INITIAL_SESSION = "INITIAL_SESSION"

StateListener = Callable[[AuthState], None]


class SessionStore:
    """
    Holds ``{identity, profile, is_loading, is_authenticated, is_admin}``.

    Every event (backend notification or the one startup fetch) goes through
    the same protocol: set identity, then reconcile the profile or clear it.
    Events are applied one at a time, so the final state always reflects the
    last event delivered. ``refresh_profile`` runs outside the queue and
    only writes its result if no newer event was applied meanwhile.

    Example:
        ```python
        store = SessionStore(coach)
        await store.initialize()
        if store.is_authenticated:
            print(store.profile.email_confirmed)
        await store.teardown()
        ```
    """

    def __init__(self, coach: "CoachAuth") -> None:
        """
        Initialize SessionStore.

        Args:
            coach: Main CoachAuth client instance
        """
        self.coach = coach
        self.client = coach.client
        self.profiles = coach.profiles

        self._identity: Optional[Identity] = None
        self._profile: Optional[Profile] = None
        self._session: Optional[TokenBundle] = None
        self._is_loading = True

        self._initialized = False
        self._subscription: Any = None
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        # Bumped every time an event is applied
        self._generation = 0
        self._listeners: List[StateListener] = []

    # Derived state

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def profile(self) -> Optional[Profile]:
        return self._profile

    @property
    def session(self) -> Optional[TokenBundle]:
        return self._session

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    @property
    def is_admin(self) -> bool:
        return bool(self._profile and self._profile.is_admin)

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def state(self) -> AuthState:
        return AuthState(
            identity=self._identity,
            profile=self._profile,
            is_loading=self._is_loading,
            is_authenticated=self.is_authenticated,
            is_admin=self.is_admin,
        )

    # Lifecycle

    async def initialize(self) -> None:
        """
        Subscribe to identity changes and load the current session.

        Idempotent: repeated calls are no-ops until ``teardown()``.
        Returns once the startup session has been applied.
        """
        if self._initialized:
            return
        self._initialized = True
        self._is_loading = True
        self._queue = asyncio.Queue()
        self._worker = asyncio.get_running_loop().create_task(
            self._drain(), name="coachauth-session-store"
        )

        try:
            self._subscription = self.client.auth.on_auth_state_change(self.handle_auth_event)
        except Exception as exc:
            logger.error("Could not subscribe to auth state changes: %s", error_message(exc))

        logger.debug("Initializing auth state...")
        try:
            session = await self.client.auth.get_session()
        except Exception as exc:
            logger.error("Error initializing auth: %s", error_message(exc))
            session = None

        self.handle_auth_event(INITIAL_SESSION, session)
        await self.wait_until_settled()

    async def teardown(self) -> None:
        """Unsubscribe from identity changes and stop the event worker."""
        if self._subscription is not None:
            try:
                self._subscription.unsubscribe()
            except Exception as exc:
                logger.warning("Error unsubscribing from auth changes: %s", error_message(exc))
            self._subscription = None

        if self._worker is not None:
            worker, self._worker = self._worker, None
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass

        # Release anyone blocked in wait_until_settled
        if self._queue is not None:
            while not self._queue.empty():
                self._queue.get_nowait()
                self._queue.task_done()

        self._queue = None
        self._initialized = False

    async def wait_until_settled(self) -> None:
        """Wait until every queued identity event has been applied."""
        if self._queue is not None:
            await self._queue.join()

    # Events

    def handle_auth_event(self, event: Any, session: Any) -> None:
        """
        Queue an identity change.

        Registered as the ``on_auth_state_change`` callback; also usable by
        the client to push a known transition (e.g. after sign-out).
        """
        if self._queue is None:
            logger.debug("Auth event %s ignored: store not initialized", event)
            return
        email = getattr(getattr(session, "user", None), "email", None)
        logger.debug("Auth state changed: %s %s", event, email)
        self._queue.put_nowait((event, session))

    async def _drain(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            event, session = await queue.get()
            try:
                await self._apply(event, session)
            except Exception as exc:
                logger.error("Error applying auth event %s: %s", event, error_message(exc))
                self._identity = None
                self._session = None
                self._profile = None
            finally:
                self._is_loading = False
                queue.task_done()
                self._notify()

    async def _apply(self, event: Any, session: Any) -> None:
        user = getattr(session, "user", None) if session else None
        identity = Identity.from_user(user) if user is not None else None

        self._generation += 1
        self._session = TokenBundle.from_session(session) if identity else None
        self._identity = identity

        if identity is None:
            self._profile = None
            return

        self._profile = await self.profiles.reconcile(identity)

    # Profile cache

    async def refresh_profile(self) -> Optional[Profile]:
        """
        Re-run reconciliation for the current identity.

        Returns:
            The refreshed profile, or None when nobody is logged in or the
            profile is unavailable
        """
        identity = self._identity
        if identity is None:
            return None

        generation = self._generation
        profile = await self.profiles.reconcile(identity)

        if profile is not None and self._is_current(generation, identity):
            self._profile = profile
            self._notify()
        elif profile is not None:
            logger.debug("Discarding stale profile for %s", identity.id)
        return profile

    def _is_current(self, generation: int, identity: Identity) -> bool:
        return (
            generation == self._generation
            and self._identity is not None
            and self._identity.id == identity.id
        )

    # Listeners

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        """
        Call ``listener(state)`` after every state change.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self) -> None:
        if not self._listeners:
            return
        state = self.state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Auth state listener failed")
