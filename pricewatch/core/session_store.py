"""
Client-side session store.

Holds "who is signed in" for a front end and keeps it in sync with the
identity provider. The store is built explicitly and passed to whatever
needs it (see `create_session_store`); there is no module-level instance.

Every auth-state change bumps a generation counter. A profile lookup
only publishes if its generation is still the latest one, so a slow
lookup for an older event can never overwrite a newer state.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Callable

from pricewatch.core.config import Settings, get_settings
from pricewatch.core.identity import (
    AuthSession,
    IdentityProvider,
    IdentityProviderError,
    SupabaseIdentityProvider,
)
from pricewatch.core.notices import NoticeBoard
from pricewatch.core.profiles import (
    Profile,
    ProfileGateway,
    ProfileGatewayError,
    SupabaseProfileGateway,
    default_profile_for,
)
from pricewatch.core.session_cache import MemorySessionCache, SessionCache
from pricewatch.core.supabase_client import supabase_public
from pricewatch.schemas.user import REGISTRABLE_ROLES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    current_user: Profile | None = None
    is_authenticated: bool = False
    is_loading: bool = True


SessionListener = Callable[[SessionSnapshot], None]


class SessionStore:
    def __init__(
        self,
        provider: IdentityProvider,
        profiles: ProfileGateway,
        cache: SessionCache | MemorySessionCache | None = None,
        notices: NoticeBoard | None = None,
        min_password_length: int = 6,
    ):
        self.provider = provider
        self.profiles = profiles
        self.cache = cache if cache is not None else MemorySessionCache()
        self.notices = notices if notices is not None else NoticeBoard()
        self.min_password_length = min_password_length

        self._snapshot = SessionSnapshot()
        self._listeners: list[SessionListener] = []
        self._generation = 0
        # True once the published profile came from the gateway, not the cache.
        self._confirmed = False
        self._pending: set[asyncio.Task] = set()
        self._unsubscribe_provider: Callable[[], None] | None = None

    # ---------- state ----------

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def current_user(self) -> Profile | None:
        return self._snapshot.current_user

    @property
    def is_authenticated(self) -> bool:
        return self._snapshot.is_authenticated

    @property
    def is_loading(self) -> bool:
        return self._snapshot.is_loading

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register `listener` for every published snapshot.

        Returns a callable that removes it again; after that the
        listener no longer receives results, even of lookups that were
        already in flight.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, **changes) -> None:
        self._snapshot = replace(self._snapshot, **changes)
        for listener in list(self._listeners):
            listener(self._snapshot)

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _holds_confirmed_profile(self, session: AuthSession) -> bool:
        user = self.current_user
        return self._confirmed and user is not None and user.id == session.user_id

    def _apply(self, profile: Profile | None) -> None:
        self._confirmed = profile is not None
        if profile is None:
            self.cache.clear()
            self._publish(current_user=None, is_authenticated=False, is_loading=False)
        else:
            self.cache.save(profile)
            self._publish(current_user=profile, is_authenticated=True, is_loading=False)

    # ---------- lifecycle ----------

    async def initialize(self) -> None:
        """
        Restore the session at start-up.

        The cached profile (if any) is published straight away so the UI
        has something to show, but `is_loading` stays true until the
        provider has answered.
        """
        cached = self.cache.load()
        if cached is not None:
            self._publish(current_user=cached, is_authenticated=True)

        if self._unsubscribe_provider is None:
            self._unsubscribe_provider = self.provider.on_change(self.notify_auth_change)

        generation = self._next_generation()
        try:
            session = await self.provider.get_session()
        except IdentityProviderError as exc:
            logger.error("Session check failed: %s", exc)
            if self._is_current(generation):
                self.notices.error("Could not restore your session")
                self._apply(None)
        else:
            await self._resolve(generation, session)

        # A newer event superseded the initial check; wait for it to land.
        await self.settle()
        if self.is_loading:
            self._publish(is_loading=False)

    async def close(self) -> None:
        if self._unsubscribe_provider is not None:
            self._unsubscribe_provider()
            self._unsubscribe_provider = None
        await self.settle()

    async def settle(self) -> None:
        """Wait for every scheduled profile lookup to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    # ---------- provider events ----------

    def notify_auth_change(self, event: str, session: AuthSession | None) -> None:
        """
        Provider callback. Must run on the event loop thread.

        The generation is taken here, synchronously, so events are
        numbered in delivery order even though lookups finish in any
        order.
        """
        generation = self._next_generation()
        logger.debug("Auth event %s (generation %d)", event, generation)
        task = asyncio.get_running_loop().create_task(self._resolve(generation, session))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _resolve(self, generation: int, session: AuthSession | None) -> None:
        if session is None:
            if self._is_current(generation):
                self._apply(None)
            return

        try:
            profile = await self.profiles.fetch_profile(session.user_id)
            if profile is None:
                logger.info("No profile for %s yet, provisioning default", session.email)
                profile = await self.profiles.create_profile(default_profile_for(session))
        except ProfileGatewayError as exc:
            logger.error("Could not load profile for %s: %s", session.user_id, exc)
            if self._is_current(generation):
                self.notices.error("Could not load your profile")
                if not self._holds_confirmed_profile(session):
                    self._apply(None)
            return

        if not self._is_current(generation):
            logger.debug(
                "Discarding profile from generation %d (current %d)",
                generation,
                self._generation,
            )
            return
        self._apply(profile)

    # ---------- user actions ----------

    async def login(self, email: str, password: str) -> bool:
        """
        Sign in with email and password.

        The profile is not loaded here: the provider's SIGNED_IN event
        triggers the lookup. Failures end up as notices, never raised.
        """
        email = (email or "").strip()
        if not email or not password:
            self.notices.error("Please fill in all fields")
            return False

        try:
            await self.provider.sign_in(email, password)
        except IdentityProviderError as exc:
            logger.warning("Sign-in failed for %s: %s", email, exc)
            if "confirm" in str(exc).lower():
                self.notices.error("Please confirm your email before signing in")
            else:
                self.notices.error("Incorrect email or password")
            return False

        self.notices.success("Signed in")
        return True

    async def register(
        self,
        email: str,
        password: str,
        display_name: str,
        role: str,
        confirm_password: str | None = None,
    ) -> bool:
        email = (email or "").strip()
        display_name = (display_name or "").strip()

        if not email or not password or not display_name or not role:
            self.notices.error("Please fill in all fields")
            return False
        if len(password) < self.min_password_length:
            self.notices.error(
                f"Password must be at least {self.min_password_length} characters"
            )
            return False
        if confirm_password is not None and confirm_password != password:
            self.notices.error("Passwords do not match")
            return False
        if role not in REGISTRABLE_ROLES:
            self.notices.error("Please choose auditor or contributor")
            return False

        try:
            await self.provider.sign_up(
                email, password, {"name": display_name, "role": role}
            )
        except IdentityProviderError as exc:
            logger.warning("Sign-up failed for %s: %s", email, exc)
            self.notices.error(f"Could not create account: {exc}")
            return False

        logger.info("Registered %s as %s", email, role)
        self.notices.info("Account created. Check your email to confirm it before signing in")
        return True

    async def logout(self) -> None:
        """
        Sign out locally right away, then tell the provider.

        The remote call is best effort: its failure is only logged.
        """
        # Supersedes any lookup still in flight.
        self._next_generation()
        self._apply(None)
        try:
            await self.provider.sign_out()
        except IdentityProviderError as exc:
            logger.warning("Remote sign-out failed: %s", exc)


def create_session_store(
    settings: Settings | None = None,
    notices: NoticeBoard | None = None,
) -> SessionStore:
    """Build a store wired to the Supabase project from settings."""
    settings = settings or get_settings()
    client = supabase_public()
    return SessionStore(
        provider=SupabaseIdentityProvider(client),
        profiles=SupabaseProfileGateway(client),
        cache=SessionCache(settings.SESSION_CACHE_PATH),
        notices=notices,
        min_password_length=settings.MIN_PASSWORD_LENGTH,
    )
