"""
Identity provider seam for the client session layer.

`IdentityProvider` is what the session store talks to; the Supabase
implementation wraps the blocking supabase-py auth client.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

import httpx
from fastapi.concurrency import run_in_threadpool
from supabase import AuthError, Client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthSession:
    """What the session store needs to know about a signed-in identity."""

    user_id: str
    email: str
    access_token: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


class IdentityProviderError(Exception):
    """Credential, confirmation or transport failure reported by the provider."""


# (event, session), event being a provider name such as "SIGNED_IN"
AuthChangeListener = Callable[[str, AuthSession | None], None]


class IdentityProvider(Protocol):
    async def sign_in(self, email: str, password: str) -> AuthSession: ...

    async def sign_up(self, email: str, password: str, metadata: dict[str, Any]) -> None: ...

    async def sign_out(self) -> None: ...

    async def get_session(self) -> AuthSession | None: ...

    def on_change(self, listener: AuthChangeListener) -> Callable[[], None]:
        """Subscribe to session changes; returns an unsubscribe callable."""
        ...


def to_auth_session(session: Any) -> AuthSession | None:
    """Convert a supabase-py Session into an AuthSession."""
    if session is None or session.user is None:
        return None
    return AuthSession(
        user_id=str(session.user.id),
        email=session.user.email or "",
        access_token=session.access_token,
        metadata=dict(session.user.user_metadata or {}),
    )


class SupabaseIdentityProvider:
    """
    IdentityProvider backed by Supabase Auth.

    supabase-py's sync client blocks, so every call runs in the
    threadpool. Auth-state callbacks may fire on a worker thread; they
    are handed back to the event loop that subscribed, in delivery
    order.
    """

    def __init__(self, client: Client):
        self.client = client

    async def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            response = await run_in_threadpool(
                self.client.auth.sign_in_with_password,
                {"email": email, "password": password},
            )
        except (AuthError, httpx.HTTPError) as exc:
            raise IdentityProviderError(str(exc)) from exc

        session = to_auth_session(response.session)
        if session is None:
            raise IdentityProviderError("Email not confirmed")
        return session

    async def sign_up(self, email: str, password: str, metadata: dict[str, Any]) -> None:
        try:
            await run_in_threadpool(
                self.client.auth.sign_up,
                {"email": email, "password": password, "options": {"data": metadata}},
            )
        except (AuthError, httpx.HTTPError) as exc:
            raise IdentityProviderError(str(exc)) from exc

    async def sign_out(self) -> None:
        try:
            await run_in_threadpool(self.client.auth.sign_out)
        except (AuthError, httpx.HTTPError) as exc:
            raise IdentityProviderError(str(exc)) from exc

    async def get_session(self) -> AuthSession | None:
        try:
            session = await run_in_threadpool(self.client.auth.get_session)
        except (AuthError, httpx.HTTPError) as exc:
            raise IdentityProviderError(str(exc)) from exc
        return to_auth_session(session)

    def on_change(self, listener: AuthChangeListener) -> Callable[[], None]:
        loop = asyncio.get_running_loop()

        def callback(event: str, session: Any) -> None:
            loop.call_soon_threadsafe(listener, event, to_auth_session(session))

        subscription = self.client.auth.on_auth_state_change(callback)
        return subscription.unsubscribe
