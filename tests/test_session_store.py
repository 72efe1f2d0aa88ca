import asyncio
import uuid

import pytest

from pricewatch.core.access import landing_view_for, resolve_view
from pricewatch.core.identity import AuthSession, IdentityProviderError
from pricewatch.core.notices import NoticeBoard
from pricewatch.core.profiles import Profile, ProfileGatewayError, default_profile_for
from pricewatch.core.session_cache import MemorySessionCache, SessionCache
from pricewatch.core.session_store import SessionStore


class FakeIdentityProvider:
    """In-memory identity provider that emits auth events synchronously."""

    def __init__(self):
        self.accounts: dict[str, dict] = {}
        self.session: AuthSession | None = None
        self.listeners = []
        self.sign_in_calls = 0
        self.fail_sign_out = False
        self.fail_get_session = False

    async def sign_up(self, email, password, metadata):
        if email in self.accounts:
            raise IdentityProviderError("User already registered")
        self.accounts[email] = {
            "password": password,
            "user_id": str(uuid.uuid4()),
            "metadata": dict(metadata),
        }

    async def sign_in(self, email, password):
        self.sign_in_calls += 1
        account = self.accounts.get(email)
        if account is None or account["password"] != password:
            raise IdentityProviderError("Invalid login credentials")
        self.session = AuthSession(
            user_id=account["user_id"],
            email=email,
            access_token="token",
            metadata=account["metadata"],
        )
        self.emit("SIGNED_IN", self.session)
        return self.session

    async def sign_out(self):
        if self.fail_sign_out:
            raise IdentityProviderError("network unreachable")
        self.session = None
        self.emit("SIGNED_OUT", None)

    async def get_session(self):
        if self.fail_get_session:
            raise IdentityProviderError("network unreachable")
        return self.session

    def on_change(self, listener):
        self.listeners.append(listener)
        return lambda: self.listeners.remove(listener)

    def emit(self, event, session):
        for listener in list(self.listeners):
            listener(event, session)


class FakeProfileGateway:
    def __init__(self):
        self.rows: dict[str, Profile] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.fail = False

    async def fetch_profile(self, user_id):
        gate = self.gates.get(user_id)
        if gate is not None:
            await gate.wait()
        if self.fail:
            raise ProfileGatewayError("connection reset")
        return self.rows.get(user_id)

    async def create_profile(self, profile):
        self.rows[profile.id] = profile
        return profile


def identity(email="ana@acme.com.br", **metadata):
    return AuthSession(user_id=str(uuid.uuid4()), email=email, metadata=metadata)


def profile_for(session, role="auditor", name="Someone"):
    return Profile(id=session.user_id, email=session.email, name=name, role=role)


@pytest.fixture
def provider():
    return FakeIdentityProvider()


@pytest.fixture
def profiles():
    return FakeProfileGateway()


@pytest.fixture
def notices():
    return NoticeBoard()


@pytest.fixture
def store(provider, profiles, notices):
    return SessionStore(provider, profiles, cache=MemorySessionCache(), notices=notices)


def run(coro):
    return asyncio.run(coro)


# -------- Registration and login --------


def test_register_then_login_lands_contributor_on_collect_view(store, provider, profiles):
    async def scenario():
        await store.initialize()
        assert await store.register("cora@acme.com.br", "secret1", "Cora", "contributor")
        assert await store.login("cora@acme.com.br", "secret1")
        await store.settle()

    run(scenario())

    user = store.current_user
    assert store.is_authenticated
    assert user.role == "contributor"
    assert user.name == "Cora"
    assert user.id in profiles.rows
    assert landing_view_for(user.role) == "/contributor/collect"
    decision = resolve_view("/admin/dashboard", store.is_authenticated, user)
    assert decision.redirect_to == "/contributor/collect"


def test_register_keeps_auditor_role(store):
    async def scenario():
        await store.initialize()
        await store.register("otto@acme.com.br", "secret1", "Otto", "auditor")
        await store.login("otto@acme.com.br", "secret1")
        await store.settle()

    run(scenario())

    assert store.current_user.role == "auditor"


def test_register_confirms_by_email(store, notices):
    assert run(store.register("cora@acme.com.br", "secret1", "Cora", "contributor"))

    assert notices.items[-1].level == "info"
    assert "confirm" in notices.items[-1].message
    assert store.current_user is None


@pytest.mark.parametrize(
    "args,message",
    [
        (("", "secret1", "Cora", "contributor"), "Please fill in all fields"),
        (("cora@acme.com.br", "123", "Cora", "contributor"), "at least 6"),
        (("cora@acme.com.br", "secret1", "Cora", "contributor", "secret2"), "do not match"),
        (("cora@acme.com.br", "secret1", "Cora", "admin"), "auditor or contributor"),
    ],
)
def test_register_validation(store, provider, notices, args, message):
    assert run(store.register(*args)) is False

    assert provider.accounts == {}
    assert message in notices.items[-1].message


def test_register_duplicate_fails(store, notices):
    run(store.register("cora@acme.com.br", "secret1", "Cora", "contributor"))

    assert run(store.register("cora@acme.com.br", "secret1", "Cora", "contributor")) is False
    assert notices.items[-1].level == "error"


def test_login_with_blank_fields_does_not_call_provider(store, provider, notices):
    assert run(store.login("  ", "")) is False

    assert provider.sign_in_calls == 0
    assert notices.items[-1].message == "Please fill in all fields"


def test_login_with_bad_credentials(store, notices):
    async def scenario():
        await store.initialize()
        return await store.login("nobody@acme.com.br", "wrong")

    assert run(scenario()) is False
    assert store.is_authenticated is False
    assert notices.items[-1].message == "Incorrect email or password"


# -------- Session restore --------


def test_loading_until_first_check(provider, profiles):
    session = identity()
    provider.session = session
    profiles.rows[session.user_id] = profile_for(session)
    store = SessionStore(provider, profiles)
    seen = []
    store.subscribe(seen.append)

    assert store.is_loading is True
    run(store.initialize())

    assert store.is_loading is False
    assert store.current_user.id == session.user_id
    assert seen[-1].is_loading is False


def test_cached_user_is_provisional(provider, profiles):
    stale = Profile(id="gone", email="old@acme.com.br", name="Old", role="admin")
    cache = MemorySessionCache(stale)
    store = SessionStore(provider, profiles, cache=cache)
    seen = []
    store.subscribe(seen.append)

    run(store.initialize())

    assert seen[0].current_user == stale
    assert seen[0].is_loading is True
    assert store.current_user is None
    assert store.is_authenticated is False
    assert cache.load() is None


def test_failed_session_check_still_finishes_loading(provider, profiles, notices):
    provider.fail_get_session = True
    store = SessionStore(provider, profiles, notices=notices)

    run(store.initialize())

    assert store.is_loading is False
    assert store.is_authenticated is False
    assert notices.items[-1].level == "error"


def test_missing_profile_is_provisioned_as_contributor(store, provider, profiles):
    session = identity("new@acme.com.br")
    provider.session = session

    run(store.initialize())

    assert store.current_user.role == "contributor"
    assert store.current_user.name == "new"
    assert profiles.rows[session.user_id] == store.current_user


def test_default_profile_rejects_self_service_admin():
    assert default_profile_for(identity(role="admin")).role == "contributor"
    assert default_profile_for(identity(role="auditor", name="Otto")).name == "Otto"


# -------- Ordering --------


def test_stale_profile_never_overwrites_newer_event(store, profiles):
    first = identity("first@acme.com.br")
    second = identity("second@acme.com.br")
    profiles.rows[first.user_id] = profile_for(first, name="First")
    profiles.rows[second.user_id] = profile_for(second, name="Second")
    gate = asyncio.Event()
    profiles.gates[first.user_id] = gate
    seen = []
    store.subscribe(seen.append)

    async def scenario():
        store.notify_auth_change("SIGNED_IN", first)
        store.notify_auth_change("SIGNED_IN", second)
        while store.current_user is None:
            await asyncio.sleep(0)
        gate.set()
        await store.settle()

    run(scenario())

    assert store.current_user.id == second.user_id
    assert all(s.current_user is None or s.current_user.id != first.user_id for s in seen)


def test_sign_out_event_supersedes_pending_lookup(store, profiles):
    session = identity()
    profiles.rows[session.user_id] = profile_for(session)
    gate = asyncio.Event()
    profiles.gates[session.user_id] = gate

    async def scenario():
        store.notify_auth_change("SIGNED_IN", session)
        store.notify_auth_change("SIGNED_OUT", None)
        await asyncio.sleep(0)
        gate.set()
        await store.settle()

    run(scenario())

    assert store.current_user is None
    assert store.is_authenticated is False


def test_profile_failure_without_user_stays_signed_out(store, profiles, notices):
    session = identity()
    profiles.fail = True

    async def scenario():
        store.notify_auth_change("SIGNED_IN", session)
        await store.settle()

    run(scenario())

    assert store.current_user is None
    assert notices.items[-1].message == "Could not load your profile"


def test_profile_failure_drops_cached_user_of_another_identity(provider, profiles, notices):
    alice = Profile(id="alice", email="alice@acme.com.br", name="Alice", role="admin")
    cache = MemorySessionCache(alice)
    provider.session = identity("bob@acme.com.br")
    profiles.fail = True
    store = SessionStore(provider, profiles, cache=cache, notices=notices)

    run(store.initialize())

    assert store.current_user is None
    assert store.is_authenticated is False
    assert store.is_loading is False
    assert cache.load() is None
    assert notices.items[-1].message == "Could not load your profile"


def test_profile_failure_drops_unconfirmed_cached_user(provider, profiles, notices):
    session = identity()
    cached = profile_for(session, role="admin")
    cache = MemorySessionCache(cached)
    provider.session = session
    profiles.fail = True
    store = SessionStore(provider, profiles, cache=cache, notices=notices)

    run(store.initialize())

    assert store.current_user is None
    assert store.is_authenticated is False
    assert cache.load() is None


def test_profile_failure_on_refresh_keeps_loaded_user(store, profiles, notices):
    session = identity()
    profiles.rows[session.user_id] = profile_for(session)

    async def scenario():
        store.notify_auth_change("SIGNED_IN", session)
        await store.settle()
        profiles.fail = True
        store.notify_auth_change("TOKEN_REFRESHED", session)
        await store.settle()

    run(scenario())

    assert store.current_user.id == session.user_id
    assert store.is_authenticated is True
    assert store.cache.load().id == session.user_id
    assert notices.items[-1].message == "Could not load your profile"


def test_unsubscribed_listener_gets_nothing(store, profiles):
    session = identity()
    profiles.rows[session.user_id] = profile_for(session)
    seen = []
    unsubscribe = store.subscribe(seen.append)

    async def scenario():
        store.notify_auth_change("SIGNED_IN", session)
        unsubscribe()
        await store.settle()

    run(scenario())

    assert seen == []
    assert store.current_user is not None


# -------- Logout --------


def test_logout_clears_even_if_remote_fails(provider, profiles):
    session = identity()
    provider.session = session
    profiles.rows[session.user_id] = profile_for(session)
    provider.fail_sign_out = True
    cache = MemorySessionCache()
    store = SessionStore(provider, profiles, cache=cache)

    async def scenario():
        await store.initialize()
        assert store.is_authenticated
        await store.logout()

    run(scenario())

    assert store.current_user is None
    assert store.is_authenticated is False
    assert cache.load() is None


# -------- Session cache file --------


def test_file_cache_round_trip_and_clear(tmp_path):
    cache = SessionCache(tmp_path / "session" / "user.json")
    profile = Profile(id="u1", email="a@acme.com.br", name="A", role="auditor")

    assert cache.load() is None
    cache.save(profile)
    assert cache.load() == profile
    cache.clear()
    assert cache.load() is None


def test_corrupt_cache_is_discarded(tmp_path):
    path = tmp_path / "user.json"
    path.write_text("{not json", encoding="utf-8")

    assert SessionCache(path).load() is None
    assert not path.exists()
