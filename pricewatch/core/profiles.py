import logging
from typing import Protocol

import httpx
from fastapi.concurrency import run_in_threadpool
from postgrest.exceptions import APIError
from pydantic import BaseModel, ConfigDict
from supabase import Client

from pricewatch.core.identity import AuthSession
from pricewatch.schemas.user import default_name_from_email, provisioning_role

logger = logging.getLogger(__name__)


class Profile(BaseModel):
    """The application-side user record the session layer exposes."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    email: str
    name: str
    role: str
    company_id: str | None = None


class ProfileGatewayError(Exception):
    """Reading or writing a profile row failed."""


class ProfileGateway(Protocol):
    async def fetch_profile(self, user_id: str) -> Profile | None: ...

    async def create_profile(self, profile: Profile) -> Profile: ...


def default_profile_for(session: AuthSession) -> Profile:
    """
    Build the profile created for an identity that has none yet.

    Name and role come from the metadata given at sign-up; the role is
    only honoured when it is one users may pick for themselves.
    """
    metadata = session.metadata or {}
    name = (metadata.get("name") or "").strip() or default_name_from_email(session.email)
    return Profile(
        id=session.user_id,
        email=session.email,
        name=name,
        role=provisioning_role(metadata.get("role")),
    )


class SupabaseProfileGateway:
    """Profiles stored in the `users` table, read through PostgREST."""

    def __init__(self, client: Client, table: str = "users"):
        self.client = client
        self.table = table

    async def fetch_profile(self, user_id: str) -> Profile | None:
        def query():
            return (
                self.client.table(self.table)
                .select("*")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )

        try:
            response = await run_in_threadpool(query)
        except (APIError, httpx.HTTPError) as exc:
            raise ProfileGatewayError(str(exc)) from exc

        rows = response.data or []
        if not rows:
            return None
        return Profile.model_validate(rows[0])

    async def create_profile(self, profile: Profile) -> Profile:
        def insert():
            return (
                self.client.table(self.table)
                .insert(profile.model_dump(mode="json", exclude_none=True))
                .execute()
            )

        try:
            response = await run_in_threadpool(insert)
        except (APIError, httpx.HTTPError) as exc:
            raise ProfileGatewayError(str(exc)) from exc

        logger.info("Created profile for %s with role %s", profile.email, profile.role)
        rows = response.data or []
        return Profile.model_validate(rows[0]) if rows else profile
