import uuid
from datetime import datetime
from typing import Literal

from pydantic import EmailStr, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

# App-level roles. "public" = no token, so it is never stored.
Role = Literal["admin", "auditor", "contributor", "public"]
StoredRole = Literal["admin", "auditor", "contributor"]

# Roles a person may pick for themselves when signing up.
REGISTRABLE_ROLES: frozenset[str] = frozenset({"auditor", "contributor"})

# Role given to an identity whose profile row does not exist yet.
DEFAULT_ROLE = "contributor"


def provisioning_role(requested: str | None) -> str:
    """
    Role for a freshly provisioned profile.

    The role chosen at sign-up (stored in the identity metadata) is kept
    when it is self-service; anything else falls back to DEFAULT_ROLE.
    Admins are promoted manually.
    """
    if requested in REGISTRABLE_ROLES:
        return requested
    return DEFAULT_ROLE


def default_name_from_email(email: str) -> str:
    """
    Derive a default display name from email if the user has not
    completed their profile yet.
    """
    if "@" in email:
        return email.split("@", 1)[0]
    return email


class UserBase(SQLModel):
    """
    Shared fields for read models.

    Validation rules:
      - email must be a valid EmailStr
      - name cannot be empty or whitespace
    """

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    name: str = Field(max_length=100)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class UserRead(UserBase):
    """Response schema returned to clients."""

    id: uuid.UUID
    role: StoredRole
    company_id: uuid.UUID | None
    created_at: datetime


class UserUpdate(SQLModel):
    """
    Partial profile update for authenticated users.
    Only editable field is `name` here.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=100)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class UserRoleUpdate(SQLModel):
    """
    Admin-only role update schema.
    """

    model_config = ConfigDict(extra="forbid")
    role: StoredRole
