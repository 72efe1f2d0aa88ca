import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Company(SQLModel, table=True):
    """
    Customer company that owns users, catalog entries and tasks.

    Not mutated by the price/task flows; referenced only.
    """

    __tablename__ = "companies"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(max_length=150)

    tax_id: str | None = Field(
        default=None,
        max_length=32,
        description="National tax id (CNPJ)",
    )

    email: str | None = Field(
        default=None,
        description="Contact email",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )


class User(SQLModel, table=True):
    """
    Persistent user profile.

    Identity:
      - id: MUST match Supabase auth.users.id (UUID from JWT "sub")

    Role:
      - "admin" | "auditor" | "contributor"
      - "public" is represented by the absence of a row / missing token.

    This table is *not* responsible for password hashes. Supabase Auth
    stores the password in its own schema. We only mirror identity,
    name, company and application role.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches Supabase auth.users.id",
    )

    email: str = Field(
        unique=True,
        index=True,
        description="Email from Supabase auth.users",
    )

    name: str = Field(
        max_length=100,
        description="Display name; first part of email by default",
    )

    # Application role (not Supabase RLS role)
    role: str = Field(
        default="contributor",
        index=True,
        description="Application role: admin | auditor | contributor",
    )

    company_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="companies.id",
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
