import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("field cannot be empty")
    return v


def _strip_optional(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    return v or None


class CategoryCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return _strip_required(v)


class CategoryRead(SQLModel):
    id: uuid.UUID
    name: str
    company_id: uuid.UUID | None


class ProductCreate(SQLModel):
    """
    Admin payload for a new catalog entry.

    The company is taken from the admin's profile.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=150)
    brand: str | None = Field(default=None, max_length=100)
    barcode: str = Field(max_length=32)
    category_id: uuid.UUID | None = None

    @field_validator("name", "barcode")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("brand")
    @classmethod
    def normalize_brand(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class ProductUpdate(SQLModel):
    """Partial update; only provided fields change."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=150)
    brand: str | None = Field(default=None, max_length=100)
    barcode: str | None = Field(default=None, max_length=32)
    category_id: uuid.UUID | None = None

    @field_validator("name", "barcode")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _strip_required(v)


class ProductRead(SQLModel):
    id: uuid.UUID
    name: str
    brand: str | None
    barcode: str
    category_id: uuid.UUID | None
    company_id: uuid.UUID | None
    created_at: datetime
