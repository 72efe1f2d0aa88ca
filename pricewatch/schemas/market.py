import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

MarketType = Literal["hypermarket", "supermarket", "wholesale"]


class MarketCreate(SQLModel):
    """
    Admin payload for a new market.

    State is normalized to its upper-case abbreviation (e.g. "SP").
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=150)
    city: str = Field(max_length=100)
    state: str = Field(min_length=2, max_length=2)
    neighborhood: str = Field(max_length=100)
    type: MarketType = "supermarket"

    @field_validator("name", "city", "neighborhood")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("state")
    @classmethod
    def normalize_state(cls, v: str) -> str:
        return v.strip().upper()


class MarketUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=150)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, min_length=2, max_length=2)
    neighborhood: str | None = Field(default=None, max_length=100)
    type: MarketType | None = None

    @field_validator("state")
    @classmethod
    def normalize_state(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return v.strip().upper()


class MarketRead(SQLModel):
    id: uuid.UUID
    name: str
    city: str
    state: str
    neighborhood: str
    type: MarketType
    company_id: uuid.UUID | None
    created_at: datetime


class LocationFilters(SQLModel):
    """
    Choice sets for the public price lookup.

    neighborhoods is empty until a city is selected.
    """

    cities: list[str]
    neighborhoods: list[str]
