import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

TaskStatus = Literal["pending", "completed", "expired"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "expired"})


class TaskCreate(SQLModel):
    """
    Admin payload to delegate a collection task.

    city/state default to the market's location when omitted.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    market_id: uuid.UUID
    auditor_id: uuid.UUID
    deadline: datetime
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, min_length=2, max_length=2)
    notes: str | None = None

    @field_validator("city", "notes")
    @classmethod
    def normalize_text(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None

    @field_validator("state")
    @classmethod
    def normalize_state(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return v.strip().upper()


class TaskComplete(SQLModel):
    """
    Auditor payload to fulfil a task.

    collected_price is optional at the schema level so a missing value
    reaches the service and gets a readable message instead of a 422.
    """

    model_config = ConfigDict(extra="forbid")

    collected_price: float | None = Field(default=None, gt=0)
    notes: str | None = None

    @field_validator("notes")
    @classmethod
    def normalize_notes(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class TaskRead(SQLModel):
    """
    Task as seen by clients.

    `status` is the effective status (expiry applied), `stored_status`
    the persisted value.
    """

    id: uuid.UUID
    product_id: uuid.UUID
    market_id: uuid.UUID
    city: str
    state: str
    auditor_id: uuid.UUID
    deadline: datetime
    status: TaskStatus
    stored_status: TaskStatus
    completed_at: datetime | None
    collected_price: float | None
    notes: str | None
    company_id: uuid.UUID | None
    created_at: datetime


class TaskPartitionRead(SQLModel):
    pending: list[TaskRead]
    completed: list[TaskRead]
    expired: list[TaskRead]
