import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

from pricewatch.schemas.market import MarketRead
from pricewatch.schemas.product import ProductRead

PriceOrigin = Literal["auditor", "contributor"]


def round_price(value: float) -> float:
    """Currency units with 2 decimals."""
    return round(float(value), 2)


class PriceSubmit(SQLModel):
    """
    Payload for a new price observation.

    Product, one of:
      - product_id                       (picked from the catalog)
      - barcode                          (scanned, must exist)
      - barcode + product_name [+ brand] (manual entry, created if unknown)

    Market, one of:
      - market_id    (known market)
      - market_name  (free text typed by the collector)

    Backend derives:
      - user_id / company_id from token
      - origin from the collector's role
      - collected_at = now
    """

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID | None = None
    barcode: str | None = Field(default=None, max_length=32)
    product_name: str | None = Field(default=None, max_length=150)
    brand: str | None = Field(default=None, max_length=100)

    market_id: uuid.UUID | None = None
    market_name: str | None = Field(default=None, max_length=150)

    price: float = Field(gt=0)
    notes: str | None = None

    @field_validator("barcode", "product_name", "brand", "market_name", "notes")
    @classmethod
    def normalize_text(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None

    @field_validator("price")
    @classmethod
    def two_decimals(cls, v: float) -> float:
        return round_price(v)

    @model_validator(mode="after")
    def check_references(self):
        if (self.product_id is None) == (self.barcode is None):
            raise ValueError("provide either product_id or barcode")
        if (self.market_id is None) == (self.market_name is None):
            raise ValueError("provide either market_id or market_name")
        return self


class PriceRecordRead(SQLModel):
    id: uuid.UUID
    product_id: uuid.UUID
    market_id: uuid.UUID | None
    market_name: str | None
    price: float
    collected_at: datetime
    user_id: uuid.UUID
    company_id: uuid.UUID | None
    origin: PriceOrigin
    notes: str | None


class LatestPriceRead(PriceRecordRead):
    """
    Current public price for a product at a market, with the
    product and market expanded for display.
    """

    product: ProductRead
    market: MarketRead | None
