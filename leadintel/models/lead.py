"""Pydantic models for records read from the listing store."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..utils.coerce import normalize_state, normalize_zip


class SubjectProperty(BaseModel):
    """The expired listing a dashboard session is built around."""

    address: str
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    original_list_price: float = 0.0
    final_list_price: float = 0.0
    days_on_market: int = 0
    expiration_date: Optional[date] = None
    property_type: str = "Single Family"
    beds: float = 0
    baths: float = 0
    sqft: int = 0
    year_built: int = 0
    list_agent_name: str = ""
    list_agent_email: str = ""
    list_agent_phone: str = ""

    @field_validator("zip_code", mode="before")
    @classmethod
    def _normalize_zip(cls, v):
        return normalize_zip(v)

    @field_validator("state", mode="before")
    @classmethod
    def _blank_state(cls, v):
        return "" if v is None else v

    @model_validator(mode="after")
    def _resolve_state(self) -> "SubjectProperty":
        # State column first, then the ", ST 12345" suffix of the address.
        self.state = normalize_state(self.state, self.address)
        return self

    @property
    def ask_price(self) -> float:
        return self.final_list_price or self.original_list_price

    @property
    def price_reduction(self) -> float:
        if self.original_list_price > self.final_list_price > 0:
            return self.original_list_price - self.final_list_price
        return 0.0

    @property
    def price_reduction_pct(self) -> float:
        if self.original_list_price <= 0:
            return 0.0
        return round(self.price_reduction / self.original_list_price * 100, 1)

    @property
    def price_reductions_count(self) -> int:
        return 1 if self.price_reduction > 0 else 0


class Comp(BaseModel):
    address: str
    city: str = ""
    state: str = ""
    zip_code: str = ""
    beds: float = 0
    baths: float = 0
    sqft: int = 0
    sold_date: Optional[date] = None
    sold_price: float = 0.0
    original_list_price: float = 0.0
    list_agent_name: str = ""
    list_agent_phone: str = ""

    @field_validator("zip_code", mode="before")
    @classmethod
    def _normalize_zip(cls, v):
        return normalize_zip(v)

    @property
    def display_address(self) -> str:
        state_zip = f"{self.state} {self.zip_code}".strip()
        return ", ".join(part for part in (self.address, self.city, state_zip) if part)


class ActivityEntry(BaseModel):
    address: str
    sold_date: Optional[date] = None
    sold_price: float = 0.0


class AgentPerformanceRecord(BaseModel):
    avg_dom: float = 0.0
    price_reduction_pct: float = 0.0
    zip_transactions_12mo: int = 0
    total_transactions_12mo: int = 0
    over_ask_count: int = 0
    activity: List[ActivityEntry] = Field(default_factory=list)


class ZipAggregatePerformance(BaseModel):
    avg_dom: float = 0.0
    price_reduction_pct: float = 0.0
    transaction_count_12mo: int = 0


class AgentPerformanceSnapshot(BaseModel):
    """Agent-vs-zip record as returned by the performance lookup."""

    agent: AgentPerformanceRecord
    zip_stats: ZipAggregatePerformance


class TopAgent(BaseModel):
    name: str
    phone: str = ""
    email: str = ""
    zip_code: str = ""
    sell_transactions_1yr: int = 0
    sell_transactions_3yr: int = 0
    zip_sell_transactions_1yr: int = 0
    zip_sell_transactions_3yr: int = 0
    avg_price: float = 0.0
    median_dom: float = 0.0
    top_producer: bool = False
    fast_seller: bool = False
    is_listing_agent: bool = False


class MarketSnapshot(BaseModel):
    median_dom: float = 0.0
    inventory_active: int = 0
    list_to_sale_ratio: float = 0.0
    median_sold_price: float = 0.0
    sold_last_12mo: int = 0

    @property
    def inventory_label(self) -> str:
        if self.inventory_active <= 40:
            return "tight"
        if self.inventory_active <= 80:
            return "moderate"
        return "elevated"


class Suggestion(BaseModel):
    display: str
    street: str
    city: str = ""
    state: str = ""
    zip_code: str = ""
    subject: SubjectProperty
