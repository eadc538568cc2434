"""Pydantic schemas for derived dashboard payloads."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .lead import ActivityEntry, Comp, MarketSnapshot, SubjectProperty, TopAgent


class Tone(str, Enum):
    NEUTRAL = "Neutral"
    WARM = "Warm"
    DIRECT = "Direct"


class ScriptLength(str, Enum):
    SHORT = "Short"
    LONG = "Long"


class CompSelection(BaseModel):
    selected_comps: List[Comp] = Field(default_factory=list)
    tier_label: str


class CmaSummary(BaseModel):
    tier_label: str
    basis: str
    comp_count: int
    comps: List[Comp]
    ask_price: float
    median_price: float
    price_low: float
    price_high: float
    variance_amount: float
    variance_pct: float
    direction: str
    narrative: str


class AgentBenchmark(BaseModel):
    dom_delta: float
    price_reduction_delta: float
    over_ask_rate_pct: float
    sorted_activity: List[ActivityEntry]
    slower_than_zip: bool
    cuts_price_more_than_zip: bool


class FactPack(BaseModel):
    dom_delta: float = 0.0
    price_cut_pct: float = 0.0
    days_since_expired: int = 0
    comp_count: int = 0
    comp_median: float = 0.0
    comp_low: float = 0.0
    comp_high: float = 0.0
    closest_comp_address: str = "N/A"
    closest_comp_price: float = 0.0
    closest_delta: float = 0.0
    has_closest_comp: bool = False
    agent_dom_delta: Optional[float] = None
    agent_price_cut_delta: Optional[float] = None
    agent_over_ask_pct: Optional[float] = None
    market_median_dom: float = 0.0
    market_list_to_sale: float = 0.0
    market_inventory: int = 0

    @property
    def comp_range(self) -> str:
        if not self.comp_count:
            return "N/A"
        return f"${self.comp_low / 1000:.0f}k-${self.comp_high / 1000:.0f}k"

    @property
    def has_agent_facts(self) -> bool:
        return self.agent_dom_delta is not None


class Hook(BaseModel):
    category: str
    headline: str
    fact: str
    question: str
    score: float


class ObjectionPivots(BaseModel):
    price: str
    showings: str
    agent: str


class CallScript(BaseModel):
    tone: Tone
    length: ScriptLength
    address: str
    opener: str
    hooks: List[Hook]
    pivots: Optional[ObjectionPivots] = None

    def as_text(self) -> str:
        lines = [f"Address: {self.address}", "", f"Opener: {self.opener}", "", "Hooks:"]
        for idx, hook in enumerate(self.hooks, start=1):
            lines.append(f"{idx}) {hook.fact}")
            lines.append(f"Q: {hook.question}")
            lines.append("")
        if self.pivots is not None:
            lines.append("Pivots:")
            lines.append(f"- If price: {self.pivots.price}")
            lines.append(f"- If no showings: {self.pivots.showings}")
            lines.append(f"- If agent: {self.pivots.agent}")
        return "\n".join(lines).rstrip()


class InsightResult(BaseModel):
    points: List[str]
    source: str
    status_message: Optional[str] = None


class Dashboard(BaseModel):
    subject: SubjectProperty
    cma: Optional[CmaSummary] = None
    agent_benchmark: Optional[AgentBenchmark] = None
    top_agents: List[TopAgent] = Field(default_factory=list)
    market: MarketSnapshot
    fact_pack: FactPack
    call_script: CallScript
    insights: Optional[InsightResult] = None
    errors: Dict[str, str] = Field(default_factory=dict)
    generated_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
