"""Seller call-script generation: fact pack, hook library and objection pivots."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional

from ..models.analysis import (
    AgentBenchmark,
    CallScript,
    CmaSummary,
    FactPack,
    Hook,
    ObjectionPivots,
    ScriptLength,
    Tone,
)
from ..models.lead import MarketSnapshot, SubjectProperty

MAX_HOOKS = 3
PRICE_CUT_THRESHOLD_PCT = 5
DOM_GAP_THRESHOLD_DAYS = 14
CLOSEST_COMP_DELTA_USD = 50_000
AGENT_DOM_GAP_THRESHOLD_DAYS = 5
RECENT_EXPIRY_DAYS = 30
MIN_COMPS_FOR_MEDIAN_HOOK = 3


def build_fact_pack(
    subject: SubjectProperty,
    cma: Optional[CmaSummary],
    benchmark: Optional[AgentBenchmark],
    market: MarketSnapshot,
    as_of: Optional[date] = None,
) -> FactPack:
    as_of = as_of or date.today()
    comps = cma.comps if cma is not None else []

    days_since_expired = 0
    if subject.expiration_date is not None:
        days_since_expired = max(0, (as_of - subject.expiration_date).days)

    closest = min(comps, key=lambda c: abs(c.sqft - subject.sqft)) if comps else None

    return FactPack(
        dom_delta=subject.days_on_market - market.median_dom,
        price_cut_pct=subject.price_reduction_pct,
        days_since_expired=days_since_expired,
        comp_count=cma.comp_count if cma is not None else 0,
        comp_median=cma.median_price if cma is not None else 0.0,
        comp_low=cma.price_low if cma is not None else 0.0,
        comp_high=cma.price_high if cma is not None else 0.0,
        closest_comp_address=closest.address if closest is not None else "N/A",
        closest_comp_price=closest.sold_price if closest is not None else 0.0,
        closest_delta=closest.sold_price - subject.ask_price if closest is not None else 0.0,
        has_closest_comp=closest is not None,
        agent_dom_delta=benchmark.dom_delta if benchmark is not None else None,
        agent_price_cut_delta=benchmark.price_reduction_delta if benchmark is not None else None,
        agent_over_ask_pct=benchmark.over_ask_rate_pct if benchmark is not None else None,
        market_median_dom=market.median_dom,
        market_list_to_sale=market.list_to_sale_ratio,
        market_inventory=market.inventory_active,
    )


# ---------------------------------------------------------------------------
# Hook library
# ---------------------------------------------------------------------------

FactText = Callable[[FactPack, SubjectProperty], str]


@dataclass(frozen=True)
class HookTemplate:
    category: str
    headline: str
    short: FactText
    long: FactText
    question: FactText
    score: Callable[[FactPack], float]
    needs_agent_facts: bool = False

    def render(self, fp: FactPack, subject: SubjectProperty, length: ScriptLength) -> Hook:
        text = self.short if length == ScriptLength.SHORT else self.long
        return Hook(
            category=self.category,
            headline=self.headline,
            fact=text(fp, subject),
            question=self.question(fp, subject),
            score=self.score(fp),
        )


def _agent_fact_short(fp: FactPack, subject: SubjectProperty) -> str:
    gap = abs(fp.agent_dom_delta or 0)
    if (fp.agent_dom_delta or 0) > 0:
        return f"The average sale in this zip code happens {gap:.0f} days faster than your agent's current average."
    if (fp.agent_dom_delta or 0) < 0:
        return f"Your previous agent's average timeline ran {gap:.0f} days faster than the zip code norm."
    return "Your previous agent's average timeline matched the zip code norm."


def _agent_fact_long(fp: FactPack, subject: SubjectProperty) -> str:
    gap = abs(fp.agent_dom_delta or 0)
    return (
        f"Current records show a {gap:.0f} day difference between the neighborhood median speed "
        "and the average timeline for your previous brokerage."
    )


HOOK_LIBRARY: List[HookTemplate] = [
    HookTemplate(
        category="Pricing",
        headline="Local Pricing Trends",
        short=lambda fp, s: f"Area homes are currently closing at {fp.market_list_to_sale:.0f}% of list price.",
        long=lambda fp, s: (
            f"Market data shows local properties are closing at {fp.market_list_to_sale:.0f}% of list price, "
            "which is quite strong."
        ),
        question=lambda fp, s: "During your listing, what was the general feedback on the initial pricing strategy?",
        score=lambda fp: 90 if fp.price_cut_pct > PRICE_CUT_THRESHOLD_PCT else 40,
    ),
    HookTemplate(
        category="Momentum",
        headline="Market Momentum",
        short=lambda fp, s: f"The neighborhood median time to sell is {fp.market_median_dom:.0f} days.",
        long=lambda fp, s: (
            f"Neighborhood statistics show a median of {fp.market_median_dom:.0f} days to find a buyer right now."
        ),
        question=lambda fp, s: (
            f"Did the traffic you received during your {s.days_on_market} days on market meet your expectations?"
        ),
        score=lambda fp: 85 if fp.dom_delta > DOM_GAP_THRESHOLD_DAYS else 50,
    ),
    HookTemplate(
        category="Momentum",
        headline="Off-Market Window",
        short=lambda fp, s: f"Your listing came off the market {fp.days_since_expired} days ago.",
        long=lambda fp, s: (
            f"It has been {fp.days_since_expired} days since the listing agreement ended, which is usually when "
            "buyer interest resets and the next strategy takes shape."
        ),
        question=lambda fp, s: "Have you decided whether to relist now or wait for the next buying season?",
        score=lambda fp: 75 if 0 < fp.days_since_expired <= RECENT_EXPIRY_DAYS else 35,
    ),
    HookTemplate(
        category="CMA",
        headline="Recent Comparable Sale",
        short=lambda fp, s: (
            f"A similar property at {fp.closest_comp_address} recently closed for ${fp.closest_comp_price:,.0f}."
        ),
        long=lambda fp, s: (
            f"I noticed a similar property at {fp.closest_comp_address} recently closed for "
            f"${fp.closest_comp_price:,.0f}, which is a key data point for your street."
        ),
        question=lambda fp, s: "How did your previous valuation compare to these most recent local results?",
        score=lambda fp: 95 if fp.has_closest_comp and abs(fp.closest_delta) < CLOSEST_COMP_DELTA_USD else 60,
    ),
    HookTemplate(
        category="CMA",
        headline="Comparable Median",
        short=lambda fp, s: (
            f"Comparable homes in your ZIP sold for a median of ${fp.comp_median:,.0f} ({fp.comp_range})."
        ),
        long=lambda fp, s: (
            f"{fp.comp_count} comparable sales in your ZIP over the last year closed in the {fp.comp_range} "
            f"range, with a median of ${fp.comp_median:,.0f}."
        ),
        question=lambda fp, s: "How close was your final list price to where these comparable homes actually closed?",
        score=lambda fp: 65 if fp.comp_count >= MIN_COMPS_FOR_MEDIAN_HOOK else 20,
    ),
    HookTemplate(
        category="Market",
        headline="Active Inventory",
        short=lambda fp, s: f"There are {fp.market_inventory} active listings competing for buyers in your area.",
        long=lambda fp, s: (
            f"According to the latest reports, there are {fp.market_inventory} active listings currently "
            "competing for the attention of local buyers."
        ),
        question=lambda fp, s: (
            "Did your previous strategy focus on how to stand out specifically against these active competitors?"
        ),
        score=lambda fp: 70,
    ),
    HookTemplate(
        category="Agent",
        headline="Listing Strategy",
        short=_agent_fact_short,
        long=_agent_fact_long,
        question=lambda fp, s: "Were you looking for a more aggressive timeline to get the property moved?",
        score=lambda fp: 80 if (fp.agent_dom_delta or 0) > AGENT_DOM_GAP_THRESHOLD_DAYS else 30,
        needs_agent_facts=True,
    ),
]


def select_hooks(
    fact_pack: FactPack,
    subject: SubjectProperty,
    length: ScriptLength = ScriptLength.SHORT,
    limit: int = MAX_HOOKS,
    library: Optional[List[HookTemplate]] = None,
) -> List[Hook]:
    """Best hook per category, highest score first, until ``limit`` categories.

    Equal scores keep the library's declared order.
    """

    candidates = [
        template.render(fact_pack, subject, length)
        for template in (library if library is not None else HOOK_LIBRARY)
        if fact_pack.has_agent_facts or not template.needs_agent_facts
    ]
    ranked = sorted(candidates, key=lambda h: h.score, reverse=True)

    selected: List[Hook] = []
    used = set()
    for hook in ranked:
        if len(selected) >= limit:
            break
        if hook.category in used:
            continue
        selected.append(hook)
        used.add(hook.category)
    return selected


# ---------------------------------------------------------------------------
# Script assembly
# ---------------------------------------------------------------------------


def build_opener(subject: SubjectProperty, tone: Tone) -> str:
    street = subject.address.split(",")[0].strip() or subject.street
    if tone == Tone.DIRECT:
        return (
            f"I'm reaching out regarding {street}. Now that the listing is off-market, are you still interested "
            "in finding a buyer for the right price?"
        )
    if tone == Tone.WARM:
        return (
            f"I was just looking at your home on {street} and noticed the listing agreement ended. It looks like "
            "a great property. Are you still hoping to get it sold?"
        )
    return (
        f"I'm calling about the property on {street}. I saw the listing recently reached its end date and "
        "wanted to see if you still have plans to sell."
    )


def build_objection_pivots(subject: SubjectProperty, fact_pack: FactPack) -> ObjectionPivots:
    if fact_pack.has_agent_facts:
        agent = (
            "It's common to choose based on relationship, but the data shows a "
            f"{fact_pack.agent_dom_delta:.0f} day variance from the market speed. "
            "My goal is to show you how to bridge that gap."
        )
    else:
        agent = (
            "It's common to choose based on relationship. What matters next is a plan built around how quickly "
            "homes in this ZIP are actually selling."
        )
    return ObjectionPivots(
        price=(
            f"I recognize the final ask was ${subject.ask_price:,.0f}, but with area homes selling at "
            f"{fact_pack.market_list_to_sale:.0f}% of list, it's worth reviewing if the digital positioning "
            "was reaching the right audience."
        ),
        showings=(
            "If you had activity but no offers, it often points to a specific friction point. With "
            f"{fact_pack.market_inventory} other options nearby, buyers are being very selective about "
            "condition and presentation."
        ),
        agent=agent,
    )


def build_call_script(
    subject: SubjectProperty,
    fact_pack: FactPack,
    tone: Tone = Tone.NEUTRAL,
    length: ScriptLength = ScriptLength.SHORT,
) -> CallScript:
    return CallScript(
        tone=tone,
        length=length,
        address=subject.address,
        opener=build_opener(subject, tone),
        hooks=select_hooks(fact_pack, subject, length),
        pivots=build_objection_pivots(subject, fact_pack) if length == ScriptLength.LONG else None,
    )
