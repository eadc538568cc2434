"""Comparable sales selection and CMA summary."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Sequence

import pandas as pd

from ..models.analysis import CmaSummary, CompSelection
from ..models.lead import Comp, SubjectProperty
from ..utils.coerce import normalize_zip
from ..utils.stats import median, percent_delta, price_range

TIER_TIGHT = "tight"
TIER_WIDE = "wide"
TIER_ASYMMETRIC = "asymmetric-wide"
TIER_ZIP_ONLY = "zip-only-fallback"
TIER_NO_PRICE_FILTER = "full-market/no-price-filter"


@dataclass(frozen=True)
class ComparableTier:
    """A price band around the ask; ``None`` bounds disable price filtering."""

    label: str
    lower_pct: Optional[float]
    upper_pct: Optional[float]

    @property
    def filters_price(self) -> bool:
        return self.lower_pct is not None and self.upper_pct is not None


COMPARABLE_TIERS: Sequence[ComparableTier] = (
    ComparableTier(TIER_TIGHT, 0.05, 0.05),
    ComparableTier(TIER_WIDE, 0.10, 0.10),
    ComparableTier(TIER_ASYMMETRIC, 0.10, 0.15),
    ComparableTier(TIER_ZIP_ONLY, None, None),
)

PRICE_MATCHED_TIERS = frozenset(t.label for t in COMPARABLE_TIERS if t.filters_price)


def exempt_states_from_env(raw: Optional[str] = None) -> FrozenSet[str]:
    raw = os.getenv("PRICE_FILTER_EXEMPT_STATES", "TX") if raw is None else raw
    return frozenset(s.strip().upper() for s in raw.split(",") if s.strip())


DEFAULT_EXEMPT_STATES = exempt_states_from_env()


def select_comparables(
    subject: SubjectProperty,
    pool: Iterable[Comp],
    exempt_states: Optional[Iterable[str]] = None,
) -> CompSelection:
    comps: List[Comp] = list(pool)
    exempt = DEFAULT_EXEMPT_STATES if exempt_states is None else frozenset(s.upper() for s in exempt_states)

    if not comps:
        label = TIER_NO_PRICE_FILTER if subject.state in exempt else TIER_ZIP_ONLY
        return CompSelection(selected_comps=[], tier_label=label)

    df = pd.DataFrame(
        {
            "zip": [normalize_zip(c.zip_code) for c in comps],
            "sold_price": pd.to_numeric([c.sold_price for c in comps], errors="coerce"),
        }
    )
    subject_zip = normalize_zip(subject.zip_code)
    if subject_zip:
        df = df[df["zip"] == subject_zip]
    # A missing close price maps to 0; such rows are not sales to compare against.
    df = df[df["sold_price"] > 0]

    if subject.state in exempt:
        return CompSelection(selected_comps=[comps[i] for i in df.index], tier_label=TIER_NO_PRICE_FILTER)

    ask = subject.ask_price
    for tier in COMPARABLE_TIERS:
        if not tier.filters_price:
            matched = df
        elif ask > 0:
            lower = ask * (1 - tier.lower_pct)
            upper = ask * (1 + tier.upper_pct)
            matched = df[df["sold_price"].between(lower, upper, inclusive="both")]
        else:
            continue
        if not matched.empty:
            return CompSelection(selected_comps=[comps[i] for i in matched.index], tier_label=tier.label)

    return CompSelection(selected_comps=[], tier_label=TIER_ZIP_ONLY)


def sort_comps_by_sold_date(comps: Iterable[Comp]) -> List[Comp]:
    """Most recent first; equal dates keep their order, unknown dates go last."""
    comps = list(comps)
    dated = [c for c in comps if c.sold_date is not None]
    undated = [c for c in comps if c.sold_date is None]
    return sorted(dated, key=lambda c: c.sold_date, reverse=True) + undated


def summarize_cma(subject: SubjectProperty, selection: CompSelection) -> CmaSummary:
    prices = [c.sold_price for c in selection.selected_comps if c.sold_price > 0]
    comp_median = median(prices)
    ask = subject.ask_price
    variance_amount = ask - comp_median if comp_median else 0.0
    variance_pct = percent_delta(ask, comp_median)
    low, high = price_range(prices)
    basis = "price-matched" if selection.tier_label in PRICE_MATCHED_TIERS else "total local"
    direction = "above" if variance_amount > 0 else "below"

    return CmaSummary(
        tier_label=selection.tier_label,
        basis=basis,
        comp_count=len(prices),
        comps=sort_comps_by_sold_date(selection.selected_comps),
        ask_price=ask,
        median_price=comp_median,
        price_low=low,
        price_high=high,
        variance_amount=variance_amount,
        variance_pct=round(variance_pct, 1),
        direction=direction,
        narrative=_cma_narrative(subject, len(prices), comp_median, variance_amount, variance_pct, basis),
    )


def _cma_narrative(
    subject: SubjectProperty,
    comp_count: int,
    comp_median: float,
    variance_amount: float,
    variance_pct: float,
    basis: str,
) -> str:
    street = subject.street or subject.address.split(",")[0]
    if not comp_count:
        return (
            f"No comparable sales were found in ZIP {subject.zip_code or 'N/A'} over the last 12 months, "
            f"so the ${subject.ask_price:,.0f} ask for {street} cannot be benchmarked yet."
        )

    reference = "comparable" if basis == "price-matched" else "market"
    opening = (
        f"Based on an analysis of {comp_count} sales within the immediate ZIP code, the subject property at "
        f"{street} shows a {abs(variance_pct):.1f}% price variance relative to the local {reference} median."
    )
    if variance_amount > 0:
        body = (
            f" The property's final list price of ${subject.ask_price:,.0f} was positioned "
            f"${abs(variance_amount):,.0f} above the neighborhood sold median of ${comp_median:,.0f}. "
            "This premium placement likely created a value friction point for local buyers who were "
            "benchmarking against similar results nearby."
        )
    else:
        body = (
            f" Despite being priced ${abs(variance_amount):,.0f} below the neighborhood sold median for this "
            "tier, the property did not find a buyer. This suggests the strategic gap may not have been price "
            "alone, but digital positioning, condition-to-value ratio, or the timing of the listing cycle."
        )
    closing = (
        " By narrowing this gap and aligning the next listing strategy with current local results, there is a "
        "clear opportunity to re-capture market interest."
    )
    return opening + body + closing


class CompsService:
    def __init__(self, exempt_states: Optional[Iterable[str]] = None) -> None:
        self.exempt_states = DEFAULT_EXEMPT_STATES if exempt_states is None else frozenset(exempt_states)

    def analyze(self, subject: SubjectProperty, pool: Iterable[Comp]) -> CmaSummary:
        selection = select_comparables(subject, pool, exempt_states=self.exempt_states)
        return summarize_cma(subject, selection)
