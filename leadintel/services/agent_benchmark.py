"""Benchmark the previous listing agent against zip-wide performance."""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from ..models.analysis import AgentBenchmark
from ..models.lead import ActivityEntry, AgentPerformanceRecord, ZipAggregatePerformance

ACTIVITY_PAGE_SIZE = 10


def sort_activity(entries: Iterable[ActivityEntry]) -> List[ActivityEntry]:
    """Sold date descending.

    ``sorted`` is stable with ``reverse=True`` as well, so records sharing a
    sold date keep their input order and pagination stays deterministic.
    Entries without a sold date go last, in input order.
    """

    entries = list(entries)
    dated = [e for e in entries if e.sold_date is not None]
    undated = [e for e in entries if e.sold_date is None]
    return sorted(dated, key=lambda e: e.sold_date, reverse=True) + undated


def paginate_activity(sorted_activity: List[ActivityEntry], limit: int = ACTIVITY_PAGE_SIZE) -> Tuple[List[ActivityEntry], bool]:
    return sorted_activity[:limit], len(sorted_activity) > limit


def benchmark_agent(
    agent: Optional[AgentPerformanceRecord],
    zip_stats: Optional[ZipAggregatePerformance],
) -> Optional[AgentBenchmark]:
    """Compare an agent against the zip norm; ``None`` means insufficient data."""

    if agent is None or zip_stats is None:
        return None

    dom_delta = agent.avg_dom - zip_stats.avg_dom
    price_reduction_delta = agent.price_reduction_pct - zip_stats.price_reduction_pct
    if agent.zip_transactions_12mo > 0:
        over_ask_rate_pct = agent.over_ask_count / agent.zip_transactions_12mo * 100
    else:
        over_ask_rate_pct = 0.0

    return AgentBenchmark(
        dom_delta=dom_delta,
        price_reduction_delta=price_reduction_delta,
        over_ask_rate_pct=over_ask_rate_pct,
        sorted_activity=sort_activity(agent.activity),
        slower_than_zip=dom_delta > 0,
        cuts_price_more_than_zip=price_reduction_delta > 0,
    )


__all__ = ["ACTIVITY_PAGE_SIZE", "benchmark_agent", "paginate_activity", "sort_activity"]
