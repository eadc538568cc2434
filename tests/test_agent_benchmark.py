from datetime import date

from leadintel.models.lead import ActivityEntry, AgentPerformanceRecord, ZipAggregatePerformance
from leadintel.services.agent_benchmark import benchmark_agent, paginate_activity, sort_activity


def _agent(**kw) -> AgentPerformanceRecord:
    data = {"avg_dom": 24, "price_reduction_pct": 38, "zip_transactions_12mo": 12, "over_ask_count": 6}
    data.update(kw)
    return AgentPerformanceRecord(**data)


def _zip(**kw) -> ZipAggregatePerformance:
    data = {"avg_dom": 18, "price_reduction_pct": 22, "transaction_count_12mo": 140}
    data.update(kw)
    return ZipAggregatePerformance(**data)


def test_slower_agent_has_positive_dom_delta():
    result = benchmark_agent(_agent(), _zip())
    assert result.dom_delta == 6
    assert result.slower_than_zip is True
    assert result.price_reduction_delta == 16
    assert result.cuts_price_more_than_zip is True


def test_faster_agent_has_negative_dom_delta():
    result = benchmark_agent(_agent(avg_dom=12, price_reduction_pct=10), _zip())
    assert result.dom_delta == -6
    assert result.slower_than_zip is False
    assert result.cuts_price_more_than_zip is False


def test_over_ask_rate_uses_agent_zip_transactions():
    assert benchmark_agent(_agent(), _zip()).over_ask_rate_pct == 50.0


def test_over_ask_rate_is_zero_without_transactions():
    result = benchmark_agent(_agent(zip_transactions_12mo=0, over_ask_count=2), _zip())
    assert result.over_ask_rate_pct == 0.0


def test_missing_record_is_insufficient_data():
    assert benchmark_agent(None, _zip()) is None
    assert benchmark_agent(_agent(), None) is None


def test_activity_sorted_newest_first_with_stable_ties():
    activity = [
        ActivityEntry(address="42 Meriam St", sold_date=date(2025, 1, 15)),
        ActivityEntry(address="Undated Rd"),
        ActivityEntry(address="88 Hancock St", sold_date=date(2025, 2, 10)),
        ActivityEntry(address="15 Grant St", sold_date=date(2025, 1, 15)),
    ]
    result = benchmark_agent(_agent(activity=activity), _zip())
    assert [a.address for a in result.sorted_activity] == [
        "88 Hancock St",
        "42 Meriam St",
        "15 Grant St",
        "Undated Rd",
    ]


def test_sort_activity_is_deterministic():
    activity = [ActivityEntry(address=f"{n} Elm St", sold_date=date(2025, 3, 1)) for n in range(5)]
    assert sort_activity(activity) == sort_activity(list(activity))
    assert [a.address for a in sort_activity(activity)] == [a.address for a in activity]


def test_paginate_activity():
    activity = [ActivityEntry(address=f"{n} Oak St") for n in range(12)]
    page, has_more = paginate_activity(activity)
    assert len(page) == 10 and has_more is True
    page, has_more = paginate_activity(activity[:4])
    assert len(page) == 4 and has_more is False
