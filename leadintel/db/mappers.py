"""Map raw store rows onto the validated lead models.

This is the only place that deals with missing or oddly typed columns; the
engines downstream work with fully populated records.
"""

from typing import Any, Dict, Optional

from ..models.lead import (
    ActivityEntry,
    AgentPerformanceRecord,
    AgentPerformanceSnapshot,
    Comp,
    SubjectProperty,
    Suggestion,
    TopAgent,
    ZipAggregatePerformance,
)
from ..utils.coerce import normalize_zip, phone_digits, to_date, to_float, to_int, to_str


def format_address(street: str, city: str, state: str, zip_code: str) -> str:
    return " ".join(f"{street}, {city}, {state} {zip_code}".split()).strip(" ,")


def map_expired_row(r: Dict[str, Any]) -> SubjectProperty:
    street = to_str(r.get("street_address"))
    city = to_str(r.get("city"))
    address = format_address(street, city, to_str(r.get("state")), to_str(r.get("zip_code")))
    return SubjectProperty(
        address=address,
        street=street or "Unknown",
        city=city,
        state=to_str(r.get("state")),
        zip_code=r.get("zip_code"),
        original_list_price=to_float(r.get("orig_list_price")) or 0.0,
        final_list_price=to_float(r.get("list_price")) or 0.0,
        days_on_market=to_int(r.get("dom")) or 0,
        expiration_date=to_date(r.get("expire_date")),
        property_type=to_str(r.get("property_type")) or "Single Family",
        beds=to_float(r.get("bed")) or 0,
        baths=to_float(r.get("bath")) or 0,
        sqft=to_int(r.get("sqft")) or 0,
        year_built=to_int(r.get("year_built")) or 0,
        list_agent_name=to_str(r.get("list_agent_name")),
        list_agent_email=to_str(r.get("list_agent_email")),
        list_agent_phone=to_str(r.get("list_agent_phone")),
    )


def map_suggestion(r: Dict[str, Any]) -> Suggestion:
    subject = map_expired_row(r)
    return Suggestion(
        display=subject.address,
        street=subject.street,
        city=subject.city,
        state=subject.state,
        zip_code=subject.zip_code,
        subject=subject,
    )


def map_sold_row(r: Dict[str, Any], default_zip: str = "") -> Comp:
    return Comp(
        address=to_str(r.get("address") or r.get("street_address")) or "Unknown Address",
        city=to_str(r.get("city")),
        state=to_str(r.get("state")).upper(),
        zip_code=normalize_zip(r.get("zip_code")) or default_zip,
        beds=to_float(r.get("bed")) or 0,
        baths=to_float(r.get("bath")) or 0,
        sqft=to_int(r.get("sqft")) or 0,
        sold_date=to_date(r.get("close_date")),
        sold_price=to_float(r.get("current_price")) or 0.0,
        original_list_price=to_float(r.get("orig_list_price")) or 0.0,
        list_agent_name=to_str(r.get("list_agent_name")),
        list_agent_phone=to_str(r.get("list_agent_phone")),
    )


def map_top_agent_row(r: Dict[str, Any], listing_agent_phone: str = "") -> TopAgent:
    phone = to_str(r.get("agent_phone"))
    listing_digits = phone_digits(listing_agent_phone)
    return TopAgent(
        name=to_str(r.get("agent_name")) or "Unknown Agent",
        phone=phone,
        email=to_str(r.get("agent_email")),
        zip_code=normalize_zip(r.get("zip_code")),
        sell_transactions_1yr=to_int(r.get("sell_transactions_last_1yr")) or 0,
        sell_transactions_3yr=to_int(r.get("sell_transactions_last_3yr")) or 0,
        zip_sell_transactions_1yr=to_int(r.get("seller_transactions_last_1yr_zipcode")) or 0,
        zip_sell_transactions_3yr=to_int(r.get("seller_transactions_last_3yr_zipcode")) or 0,
        avg_price=to_float(r.get("avg_property_price_seller")) or 0.0,
        median_dom=to_float(r.get("median_dom_last_3yr_seller")) or 0.0,
        top_producer=bool(r.get("top_producer")),
        fast_seller=bool(r.get("fast_seller")),
        is_listing_agent=bool(listing_digits) and phone_digits(phone) == listing_digits,
    )


def unwrap_rpc_payload(data: Any, function_name: str) -> Optional[Dict[str, Any]]:
    """RPC results arrive either as a bare object or as ``[{function_name: {...}}]``."""
    root: Any = None
    if isinstance(data, list) and data:
        first = data[0]
        root = (first.get(function_name) or first) if isinstance(first, dict) else None
    elif isinstance(data, dict):
        root = data.get(function_name) or data
    return root if isinstance(root, dict) else None


def map_agent_performance(payload: Dict[str, Any]) -> AgentPerformanceSnapshot:
    perf = payload.get("performance") or {}
    activity = [
        ActivityEntry(
            address=to_str(item.get("address")) or "Unknown Address",
            sold_date=to_date(item.get("sold_date")),
            sold_price=to_float(item.get("sold_price")) or 0.0,
        )
        for item in payload.get("nearby_activity") or []
        if isinstance(item, dict)
    ]
    agent = AgentPerformanceRecord(
        avg_dom=to_float(perf.get("avg_dom_agent")) or 0.0,
        price_reduction_pct=to_float(perf.get("price_reduction_pct_agent")) or 0.0,
        zip_transactions_12mo=to_int(perf.get("agent_txn_12mo_zip")) or 0,
        total_transactions_12mo=to_int(perf.get("agent_txn_12mo_total")) or 0,
        over_ask_count=to_int(perf.get("agent_over_ask_12mo_zip")) or 0,
        activity=activity,
    )
    zip_stats = ZipAggregatePerformance(
        avg_dom=to_float(perf.get("avg_dom_zip")) or 0.0,
        price_reduction_pct=to_float(perf.get("price_reduction_pct_zip")) or 0.0,
        transaction_count_12mo=to_int(perf.get("zip_txn_12mo")) or 0,
    )
    return AgentPerformanceSnapshot(agent=agent, zip_stats=zip_stats)
