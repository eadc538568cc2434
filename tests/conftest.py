from typing import Any, Dict, List, Optional

import pytest

from leadintel.db.repo import LeadRepository, is_timeout_error
from leadintel.utils.retry import RetryPolicy, linear_backoff


class FakeAPIError(Exception):
    """Shaped like postgrest's APIError: carries ``code`` and ``message``."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class FakeResponse:
    def __init__(self, data: Any) -> None:
        self.data = data


class FakeQuery:
    def __init__(self, client: "FakeSupabase", key: str) -> None:
        self.client = client
        self.key = key
        self.filters: List[tuple] = []

    def select(self, fields: str) -> "FakeQuery":
        self.filters.append(("select", fields))
        return self

    def ilike(self, column: str, pattern: str) -> "FakeQuery":
        self.filters.append(("ilike", column, pattern))
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append(("eq", column, value))
        return self

    def gte(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append(("gte", column, value))
        return self

    def limit(self, n: int) -> "FakeQuery":
        self.filters.append(("limit", n))
        return self

    def execute(self) -> FakeResponse:
        return self.client.next_outcome(self.key)


class FakeSupabase:
    """In-memory stand-in for the Supabase client.

    ``outcomes`` maps a table or RPC name to a list of results consumed in
    order (the last one repeats). A result is either the ``data`` payload or an
    exception instance to raise.
    """

    def __init__(self, outcomes: Optional[Dict[str, List[Any]]] = None) -> None:
        self.outcomes = outcomes or {}
        self.queries: List[FakeQuery] = []
        self.rpc_calls: List[tuple] = []
        self.executions: Dict[str, int] = {}

    def table(self, name: str) -> FakeQuery:
        query = FakeQuery(self, name)
        self.queries.append(query)
        return query

    def rpc(self, name: str, params: Dict[str, Any]) -> FakeQuery:
        self.rpc_calls.append((name, params))
        return FakeQuery(self, name)

    def next_outcome(self, key: str) -> FakeResponse:
        count = self.executions.get(key, 0)
        self.executions[key] = count + 1
        queue = self.outcomes.get(key) or [[]]
        outcome = queue[min(count, len(queue) - 1)]
        if isinstance(outcome, BaseException):
            raise outcome
        return FakeResponse(outcome)


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def make_repository(sleeps):
    def _make(outcomes: Optional[Dict[str, List[Any]]] = None):
        client = FakeSupabase(outcomes)
        policy = RetryPolicy(
            max_attempts=3,
            backoff=linear_backoff(1.0),
            retryable=is_timeout_error,
            sleep=sleeps.append,
        )
        return LeadRepository(client, retry_policy=policy), client

    return _make


@pytest.fixture
def timeout_error() -> FakeAPIError:
    return FakeAPIError("canceling statement due to statement timeout", code="57014")


@pytest.fixture
def server_error() -> FakeAPIError:
    return FakeAPIError("permission denied for table", code="42501")


EXPIRED_ROW = {
    "street_address": "123 Maple St",
    "city": "Lexington",
    "state": "MA",
    "zip_code": "2420",
    "orig_list_price": 1299000,
    "list_price": 1199000,
    "dom": 63,
    "expire_date": "2025-12-10T00:00:00+00:00",
    "property_type": "Single Family",
    "bed": "4",
    "bath": "3",
    "year_built": 1978,
    "list_agent_email": " Jordan.Lee@Example.com ",
    "list_agent_phone": "(617) 555-0101",
    "list_agent_name": "Jordan Lee",
}

SOLD_ROWS = [
    {"address": "12 Cedar St", "city": "Lexington", "state": "MA", "zip_code": "02420", "bed": 4, "bath": 3,
     "close_date": "2025-11-01", "current_price": 1225000, "orig_list_price": 1199000},
    {"address": "7 Spruce Way", "city": "Lexington", "state": "MA", "zip_code": "2420", "bed": 5, "bath": 3,
     "close_date": "2025-09-20", "current_price": 1295000, "orig_list_price": 1325000},
    {"address": "44 Walnut St", "city": "Lexington", "state": "MA", "zip_code": "02420", "bed": 4, "bath": 3,
     "close_date": "2025-10-05", "current_price": 1210000, "orig_list_price": 1210000},
    {"street_address": "101 Main Rd", "city": "Lexington", "state": "MA", "zip_code": "02421", "bed": 3, "bath": 2,
     "close_date": "2025-08-15", "current_price": 1050000, "orig_list_price": 1100000},
]

AGENT_PERFORMANCE_PAYLOAD = [
    {
        "get_previous_agent_performance": {
            "performance": {
                "avg_dom_agent": 24,
                "avg_dom_zip": 18,
                "price_reduction_pct_agent": 38,
                "price_reduction_pct_zip": 22,
                "agent_txn_12mo_zip": 12,
                "agent_txn_12mo_total": 34,
                "agent_over_ask_12mo_zip": 6,
            },
            "nearby_activity": [
                {"address": "42 Meriam St", "sold_date": "2025-01-15", "sold_price": 1350000},
                {"address": "88 Hancock St", "sold_date": "2025-02-10", "sold_price": 1125000},
                {"address": "15 Grant St", "sold_date": "2025-01-15", "sold_price": 1480000},
            ],
        }
    }
]

TOP_AGENT_ROWS = [
    {"agent_name": "Ava Patel", "agent_phone": "617-555-0199", "zip_code": "02420",
     "sell_transactions_last_1yr": 28, "seller_transactions_last_1yr_zipcode": 20, "top_producer": True},
    {"agent_name": "Jordan Lee", "agent_phone": "+1 617 555 0101", "zip_code": "02420",
     "sell_transactions_last_1yr": 34, "seller_transactions_last_1yr_zipcode": 12},
]


@pytest.fixture
def store_outcomes() -> Dict[str, List[Any]]:
    return {
        "calling_personalization_expired_data": [[EXPIRED_ROW]],
        "email_listing_service_mlsoldsolddata": [SOLD_ROWS],
        "get_top_40_agents_by_zip_v5": [TOP_AGENT_ROWS],
        "get_previous_agent_performance": [AGENT_PERFORMANCE_PAYLOAD],
    }
