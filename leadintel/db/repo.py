"""Read-only access to the Supabase listing store."""

from __future__ import annotations

import os
from datetime import date
from typing import Any, Dict, List, Optional

import httpx
import pandas as pd

from ..models.lead import AgentPerformanceSnapshot, Comp, Suggestion, TopAgent
from ..utils.coerce import normalize_zip, to_str
from ..utils.logging import get_logger
from ..utils.retry import RetryPolicy, linear_backoff
from .mappers import map_agent_performance, map_sold_row, map_suggestion, map_top_agent_row, unwrap_rpc_payload
from .supabase_client import create_supabase_client

LOGGER = get_logger("db.repo")

# Tables and RPCs from env (override per deployment)
TBL_EXPIRED = os.getenv("SB_TABLE_EXPIRED", "calling_personalization_expired_data")
TBL_SOLD = os.getenv("SB_TABLE_SOLD", "email_listing_service_mlsoldsolddata")
RPC_TOP_AGENTS = os.getenv("SB_RPC_TOP_AGENTS", "get_top_40_agents_by_zip_v5")
RPC_AGENT_PERFORMANCE = os.getenv("SB_RPC_AGENT_PERFORMANCE", "get_previous_agent_performance")

SEARCH_LIMIT = 10
MIN_QUERY_LENGTH = 3
COMP_POOL_LIMIT = int(os.getenv("COMP_POOL_LIMIT", "100"))
COMP_WINDOW_MONTHS = int(os.getenv("COMP_WINDOW_MONTHS", "12"))
TOP_AGENT_LIMIT = 3
TOP_AGENT_RETRIES = int(os.getenv("TOP_AGENT_RETRIES", "2"))
TOP_AGENT_BACKOFF_S = float(os.getenv("TOP_AGENT_BACKOFF_S", "1.0"))

EXPIRED_FIELDS = (
    "street_address, city, state, zip_code, orig_list_price, list_price, dom, expire_date, "
    "property_type, bed, bath, year_built, list_agent_email, list_agent_phone, list_agent_name"
)
SOLD_FIELDS = (
    "address, street_address, city, state, zip_code, bed, bath, close_date, current_price, "
    "orig_list_price, list_agent_name, list_agent_phone"
)

POSTGRES_STATEMENT_TIMEOUT = "57014"


class DataSourceError(RuntimeError):
    """The listing store could not answer a query."""


class DataSourceTimeout(DataSourceError):
    """The listing store gave up on a long-running statement."""


def is_timeout_error(exc: BaseException) -> bool:
    if isinstance(exc, DataSourceTimeout):
        return True
    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return True
    if str(getattr(exc, "code", "") or "") == POSTGRES_STATEMENT_TIMEOUT:
        return True
    message = str(getattr(exc, "message", None) or exc).lower()
    return "timeout" in message or "canceling statement" in message


def parse_address_query(query: str) -> List[str]:
    """Split "street, city, state zip" into up to four search prefixes."""

    parts = [p.strip() for p in (query or "").strip().split(",") if p.strip()]
    if len(parts) == 3:
        tokens = parts[2].split()
        if len(tokens) > 1 and tokens[-1].isdigit():
            parts[2] = " ".join(tokens[:-1])
            parts.append(tokens[-1])
    if len(parts) > 3 and parts[3].isdigit():
        parts[3] = parts[3].zfill(5)
    return parts[:4]


class LeadRepository:
    def __init__(self, client: Any, retry_policy: Optional[RetryPolicy] = None) -> None:
        self.client = client
        self.top_agents_retry = retry_policy or RetryPolicy(
            max_attempts=TOP_AGENT_RETRIES + 1,
            backoff=linear_backoff(TOP_AGENT_BACKOFF_S),
            retryable=is_timeout_error,
            name=RPC_TOP_AGENTS,
        )

    # ------------------------------------------------------------------
    # Address search
    def search_addresses(self, query: str, limit: int = SEARCH_LIMIT) -> List[Suggestion]:
        if len((query or "").strip()) < MIN_QUERY_LENGTH:
            return []
        parts = parse_address_query(query)
        if not parts:
            return []

        builder = self._client().table(TBL_EXPIRED).select(EXPIRED_FIELDS)
        for column, value in zip(("street_address", "city", "state", "zip_code"), parts):
            if value:
                builder = builder.ilike(column, f"{value}%")
        rows = self._execute(builder.limit(limit), "search_addresses")
        return [map_suggestion(row) for row in rows]

    # ------------------------------------------------------------------
    # Comparable pool
    def fetch_comp_pool(self, zip_code: str, as_of: Optional[date] = None, limit: int = COMP_POOL_LIMIT) -> List[Comp]:
        normalized = normalize_zip(zip_code)
        if not normalized:
            return []
        cutoff = (pd.Timestamp(as_of or date.today()) - pd.DateOffset(months=COMP_WINDOW_MONTHS)).date()
        builder = (
            self._client()
            .table(TBL_SOLD)
            .select(SOLD_FIELDS)
            .eq("zip_code", normalized)
            .gte("close_date", cutoff.isoformat())
            .limit(limit)
        )
        rows = self._execute(builder, "fetch_comp_pool")
        LOGGER.debug("comp_pool zip=%s cutoff=%s rows=%d", normalized, cutoff, len(rows))
        return [map_sold_row(row, default_zip=normalized) for row in rows]

    # ------------------------------------------------------------------
    # Agents
    def fetch_top_agents(
        self,
        zip_code: str,
        agent_name: Optional[str] = None,
        agent_phone: Optional[str] = None,
        limit: int = TOP_AGENT_LIMIT,
    ) -> List[TopAgent]:
        normalized = normalize_zip(zip_code)
        if not normalized:
            return []
        params = {
            "p_zip": normalized,
            "p_limit": limit,
            "p_offset": 0,
            "p_expired_list_agent_name": agent_name or None,
            "p_expired_list_agent_phone": agent_phone or None,
        }
        rows = self.top_agents_retry.call(
            lambda: self._execute(self._client().rpc(RPC_TOP_AGENTS, params), RPC_TOP_AGENTS)
        )
        return [map_top_agent_row(row, listing_agent_phone=agent_phone or "") for row in rows or []]

    def fetch_agent_performance(self, email: str, phone: str, zip_code: str) -> Optional[AgentPerformanceSnapshot]:
        if not to_str(email) or not to_str(phone) or not to_str(zip_code):
            return None
        params = {
            "p_agent_email": to_str(email).lower(),
            "p_agent_phone": to_str(phone),
            "p_zip": normalize_zip(zip_code),
        }
        data = self._execute(self._client().rpc(RPC_AGENT_PERFORMANCE, params), RPC_AGENT_PERFORMANCE)
        payload = unwrap_rpc_payload(data, RPC_AGENT_PERFORMANCE)
        if not payload or (not payload.get("performance") and not payload.get("nearby_activity")):
            LOGGER.info("agent_performance_not_found zip=%s", params["p_zip"])
            return None
        return map_agent_performance(payload)

    # ------------------------------------------------------------------
    def _client(self) -> Any:
        if self.client is None:
            raise DataSourceError("Supabase client is not configured")
        return self.client

    def _execute(self, builder: Any, operation: str) -> Any:
        try:
            response = builder.execute()
        except Exception as exc:
            if is_timeout_error(exc):
                LOGGER.warning("store_timeout op=%s error=%s", operation, exc)
                raise DataSourceTimeout(f"{operation} timed out") from exc
            LOGGER.error("store_error op=%s error=%s", operation, exc)
            raise DataSourceError(f"{operation} failed: {exc}") from exc
        data = getattr(response, "data", None)
        return data if data is not None else []


_repo_singleton: LeadRepository | None = None


def get_repository() -> LeadRepository:
    global _repo_singleton
    if _repo_singleton is None:
        _repo_singleton = LeadRepository(create_supabase_client())
    return _repo_singleton


def reset_repository() -> None:
    global _repo_singleton
    _repo_singleton = None


__all__ = [
    "DataSourceError",
    "DataSourceTimeout",
    "LeadRepository",
    "get_repository",
    "is_timeout_error",
    "parse_address_query",
    "reset_repository",
]
