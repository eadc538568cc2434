"""Assemble the lead dashboard from independently fetched store data."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Dict, Iterable, List, Optional

from ..db.repo import DataSourceError, DataSourceTimeout, LeadRepository
from ..models.analysis import Dashboard, ScriptLength, Tone
from ..models.lead import AgentPerformanceSnapshot, Comp, MarketSnapshot, SubjectProperty, Suggestion, TopAgent
from ..utils.coerce import normalize_zip
from ..utils.logging import get_logger
from ..utils.stats import median
from .agent_benchmark import benchmark_agent
from .call_script import build_call_script, build_fact_pack
from .comps_service import CompsService
from .insights import InsightsLLM

LOGGER = get_logger("services.dashboard")

UNAVAILABLE_MESSAGE = "Analysis temporarily unavailable."
TIMEOUT_MESSAGE = "The agent ranking is taking longer than usual. Please retry."
INSUFFICIENT_AGENT_DATA = "Insufficient data to benchmark the previous listing agent."

FETCH_WORKERS = 3


def market_snapshot(
    subject: SubjectProperty,
    pool: Iterable[Comp],
    performance: Optional[AgentPerformanceSnapshot] = None,
) -> MarketSnapshot:
    subject_zip = normalize_zip(subject.zip_code)
    local = [c for c in pool if not subject_zip or normalize_zip(c.zip_code) == subject_zip]
    ratios = [
        c.sold_price / c.original_list_price * 100
        for c in local
        if c.sold_price > 0 and c.original_list_price > 0
    ]
    return MarketSnapshot(
        median_dom=performance.zip_stats.avg_dom if performance is not None else 0.0,
        inventory_active=0,
        list_to_sale_ratio=round(median(ratios), 1) if ratios else 0.0,
        median_sold_price=median([c.sold_price for c in local if c.sold_price > 0]),
        sold_last_12mo=len(local),
    )


class DashboardService:
    def __init__(
        self,
        repository: LeadRepository,
        insights: Optional[InsightsLLM] = None,
        comps_service: Optional[CompsService] = None,
    ) -> None:
        self.repository = repository
        self.insights = insights
        self.comps_service = comps_service or CompsService()

    def search(self, query: str) -> List[Suggestion]:
        return self.repository.search_addresses(query)

    def build_for_address(
        self,
        address: str,
        tone: Tone = Tone.NEUTRAL,
        length: ScriptLength = ScriptLength.SHORT,
        as_of: Optional[date] = None,
    ) -> Dashboard:
        suggestions = self.repository.search_addresses(address)
        if not suggestions:
            raise LookupError(f"No expired listing matches '{address}'")
        return self.build(suggestions[0].subject, tone=tone, length=length, as_of=as_of)

    def build(
        self,
        subject: SubjectProperty,
        tone: Tone = Tone.NEUTRAL,
        length: ScriptLength = ScriptLength.SHORT,
        as_of: Optional[date] = None,
    ) -> Dashboard:
        as_of = as_of or date.today()
        errors: Dict[str, str] = {}

        # Panels are independent; a slow top-agents retry must not hold up the other two.
        with ThreadPoolExecutor(max_workers=FETCH_WORKERS) as ex:
            pool_future = ex.submit(self.repository.fetch_comp_pool, subject.zip_code, as_of=as_of)
            agents_future = ex.submit(
                self.repository.fetch_top_agents,
                subject.zip_code,
                agent_name=subject.list_agent_name,
                agent_phone=subject.list_agent_phone,
            )
            performance_future = ex.submit(
                self.repository.fetch_agent_performance,
                subject.list_agent_email,
                subject.list_agent_phone,
                subject.zip_code,
            )

        pool: List[Comp] = []
        try:
            pool = pool_future.result()
        except DataSourceError as exc:
            LOGGER.warning("cma_unavailable zip=%s error=%s", subject.zip_code, exc)
            errors["cma"] = UNAVAILABLE_MESSAGE

        top_agents: List[TopAgent] = []
        try:
            top_agents = agents_future.result()
        except DataSourceTimeout as exc:
            LOGGER.warning("top_agents_timeout zip=%s error=%s", subject.zip_code, exc)
            errors["top_agents"] = TIMEOUT_MESSAGE
        except DataSourceError as exc:
            LOGGER.warning("top_agents_unavailable zip=%s error=%s", subject.zip_code, exc)
            errors["top_agents"] = UNAVAILABLE_MESSAGE

        performance: Optional[AgentPerformanceSnapshot] = None
        try:
            performance = performance_future.result()
        except DataSourceError as exc:
            LOGGER.warning("agent_performance_unavailable zip=%s error=%s", subject.zip_code, exc)
            errors["agent"] = UNAVAILABLE_MESSAGE

        cma = None if "cma" in errors else self.comps_service.analyze(subject, pool)
        benchmark = None
        if performance is not None:
            benchmark = benchmark_agent(performance.agent, performance.zip_stats)
        elif "agent" not in errors:
            errors["agent"] = INSUFFICIENT_AGENT_DATA

        market = market_snapshot(subject, pool, performance)
        fact_pack = build_fact_pack(subject, cma, benchmark, market, as_of=as_of)
        script = build_call_script(subject, fact_pack, tone=tone, length=length)
        insights = self.insights.talking_points(subject, fact_pack) if self.insights is not None else None

        LOGGER.info(
            "dashboard_built zip=%s comps=%d tier=%s agent=%s errors=%s",
            subject.zip_code,
            cma.comp_count if cma else 0,
            cma.tier_label if cma else "-",
            "yes" if benchmark else "no",
            ",".join(sorted(errors)) or "-",
        )
        return Dashboard(
            subject=subject,
            cma=cma,
            agent_benchmark=benchmark,
            top_agents=top_agents,
            market=market,
            fact_pack=fact_pack,
            call_script=script,
            insights=insights,
            errors=errors,
        )
