import math
from datetime import date
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env", override=False)

from .db.repo import DataSourceError, get_repository
from .models.analysis import ScriptLength, Tone
from .models.lead import AgentPerformanceSnapshot, Comp, SubjectProperty
from .services.agent_benchmark import benchmark_agent
from .services.call_script import build_call_script, build_fact_pack
from .services.comps_service import CompsService
from .services.dashboard_service import DashboardService, market_snapshot
from .services.insights import InsightsLLM
from .utils.logging import get_logger

LOGGER = get_logger("api")

app = FastAPI(title="Expired Listing Lead Intelligence")
router = APIRouter(prefix="/api")

_service: Optional[DashboardService] = None
_insights: Optional[InsightsLLM] = None


def _sanitize(value: Any) -> Any:
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, dict):
        return {k: _sanitize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_sanitize(item) for item in value]
    return value


def get_insights() -> InsightsLLM:
    global _insights
    if _insights is None:
        _insights = InsightsLLM()
    return _insights


def get_dashboard_service() -> DashboardService:
    global _service
    if _service is None:
        _service = DashboardService(get_repository(), get_insights())
    return _service


def _parse_tone(value: str) -> Tone:
    try:
        return Tone(value.capitalize())
    except ValueError:
        raise HTTPException(400, detail=f"invalid tone '{value}'")


def _parse_length(value: str) -> ScriptLength:
    try:
        return ScriptLength(value.capitalize())
    except ValueError:
        raise HTTPException(400, detail=f"invalid length '{value}'")


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/search")
def search(q: str = Query(...), service: DashboardService = Depends(get_dashboard_service)):
    if len(q.strip()) < 3:
        raise HTTPException(400, detail="query must be at least 3 characters")
    try:
        suggestions = service.search(q)
    except DataSourceError as exc:
        raise HTTPException(503, detail="Search temporarily unavailable") from exc
    return jsonable_encoder({"items": suggestions, "total": len(suggestions)})


@router.get("/dashboard")
def dashboard(
    address: str = Query(..., min_length=3),
    tone: str = Query("Neutral"),
    length: str = Query("Short"),
    service: DashboardService = Depends(get_dashboard_service),
):
    script_tone = _parse_tone(tone)
    script_length = _parse_length(length)
    try:
        result = service.build_for_address(address, tone=script_tone, length=script_length)
    except LookupError as exc:
        raise HTTPException(404, detail=str(exc)) from exc
    except DataSourceError as exc:
        raise HTTPException(503, detail="Listing data temporarily unavailable") from exc
    return _sanitize(jsonable_encoder(result))


class CallScriptRequest(BaseModel):
    subject: SubjectProperty
    comps: List[Comp] = Field(default_factory=list)
    performance: Optional[AgentPerformanceSnapshot] = None
    tone: Tone = Tone.NEUTRAL
    length: ScriptLength = ScriptLength.SHORT
    as_of: Optional[date] = None


@router.post("/call-script")
def call_script(req: CallScriptRequest):
    cma = CompsService().analyze(req.subject, req.comps)
    benchmark = None
    if req.performance is not None:
        benchmark = benchmark_agent(req.performance.agent, req.performance.zip_stats)
    market = market_snapshot(req.subject, req.comps, req.performance)
    fact_pack = build_fact_pack(req.subject, cma, benchmark, market, as_of=req.as_of)
    script = build_call_script(req.subject, fact_pack, tone=req.tone, length=req.length)
    return jsonable_encoder({"fact_pack": fact_pack, "call_script": script, "text": script.as_text()})


@router.get("/llm_probe")
def llm_probe(insights: InsightsLLM = Depends(get_insights)):
    return insights.probe()


app.include_router(router)
