"""Strategic talking points from Gemini with a deterministic local fallback."""

from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional

import google.generativeai as genai

from ..models.analysis import FactPack, InsightResult
from ..models.lead import SubjectProperty
from ..utils.logging import get_logger

LOGGER = get_logger("services.insights")

POINT_COUNT = 3
QUOTA_MESSAGE = "API quota exceeded. Providing data-driven fallbacks."

TALKING_POINTS_PROMPT = """Generate 3 strategic talking points for a real estate agent calling a seller whose listing just expired.

Property Context:
- Address: {address}
- Type: {property_type}
- Days on Market: {days_on_market}
- Original Price: ${original_price:,.0f}
- Final Price: ${final_price:,.0f}
- Price Drop: {price_cut_pct}%
- Comparable sales: {comp_count} (median ${comp_median:,.0f})
- Days since expiration: {days_since_expired}

Requirements:
- Professional, data-driven tone.
- One concise sentence per point.
- Do NOT invent numbers that are not listed above.

Return STRICT JSON: {{"talking_points": ["...", "...", "..."]}}"""


def fallback_talking_points(subject: SubjectProperty, fact_pack: FactPack) -> List[str]:
    points = [
        f"Address the discrepancy between the ${subject.original_list_price:,.0f} initial ask and the "
        f"${subject.final_list_price:,.0f} final list price.",
        f"Focus on the {subject.days_on_market}-day market exposure period and why the current local demand "
        "didn't absorb the property at this price.",
        "Propose a \"market reset\" strategy to overcome the stigma of the expired status and re-engage "
        "qualified local buyers.",
    ]
    if fact_pack.comp_count:
        points[2] = (
            f"Anchor the relaunch on the {fact_pack.comp_count} local sales with a median of "
            f"${fact_pack.comp_median:,.0f} to propose a \"market reset\" that re-engages qualified buyers."
        )
    return points


def is_quota_error(exc: BaseException) -> bool:
    status = getattr(exc, "code", None) or getattr(exc, "status", None)
    if status == 429 or str(status) == "429":
        return True
    message = str(exc)
    return "429" in message or "RESOURCE_EXHAUSTED" in message


class InsightsLLM:
    def __init__(self, model: Optional[str] = None, api_key: Optional[str] = None) -> None:
        self.api_key = api_key or os.getenv("GOOGLE_API_KEY")
        preferred = model or os.getenv("LLM_MODEL") or "gemini-2.5-flash"
        self.model_name = preferred.split("/", 1)[-1] if preferred.startswith("models/") else preferred
        self._model: Any = None
        if self.api_key:
            try:
                genai.configure(api_key=self.api_key)
                self._model = genai.GenerativeModel(self.model_name)
            except Exception as exc:
                LOGGER.warning("Failed to initialise Gemini client: %s", exc)
                self._model = None

    @property
    def available(self) -> bool:
        return self._model is not None

    def talking_points(self, subject: SubjectProperty, fact_pack: FactPack) -> InsightResult:
        fallback = fallback_talking_points(subject, fact_pack)
        if not self._model:
            return InsightResult(points=fallback, source="fallback")

        prompt = TALKING_POINTS_PROMPT.format(
            address=subject.address,
            property_type=subject.property_type,
            days_on_market=subject.days_on_market,
            original_price=subject.original_list_price,
            final_price=subject.final_list_price,
            price_cut_pct=subject.price_reduction_pct,
            comp_count=fact_pack.comp_count,
            comp_median=fact_pack.comp_median,
            days_since_expired=fact_pack.days_since_expired,
        )
        try:
            response = self._model.generate_content(
                prompt,
                generation_config={"temperature": 0.4, "response_mime_type": "application/json"},
            )
            points = self._parse_points(self._extract_text(response))
        except Exception as exc:
            if is_quota_error(exc):
                LOGGER.warning("gemini_quota_exceeded model=%s", self.model_name)
                return InsightResult(points=fallback, source="fallback", status_message=QUOTA_MESSAGE)
            LOGGER.warning("Gemini talking points failed: %s", exc)
            return InsightResult(points=fallback, source="fallback")
        return InsightResult(points=points, source="gemini")

    def probe(self) -> Dict[str, Any]:
        if not self._model:
            return {"ok": False, "why": "no_model"}
        try:
            text = self._extract_text(self._model.generate_content("ping"))
            return {"ok": True, "model": self.model_name, "sample": (text or "")[:40]}
        except Exception as exc:
            return {"ok": False, "model": self.model_name, "error": str(exc)}

    def _extract_text(self, response: Any) -> str:
        if hasattr(response, "text") and response.text:
            return response.text
        if hasattr(response, "candidates"):
            for candidate in response.candidates:
                if candidate.content.parts:
                    return "".join(part.text for part in candidate.content.parts if getattr(part, "text", None))
        raise ValueError("Empty response from Gemini")

    def _parse_points(self, text: str) -> List[str]:
        text = text.strip()
        start = text.find("{")
        end = text.rfind("}")
        if start >= 0 and end >= 0:
            text = text[start : end + 1]
        data = json.loads(text)
        points = [str(p).strip() for p in data.get("talking_points") or [] if str(p).strip()]
        if not points:
            raise ValueError("Gemini returned no talking points")
        return points[:POINT_COUNT]
