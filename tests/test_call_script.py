from datetime import date

from leadintel.models.analysis import FactPack, ScriptLength, Tone
from leadintel.models.lead import (
    AgentPerformanceRecord,
    Comp,
    MarketSnapshot,
    SubjectProperty,
    ZipAggregatePerformance,
)
from leadintel.services.agent_benchmark import benchmark_agent
from leadintel.services.call_script import (
    HookTemplate,
    build_call_script,
    build_fact_pack,
    build_opener,
    select_hooks,
)
from leadintel.services.comps_service import CompsService

AS_OF = date(2026, 2, 1)


def _subject(**kw) -> SubjectProperty:
    data = {
        "address": "123 Maple St, Lexington, MA 02420",
        "street": "123 Maple St",
        "city": "Lexington",
        "state": "MA",
        "zip_code": "02420",
        "original_list_price": 1_299_000,
        "final_list_price": 1_199_000,
        "days_on_market": 63,
        "expiration_date": date(2025, 12, 10),
        "sqft": 2450,
    }
    data.update(kw)
    return SubjectProperty(**data)


def _comps():
    return [
        Comp(address="12 Cedar St", zip_code="02420", sqft=2600, sold_price=1_225_000, sold_date=date(2025, 11, 1)),
        Comp(address="44 Walnut St", zip_code="02420", sqft=2400, sold_price=1_210_000, sold_date=date(2025, 10, 5)),
    ]


def _market(**kw) -> MarketSnapshot:
    data = {"median_dom": 18, "list_to_sale_ratio": 98.5, "inventory_active": 0}
    data.update(kw)
    return MarketSnapshot(**data)


def _benchmark(avg_dom=24):
    return benchmark_agent(AgentPerformanceRecord(avg_dom=avg_dom), ZipAggregatePerformance(avg_dom=18))


def _fact_pack(subject=None, comps=None, benchmark="default", market=None):
    subject = subject or _subject()
    cma = CompsService().analyze(subject, _comps() if comps is None else comps)
    bench = _benchmark() if benchmark == "default" else benchmark
    return build_fact_pack(subject, cma, bench, market or _market(), as_of=AS_OF)


def test_fact_pack_values():
    fp = _fact_pack()
    assert fp.dom_delta == 45
    assert fp.price_cut_pct == 7.7
    assert fp.days_since_expired == 53
    assert fp.comp_count == 2
    assert fp.closest_comp_address == "44 Walnut St"
    assert fp.closest_delta == 11_000
    assert fp.has_closest_comp is True
    assert fp.agent_dom_delta == 6
    assert fp.comp_range == "$1210k-$1225k"


def test_fact_pack_without_comps_or_agent():
    fp = _fact_pack(comps=[], benchmark=None)
    assert fp.comp_count == 0
    assert fp.closest_comp_address == "N/A"
    assert fp.has_closest_comp is False
    assert fp.comp_range == "N/A"
    assert fp.has_agent_facts is False


def test_days_since_expired_never_negative():
    fp = _fact_pack(subject=_subject(expiration_date=date(2026, 3, 1)))
    assert fp.days_since_expired == 0


def test_reference_scenario_picks_cma_pricing_momentum():
    subject = _subject()
    hooks = select_hooks(_fact_pack(subject=subject), subject)
    assert [h.category for h in hooks] == ["CMA", "Pricing", "Momentum"]
    assert [h.score for h in hooks] == [95, 90, 85]
    assert hooks[0].headline == "Recent Comparable Sale"
    assert "44 Walnut St" in hooks[0].fact
    assert hooks[2].headline == "Market Momentum"


def test_hook_selection_is_deterministic():
    subject = _subject()
    fp = _fact_pack(subject=subject)
    first = select_hooks(fp, subject, ScriptLength.LONG)
    assert all(select_hooks(fp, subject, ScriptLength.LONG) == first for _ in range(5))


def test_one_hook_per_category():
    subject = _subject()
    hooks = select_hooks(_fact_pack(subject=subject), subject, limit=10)
    categories = [h.category for h in hooks]
    assert len(categories) == len(set(categories))
    assert categories == ["CMA", "Pricing", "Momentum", "Agent", "Market"]


def test_agent_hook_needs_agent_facts():
    subject = _subject()
    hooks = select_hooks(_fact_pack(subject=subject, benchmark=None), subject, limit=10)
    assert "Agent" not in [h.category for h in hooks]


def test_weak_signals_fall_back_to_market_hooks():
    subject = _subject(original_list_price=1_000_000, final_list_price=1_000_000, days_on_market=20)
    hooks = select_hooks(_fact_pack(subject=subject, comps=[], benchmark=_benchmark(avg_dom=18)), subject)
    assert [(h.category, h.score) for h in hooks] == [("Market", 70), ("CMA", 60), ("Momentum", 50)]


def test_equal_scores_keep_library_order():
    def template(category, score):
        return HookTemplate(
            category=category,
            headline=category,
            short=lambda fp, s: category,
            long=lambda fp, s: category,
            question=lambda fp, s: "?",
            score=lambda fp: score,
        )

    library = [template("B", 50), template("A", 70), template("C", 50), template("D", 50)]
    hooks = select_hooks(FactPack(), _subject(), library=library)
    assert [h.category for h in hooks] == ["A", "B", "C"]


def test_short_and_long_texts_differ():
    subject = _subject()
    fp = _fact_pack(subject=subject)
    short = select_hooks(fp, subject, ScriptLength.SHORT)
    long = select_hooks(fp, subject, ScriptLength.LONG)
    assert [h.category for h in short] == [h.category for h in long]
    assert short[0].fact != long[0].fact


def test_openers_follow_tone():
    subject = _subject()
    assert "are you still interested" in build_opener(subject, Tone.DIRECT)
    assert "great property" in build_opener(subject, Tone.WARM)
    assert build_opener(subject, Tone.NEUTRAL).startswith("I'm calling about the property on 123 Maple St.")


def test_pivots_only_in_long_script():
    subject = _subject()
    fp = _fact_pack(subject=subject)
    assert build_call_script(subject, fp, length=ScriptLength.SHORT).pivots is None
    script = build_call_script(subject, fp, tone=Tone.WARM, length=ScriptLength.LONG)
    assert script.pivots is not None
    assert "$1,199,000" in script.pivots.price
    assert "6 day variance" in script.pivots.agent
    text = script.as_text()
    assert text.startswith("Address: 123 Maple St, Lexington, MA 02420")
    assert "Pivots:" in text
    assert "- If agent:" in text


def test_agent_pivot_without_agent_facts():
    subject = _subject()
    script = build_call_script(subject, _fact_pack(subject=subject, benchmark=None), length=ScriptLength.LONG)
    assert "variance" not in script.pivots.agent
