"""
Economic loss adjustment
========================

Turns the simulated damage of every event into an *economic loss*:

    economic_loss(event) = damage(event) * loss_multiplier
    loss_multiplier      = 1 + damage_weight(damage(event) / GDP) * country_damage_factor

with

    country_damage_factor = 1 / financial_strength
                            + BI_and_supply_chain_risk
                            + natural_hazard_economic_exposure
                            - disaster_resilience

- financial_strength measures a country's economic health and its ability
  to finance the recovery (floored at 0.5, so 1/financial_strength <= 2),
- BI_and_supply_chain_risk measures the risk of disaster-related business
  and supply chain interruption,
- natural_hazard_economic_exposure measures how much of the economic output
  is exposed to natural hazards (extended indicator table only, else 0),
- disaster_resilience measures the quality of natural hazard risk management.

The factor is floored at 0, so economic loss is never below damage.

Countries are processed in an explicit loop. Each one yields a
`CountryOutcome` (result or error); a failing country does not discard the
countries already processed.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Sequence
import logging
import math
from .config import RiskConfig
from .errors import CountryRiskError, MissingIndicatorData
from .indicators import HAZARD_EXPOSURE_COLUMN, IndicatorTable, load_indicator_table
from .loader import resolve_table_path
from .models import CountryRiskResult, EventDamageSet

logger = logging.getLogger(__name__)

WeightFn = Callable[[float], float]

FINANCIAL_STRENGTH_FLOOR = 0.5

_FS_COLUMNS = ("GDP_today", "total_reserves", "insurance_penetration", "income_group", "central_government_debt")
_BI_COLUMNS = ("GDP_industry", "FM_resilience_index_supply_chain")
_NHEE_COLUMNS = (HAZARD_EXPOSURE_COLUMN,)
_DR_COLUMNS = ("FM_resilience_index_risk_quality", "global_competitiveness_index")


@dataclass(frozen=True)
class CountryDamageFactor:
    """The four terms of the country damage factor, and the factor itself."""
    country: str
    financial_strength: float
    bi_and_supply_chain_risk: float
    natural_hazard_economic_exposure: float
    disaster_resilience: float
    value: float
    gdp: float


@dataclass(frozen=True)
class CountryOutcome:
    """Result of adjusting one country: either `result` or `error` is set."""
    country: str
    result: Optional[CountryRiskResult] = None
    error: Optional[CountryRiskError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def damage_weight(ratio: float, scale: float = 0.05) -> float:
    """Default damage weight: 1 - exp(-ratio/scale).

    Monotonic in the damage/GDP ratio, 0 for no damage, approaching 1 for
    damages that are large compared with GDP.
    """
    if ratio <= 0:
        return 0.0
    return 1.0 - math.exp(-ratio / scale)


def _check(value: float, country: str, term: str, columns) -> float:
    if math.isnan(value):
        raise MissingIndicatorData(country, term, columns)
    logger.info("%s %s: %6.3f", country, term, value)
    return value


def financial_strength(reserves: float, gdp: float, insurance_factor: float,
                       income_factor: float, government_debt: float) -> float:
    """min(reserves/GDP, 1) + insurance + income - debt, floored at 0.5 (NaN passes through)."""
    ratio = reserves / gdp if gdp else math.nan
    raw = min(ratio, 1.0) + insurance_factor + income_factor - government_debt
    if math.isnan(raw):
        return raw
    return max(raw, FINANCIAL_STRENGTH_FLOOR)


def combine_damage_factor(fs: float, bi: float, nhee: float, dr: float) -> float:
    """1/fs + bi + nhee - dr, floored at 0."""
    return max(1.0 / fs + bi + nhee - dr, 0.0)


def country_damage_factor(table: IndicatorTable, country_name: str, iso3: Optional[str] = None) -> CountryDamageFactor:
    """Compute the country damage factor from the (normalized) indicator table.

    Raises CountryNotFound if the country has no row, and
    MissingIndicatorData if any of the terms cannot be computed.
    """
    row = table.row(country_name, iso3)
    name = row["Country"] or country_name

    gdp = float(row["GDP_today"])
    fs = _check(financial_strength(float(row["total_reserves"]), gdp,
                                   float(row["insurance_penetration"]),
                                   float(row["income_group"]),
                                   float(row["central_government_debt"])),
                name, "financial_strength", _FS_COLUMNS)
    bi = _check(float(row["GDP_industry"]) + (1.0 - float(row["FM_resilience_index_supply_chain"]) / 100.0),
                name, "BI_and_supply_chain_risk", _BI_COLUMNS)
    if table.has_hazard_exposure:
        nhee = _check(1.0 - float(row[HAZARD_EXPOSURE_COLUMN]) / 10.0,
                      name, "natural_hazard_economic_exposure", _NHEE_COLUMNS)
    else:
        nhee = 0.0
    dr = _check(float(row["FM_resilience_index_risk_quality"]) / 100.0
                + (float(row["global_competitiveness_index"]) - 1.0) / 6.0,
                name, "disaster_resilience", _DR_COLUMNS)

    value = combine_damage_factor(fs, bi, nhee, dr)
    logger.info("%s country damage factor: %6.3f", name, value)
    return CountryDamageFactor(
        country=name,
        financial_strength=fs,
        bi_and_supply_chain_risk=bi,
        natural_hazard_economic_exposure=nhee,
        disaster_resilience=dr,
        value=value,
        gdp=gdp,
    )


def rescale_damages(eds: Optional[EventDamageSet], gdp: float, factor: float, weight_fn: WeightFn) -> EventDamageSet:
    """Return a new EDS with every damage d replaced by d * (1 + weight(d/GDP) * factor)."""
    if eds is None or eds.is_empty:
        return EventDamageSet.empty()
    out = []
    for d in eds.damage:
        multiplier = 1.0 + weight_fn(d / gdp) * factor
        out.append(d * multiplier)
    return replace(eds, damage=tuple(out), annotation=(eds.annotation + " economic loss").strip())


def adjust_country(result: CountryRiskResult,
                   table: IndicatorTable,
                   weight_fn: Optional[WeightFn] = None,
                   config: Optional[RiskConfig] = None) -> CountryRiskResult:
    """Economic loss for one country: rescale the EDS of each of its hazards."""
    config = config or RiskConfig()
    if weight_fn is None:
        weight_fn = lambda r: damage_weight(r, config.damage_weight_scale)
    cdf = country_damage_factor(table, result.country_name, result.iso3)
    hazards = tuple(
        replace(h, eds=rescale_damages(h.eds, cdf.gdp, cdf.value, weight_fn))
        for h in result.hazards
    )
    return replace(result, hazards=hazards)


def adjust_economic_loss(results: Sequence[CountryRiskResult],
                         table_path: Optional[str] = None,
                         *,
                         config: Optional[RiskConfig] = None,
                         prompt: Optional[Callable[[str], Optional[str]]] = None,
                         weight_fn: Optional[WeightFn] = None,
                         table: Optional[IndicatorTable] = None) -> List[CountryOutcome]:
    """Adjust every country's damages to economic loss.

    The indicator table is resolved and loaded once (unless `table` is given).
    Returns one CountryOutcome per input country, in input order.
    Empty `results` log a warning and give an empty list, like `calibrate()`.
    """
    if not results:
        logger.warning("adjust_economic_loss: no results given, nothing to do")
        return []
    config = config or RiskConfig()
    if table is None:
        path = resolve_table_path(table_path, config, prompt)
        table = load_indicator_table(path, config)

    outcomes: List[CountryOutcome] = []
    n = len(results)
    for i, result in enumerate(results, start=1):
        logger.info("processing %s (%d of %d)", result.country_name, i, n)
        try:
            adjusted = adjust_country(result, table, weight_fn=weight_fn, config=config)
        except CountryRiskError as e:
            logger.error("%s: %s", result.country_name, e)
            outcomes.append(CountryOutcome(country=result.country_name, error=e))
            continue
        outcomes.append(CountryOutcome(country=result.country_name, result=adjusted))
    return outcomes


def successful(outcomes: Sequence[CountryOutcome]) -> List[CountryRiskResult]:
    return [o.result for o in outcomes if o.ok and o.result is not None]


def failed(outcomes: Sequence[CountryOutcome]) -> List[CountryOutcome]:
    return [o for o in outcomes if not o.ok]
