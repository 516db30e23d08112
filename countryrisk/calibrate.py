"""
Damage function calibration testbed
===================================

Experiment with the damage function of ONE country and ONE hazard of a
country risk result, then look at the damage frequency curve (DFC):

1) Run the country risk calculation for one country or a region (neighbouring
   countries should end up with similar damage function settings).
2) Call `calibrate(results, country_index, hazard_index)` repeatedly while
   tuning `CALIBRATION_PRESETS` (or passing your own `presets`), and compare
   the DFC against reported (EM-DAT) damages.
3) Put the final settings into the production damage functions.

Entity/hazard loading, the damage calculation and plotting are collaborators
passed in as callables, so the testbed can run against stubs.
"""

from __future__ import annotations
from dataclasses import replace
from functools import partial
from typing import Callable, Mapping, Optional, Sequence, Tuple
import logging
from .config import RiskConfig
from .damagefunctions import CALIBRATION_PRESETS, DamageFunctionParams, replace_damage_functions
from .impact import calc_event_damage_set
from .loader import load_entity_xlsx, load_hazard_npz
from .models import CountryRiskResult, DisasterEvent, Entity, EventDamageSet, Hazard

logger = logging.getLogger(__name__)

PlotSingle = Callable[[Sequence[CountryRiskResult], int, int, float], object]
PlotAggregate = Callable[[Sequence[CountryRiskResult], float], object]


def _default_plot_single(plot_dir, emdat_events, results, country_index, hazard_index, cagr):
    from .plots import save_dfc
    return save_dfc(results, country_index, hazard_index, cagr, plot_dir, emdat_events)


def _default_plot_aggregate(plot_dir, emdat_events, results, cagr):
    from .plots import save_dfc_aggregate
    return save_dfc_aggregate(results, cagr, plot_dir, emdat_events)


def _default_close_figures() -> None:
    from .plots import close_all
    close_all()


def calibrate(results: Optional[Sequence[CountryRiskResult]],
              country_index: int = 0,
              hazard_index: int = 0,
              cagr: Optional[float] = None,
              show_plot: int = 1,
              *,
              config: Optional[RiskConfig] = None,
              load_entity: Callable[[str], Entity] = load_entity_xlsx,
              load_hazard: Callable[[str], Hazard] = load_hazard_npz,
              calc_eds: Callable[[Entity, Hazard], EventDamageSet] = calc_event_damage_set,
              plot_single: Optional[PlotSingle] = None,
              plot_aggregate: Optional[PlotAggregate] = None,
              close_figures: Optional[Callable[[], None]] = None,
              presets: Optional[Mapping[str, DamageFunctionParams]] = None,
              emdat_events: Optional[Sequence[DisasterEvent]] = None) -> Tuple[CountryRiskResult, ...]:
    """Recalculate the EDS of one (country, hazard) pair with a regenerated damage function.

    Args:
        results: country risk results (one per country).
        country_index / hazard_index: 0-based positions; default the first.
        cagr: growth rate used to inflate historic damages in the plots
            (default: config.global_cagr).
        show_plot: 0 = no plot, 1 = single DFC plot, 2 = also the aggregate
            plot over all countries. Negative: close existing figures first.
        emdat_events: historic damages drawn next to the simulated DFC.

    The default plots are written to `config.plot_dir` (one PNG per
    country/peril, plus `dfc_all.png`) and closed afterwards.

    Returns a new tuple of results; only the selected EDS differs.
    """
    if not results:
        logger.warning("calibrate: no results given, nothing to do")
        return tuple(results or ())
    results = tuple(results)
    config = config or RiskConfig()
    presets = CALIBRATION_PRESETS if presets is None else presets

    if not 0 <= country_index < len(results):
        raise IndexError(f"country_index {country_index} out of range (0..{len(results) - 1})")
    country = results[country_index]
    if not 0 <= hazard_index < len(country.hazards):
        raise IndexError(f"hazard_index {hazard_index} out of range for {country.country_name} "
                         f"({len(country.hazards)} hazards)")
    hazard_result = country.hazards[hazard_index]

    if show_plot < 0:
        _run_plot(close_figures or _default_close_figures)
        show_plot = abs(show_plot)
    if cagr is None:
        cagr = config.global_cagr

    entity = load_entity(hazard_result.entity_file)
    hazard = load_hazard(hazard_result.hazard_set_file)
    if not hazard.peril_id:
        hazard = replace(hazard, peril_id=hazard_result.peril_id)

    params = presets.get(hazard_result.peril_id)
    if params is not None:
        dmf, info = params.generate(hazard_result.peril_id)
        logger.info("%s %s: %s", country.country_name, hazard_result.peril_id, info)
        entity = replace_damage_functions(entity, [dmf])
    else:
        logger.warning("%s: no damage function preset for peril %s, recalculating with the entity's own",
                       country.country_name, hazard_result.peril_id)

    eds = calc_eds(entity, hazard)
    new_country = replace(
        country,
        hazards=tuple(replace(h, eds=eds) if i == hazard_index else h for i, h in enumerate(country.hazards)),
    )
    out = tuple(new_country if i == country_index else r for i, r in enumerate(results))

    plot_single = plot_single or partial(_default_plot_single, config.plot_dir, emdat_events)
    plot_aggregate = plot_aggregate or partial(_default_plot_aggregate, config.plot_dir, emdat_events)
    if show_plot:
        _run_plot(plot_single, out, country_index, hazard_index, cagr)
    if show_plot == 2:
        _run_plot(plot_aggregate, out, cagr)
    return out


def _run_plot(fn: Callable, *args) -> None:
    """Call a plotting collaborator; a failing plot never affects the results."""
    try:
        fn(*args)
    except Exception as e:
        logger.warning("plotting failed: %s", e)
