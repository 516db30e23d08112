"""
Damage frequency curve (DFC) plots
==================================

Default plotting collaborators for `calibrate()` and the report:
- `plot_dfc`: one country and hazard, optionally against EM-DAT damages,
- `plot_dfc_aggregate`: all countries/hazards combined into one curve,
- `save_dfc` / `save_dfc_aggregate`: the same plots written to a directory
  (used by `calibrate()`); the figure is closed once saved.

matplotlib is imported lazily, so the calculations run without it.
"""

from __future__ import annotations
from typing import Optional, Sequence
import logging
import os
import re
from .impact import (PERIL_DISASTER_TYPES, combine_event_damage_sets, damage_frequency_curve,
                     emdat_damage_frequency)
from .models import CountryRiskResult, DisasterEvent

logger = logging.getLogger(__name__)


def _pyplot():
    try:
        import matplotlib.pyplot as plt
    except ImportError as e:
        raise ImportError(
            "Missing dependency: matplotlib.\n"
            "Install it with: python -m pip install matplotlib"
        ) from e
    return plt


def _finish(plt, fig, out_path: Optional[str]):
    if out_path:
        try:
            plt.tight_layout()
            fig.savefig(out_path, dpi=200)
        finally:
            plt.close(fig)
        return out_path
    return fig


def plot_dfc(results: Sequence[CountryRiskResult],
             country_index: int,
             hazard_index: int,
             cagr: float,
             emdat_events: Optional[Sequence[DisasterEvent]] = None,
             out_path: Optional[str] = None):
    """Plot damage vs. return period for one country/hazard.

    Returns the saved path if `out_path` is given, else the Figure.
    """
    plt = _pyplot()
    country = results[country_index]
    hazard = country.hazards[hazard_index]
    fig, ax = plt.subplots()

    if hazard.eds is not None and not hazard.eds.is_empty:
        rp, dmg = damage_frequency_curve(hazard.eds)
        ax.plot(rp, dmg, "-", label=f"{hazard.peril_id} simulated")
        if emdat_events:
            erp, edmg = emdat_damage_frequency(emdat_events, cagr, hazard.eds.reference_year,
                                               PERIL_DISASTER_TYPES.get(hazard.peril_id, ()),
                                               [country.country_name])
            if edmg.size:
                ax.plot(erp, edmg, "o", label=f"EM-DAT (CAGR {cagr:.1%})")

    ax.set_xscale("log")
    ax.set_xlabel("Return period (years)")
    ax.set_ylabel("Damage")
    ax.set_title(f"{country.country_name} {hazard.peril_id}")
    ax.legend(loc="upper left")
    ax.grid(True, which="both", ls="--", alpha=0.5)
    return _finish(plt, fig, out_path)


def plot_dfc_aggregate(results: Sequence[CountryRiskResult],
                       cagr: float,
                       emdat_events: Optional[Sequence[DisasterEvent]] = None,
                       out_path: Optional[str] = None):
    """Plot the DFC of all countries and hazards combined."""
    plt = _pyplot()
    fig, ax = plt.subplots()

    combined = combine_event_damage_sets(h.eds for r in results for h in r.hazards)
    if not combined.is_empty:
        rp, dmg = damage_frequency_curve(combined)
        ax.plot(rp, dmg, "-", label="all countries/perils simulated")
        if emdat_events:
            perils = {h.peril_id for r in results for h in r.hazards}
            types = [t for p in perils for t in PERIL_DISASTER_TYPES.get(p, ())]
            erp, edmg = emdat_damage_frequency(emdat_events, cagr, combined.reference_year, types,
                                               [r.country_name for r in results])
            if edmg.size:
                ax.plot(erp, edmg, "o", label=f"EM-DAT (CAGR {cagr:.1%})")

    ax.set_xscale("log")
    ax.set_xlabel("Return period (years)")
    ax.set_ylabel("Damage")
    ax.set_title(", ".join(r.country_name for r in results))
    ax.legend(loc="upper left")
    ax.grid(True, which="both", ls="--", alpha=0.5)
    return _finish(plt, fig, out_path)


def _file_part(s: str) -> str:
    return re.sub(r"[^A-Za-z0-9]+", "_", s).strip("_")


def save_dfc(results: Sequence[CountryRiskResult],
             country_index: int,
             hazard_index: int,
             cagr: float,
             plot_dir: str,
             emdat_events: Optional[Sequence[DisasterEvent]] = None) -> str:
    """Write the DFC of one country/hazard to `plot_dir` (figure is closed) and return the path."""
    country = results[country_index]
    peril = country.hazards[hazard_index].peril_id
    os.makedirs(plot_dir, exist_ok=True)
    out_path = os.path.join(plot_dir, f"dfc_{_file_part(country.country_name)}_{_file_part(peril)}.png")
    plot_dfc(results, country_index, hazard_index, cagr, emdat_events=emdat_events, out_path=out_path)
    logger.info("DFC plot written to %s", out_path)
    return out_path


def save_dfc_aggregate(results: Sequence[CountryRiskResult],
                       cagr: float,
                       plot_dir: str,
                       emdat_events: Optional[Sequence[DisasterEvent]] = None) -> str:
    os.makedirs(plot_dir, exist_ok=True)
    out_path = os.path.join(plot_dir, "dfc_all.png")
    plot_dfc_aggregate(results, cagr, emdat_events=emdat_events, out_path=out_path)
    logger.info("aggregate DFC plot written to %s", out_path)
    return out_path


def close_all() -> None:
    _pyplot().close("all")
