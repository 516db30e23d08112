"""
Impact helpers (EDS calculation + damage frequency curves)
==========================================================

- `calc_event_damage_set(entity, hazard)` is the default damage calculation:
  for every event, damage = sum over assets of value * MDD(I) * PAA(I), with I
  the hazard intensity at the asset's centroid.
- `damage_frequency_curve(eds)` gives the damage vs. return period curve (DFC).
- `emdat_damage_frequency(...)` builds the same curve from historic EM-DAT
  damages, inflated to the reference year with a compound annual growth rate.
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import numpy as np
from .models import DisasterEvent, Entity, EventDamageSet, Hazard

# peril ID -> EM-DAT disaster (sub)types used for the historic comparison
PERIL_DISASTER_TYPES: Dict[str, Tuple[str, ...]] = {
    "TC": ("Tropical cyclone",),
    "TS": ("Tropical cyclone", "Coastal flood"),
    "EQ": ("Earthquake", "Ground movement"),
    "FL": ("Flood", "Riverine flood"),
    "WS": ("Extra-tropical storm",),
}


def calc_event_damage_set(entity: Entity, hazard: Hazard, annotation: str = "") -> EventDamageSet:
    """Compute the damage of every hazard event on the entity's assets."""
    damage = np.zeros(hazard.n_events, dtype=float)
    by_function: Dict[int, List[int]] = {}
    for i, a in enumerate(entity.assets):
        by_function.setdefault(a.damage_function_id, []).append(i)

    for fun_id, asset_ids in by_function.items():
        dmf = entity.damage_function(hazard.peril_id, fun_id)
        values = np.array([entity.assets[i].value for i in asset_ids], dtype=float)
        centroids = np.array([entity.assets[i].centroid_index for i in asset_ids], dtype=int)
        intensity = hazard.intensity[:, centroids]
        damage += (dmf.mean_damage_ratio(intensity) * values).sum(axis=1)

    event_ids = hazard.event_ids or tuple(range(1, hazard.n_events + 1))
    return EventDamageSet(
        damage=tuple(float(d) for d in damage),
        frequency=tuple(float(f) for f in hazard.frequency),
        event_ids=tuple(event_ids),
        reference_year=hazard.reference_year,
        annotation=annotation,
    )


def damage_frequency_curve(eds: EventDamageSet) -> Tuple[np.ndarray, np.ndarray]:
    """Return (return_period, damage), sorted by descending damage."""
    if eds.is_empty:
        return np.array([]), np.array([])
    damage = np.asarray(eds.damage, dtype=float)
    frequency = np.asarray(eds.frequency, dtype=float)
    order = np.argsort(-damage, kind="stable")
    exceedance = np.cumsum(frequency[order])
    with np.errstate(divide="ignore"):
        return_period = np.where(exceedance > 0, 1.0 / exceedance, np.inf)
    return return_period, damage[order]


def combine_event_damage_sets(eds_list: Iterable[Optional[EventDamageSet]], annotation: str = "combined") -> EventDamageSet:
    """Concatenate several EDS (e.g. all countries of a region) into one."""
    parts = [e for e in eds_list if e is not None and not e.is_empty]
    if not parts:
        return EventDamageSet.empty()
    damage: List[float] = []
    frequency: List[float] = []
    for e in parts:
        damage.extend(e.damage)
        frequency.extend(e.frequency)
    return EventDamageSet(damage=tuple(damage), frequency=tuple(frequency),
                          reference_year=parts[0].reference_year, annotation=annotation)


def emdat_damage_frequency(events: Sequence[DisasterEvent],
                           cagr: float,
                           reference_year: int,
                           peril_types: Sequence[str] = (),
                           countries: Sequence[str] = ()) -> Tuple[np.ndarray, np.ndarray]:
    """Empirical (return_period, damage) curve from EM-DAT records.

    Damages are inflated with (1 + cagr) ** (reference_year - start_year).
    The k-th largest damage gets return period n_years / k.
    """
    wanted_types = {t.lower() for t in peril_types}
    wanted_countries = {c.lower() for c in countries}
    picked = []
    for e in events:
        if e.total_damage_adj_usd is None or e.total_damage_adj_usd <= 0:
            continue
        if wanted_types and e.disaster_type.lower() not in wanted_types and e.disaster_subtype.lower() not in wanted_types:
            continue
        if wanted_countries and e.country.lower() not in wanted_countries:
            continue
        picked.append(e)
    if not picked:
        return np.array([]), np.array([])

    years = [e.start_year for e in picked]
    n_years = max(years) - min(years) + 1
    damage = np.array([e.total_damage_adj_usd * (1.0 + cagr) ** (reference_year - e.start_year) for e in picked])
    damage = np.sort(damage)[::-1]
    rank = np.arange(1, damage.size + 1)
    return n_years / rank, damage
